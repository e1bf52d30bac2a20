"""Tests for the session-wide data store commands."""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest

from carebill.backend.src.gateway.client import BackendError
from carebill.backend.src.gateway.data_service import (
    ACCOUNTS_RECEIVABLE,
    BILLING_ENTRIES,
    CLINICS,
    INVOICES,
    PROVIDERS,
    TODO_ITEMS,
    USER_PROFILES,
    DataService,
)
from carebill.backend.src.schemas.billing_entry import BillingEntryCreate, BillingEntryUpdate
from carebill.backend.src.schemas.clinic import ClinicCreate, ProviderCreate
from carebill.backend.src.schemas.invoice import InvoiceCreate, InvoiceItem, InvoiceUpdate
from carebill.backend.src.schemas.todo import TodoItemCreate, TodoItemUpdate
from carebill.backend.src.schemas.user import UserProfileUpdate
from carebill.backend.src.services.data_store import DataStore
from carebill.backend.src.services.transitions import InvalidTransitionError

NOW = "2025-03-01T12:00:00+00:00"


@pytest.fixture()
def store(data_service: DataService) -> DataStore:
    return DataStore(data_service, today=lambda: date(2025, 3, 1), now=lambda: NOW)


def _billing_row(**overrides):  # type: ignore[no-untyped-def]
    row = {
        "clinic_id": "c1",
        "provider_id": "p1",
        "date": "2025-01-10",
        "patient_name": "Ana",
        "procedure_code": "99213",
        "amount": 100,
        "status": "pending",
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
async def test_refresh_data_loads_every_collection(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(CLINICS, {"name": "North"})
    backend.seed(PROVIDERS, {"name": "Dr. A", "email": "a@example.com", "clinic_id": "c1"})
    backend.seed(BILLING_ENTRIES, _billing_row())
    backend.seed(USER_PROFILES, {"email": "x@example.com", "name": "X", "role": "admin"})

    await store.refresh_data()

    assert [clinic.name for clinic in store.clinics] == ["North"]
    assert len(store.providers) == 1
    assert len(store.billing_entries) == 1
    assert store.user_profiles == []
    assert store.loading is False
    assert store.error is None


@pytest.mark.asyncio
async def test_refresh_data_failure_records_error_and_keeps_cache(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(CLINICS, {"name": "North"})
    await store.refresh_data()
    backend.seed(CLINICS, {"name": "South"})
    backend.fail(INVOICES, "select", message="permission denied", code="42501")

    with pytest.raises(BackendError):
        await store.refresh_data()

    assert store.error == "permission denied"
    assert store.loading is False
    assert [clinic.name for clinic in store.clinics] == ["North"]


@pytest.mark.asyncio
async def test_failed_write_leaves_collection_untouched(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(BILLING_ENTRIES, _billing_row())
    await store.refresh_data()
    before = list(store.billing_entries)
    backend.fail(BILLING_ENTRIES, "insert")
    backend.fail(BILLING_ENTRIES, "delete")

    with pytest.raises(BackendError):
        await store.add_billing_entry(
            BillingEntryCreate(
                provider_id="p1", clinic_id="c1", date="2025-01-11", patient_name="Bo", procedure_code="99212", amount=5
            )
        )
    with pytest.raises(BackendError):
        await store.delete_billing_entry(before[0].id)

    assert store.billing_entries == before


@pytest.mark.asyncio
async def test_creates_prepend_except_clinics_and_providers(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(CLINICS, {"name": "Alpha"})
    backend.seed(BILLING_ENTRIES, _billing_row())
    await store.refresh_data()

    clinic = await store.add_clinic(ClinicCreate(name="Zeta"))
    provider = await store.add_provider(ProviderCreate(name="Dr. Z", email="z@example.com", clinic_id=clinic.id))
    entry = await store.add_billing_entry(
        BillingEntryCreate(provider_id=provider.id, date="2025-01-12", patient_name="Cy", procedure_code="99214", amount=20)
    )

    assert store.clinics[-1].id == clinic.id
    assert store.providers[-1].id == provider.id
    assert store.billing_entries[0].id == entry.id
    assert entry.clinic_id == clinic.id


@pytest.mark.asyncio
async def test_billing_entry_without_clinic_needs_known_provider(store: DataStore) -> None:
    with pytest.raises(ValueError, match="needs a clinic"):
        await store.add_billing_entry(
            BillingEntryCreate(provider_id="ghost", date="2025-01-12", patient_name="Cy", procedure_code="99214", amount=20)
        )


@pytest.mark.asyncio
async def test_update_replaces_cached_record(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(BILLING_ENTRIES, _billing_row())
    await store.refresh_data()
    entry_id = store.billing_entries[0].id

    updated = await store.update_billing_entry(entry_id, BillingEntryUpdate(status="approved"))

    assert updated.status == "approved"
    assert store.billing_entries[0].status == "approved"
    assert backend.calls[-1] == (BILLING_ENTRIES, "update", {"status": "approved"})


@pytest.mark.asyncio
async def test_illegal_transition_is_rejected_before_writing(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(BILLING_ENTRIES, _billing_row(status="paid"))
    await store.refresh_data()
    calls_before = len(backend.calls)

    with pytest.raises(InvalidTransitionError):
        await store.update_billing_entry(store.billing_entries[0].id, BillingEntryUpdate(status="pending"))

    assert len(backend.calls) == calls_before


@pytest.mark.asyncio
async def test_scoped_refresh_replaces_collection(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(
        BILLING_ENTRIES,
        _billing_row(date="2025-01-05"),
        _billing_row(date="2025-02-05"),
        _billing_row(clinic_id="c2", date="2025-01-06"),
    )
    await store.refresh_data()

    entries = await store.refresh_billing_entries(clinic_id="c1", month="January 2025")

    assert [entry.date for entry in entries] == ["2025-01-05"]
    assert store.billing_entries == entries


@pytest.mark.asyncio
async def test_scoped_refresh_failure_keeps_previous_entries(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(ACCOUNTS_RECEIVABLE, {"patient_id": "x", "clinic_id": "c1", "date": "2025-01-01", "amount": 10, "type": "Patient", "amount_owed": 5})
    await store.refresh_data()
    backend.fail(ACCOUNTS_RECEIVABLE, "select")

    with pytest.raises(BackendError):
        await store.refresh_accounts_receivable(clinic_id="c1")

    assert len(store.accounts_receivable) == 1


@pytest.mark.asyncio
async def test_invoices_are_numbered_per_year(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(
        INVOICES,
        {"clinic_id": "c1", "invoice_number": "INV-2025-004", "date": "2025-02-01", "due_date": "2025-03-01", "items": []},
        {"clinic_id": "c1", "invoice_number": "INV-2024-019", "date": "2024-12-01", "due_date": "2025-01-01", "items": []},
    )
    await store.refresh_data()

    invoice = await store.add_invoice(
        InvoiceCreate(
            clinic_id="c1",
            date="2025-03-01",
            due_date="2025-03-31",
            items=[InvoiceItem(description="Visit", quantity=1, rate=90)],
        )
    )

    assert invoice.invoice_number == "INV-2025-005"
    assert invoice.total_amount == 90
    assert store.invoices[0].id == invoice.id
    stored = backend.tables[INVOICES][-1]
    assert stored["amount"] == 90


@pytest.mark.asyncio
async def test_invoice_update_stores_recomputed_amount(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    invoice = await store.add_invoice(
        InvoiceCreate(
            clinic_id="c1",
            date="2025-03-01",
            due_date="2025-03-31",
            items=[InvoiceItem(description="Visit", quantity=2, rate=50)],
        )
    )

    updated = await store.update_invoice(invoice.id, InvoiceUpdate(discount_rate=10))

    assert updated.total_amount == 90
    assert backend.tables[INVOICES][-1]["amount"] == 90


@pytest.mark.asyncio
async def test_completing_todo_stamps_completed_at_and_reopening_clears_it(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    item = await store.add_todo_item(TodoItemCreate(clinic_id="c1", claim_id="CLM-1", issue="Resubmit"), created_by="u1")

    completed = await store.update_todo_item(item.id, TodoItemUpdate(status="completed"))
    reopened = await store.update_todo_item(item.id, TodoItemUpdate(status="waiting"))

    assert item.created_by == "u1"
    assert completed.completed_at == NOW
    assert reopened.completed_at is None
    assert backend.calls[-1] == (TODO_ITEMS, "update", {"status": "waiting", "completed_at": None})


@pytest.mark.asyncio
async def test_todo_created_completed_is_stamped(store: DataStore) -> None:
    item = await store.add_todo_item(
        TodoItemCreate(clinic_id="c1", claim_id="CLM-2", issue="Done already", status="completed", created_by="u2")
    )

    assert item.completed_at == NOW
    assert item.created_by == "u2"


@pytest.mark.asyncio
async def test_user_profiles_load_on_demand(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(USER_PROFILES, {"email": "b@example.com", "name": "B", "role": "billing_staff", "clinic_id": "c1"})
    profiles = await store.load_user_profiles()

    updated = await store.update_user_profile(profiles[0].id, UserProfileUpdate(role="billing_viewer"))

    assert updated.role == "billing_viewer"
    assert store.user_profiles[0].role == "billing_viewer"


@pytest.mark.asyncio
async def test_clear_drops_every_collection(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(CLINICS, {"name": "North"})
    await store.refresh_data()

    store.clear()

    assert store.clinics == []
    assert store.billing_entries == []


@pytest.mark.asyncio
async def test_uncached_invoice_update_totals_against_stored_row(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(
        INVOICES,
        {
            "id": "i1",
            "clinic_id": "c1",
            "invoice_number": "INV-2025-001",
            "date": "2025-02-01",
            "due_date": "2025-03-01",
            "items": [{"description": "Visit", "quantity": 2, "rate": 100}],
            "tax_rate": 0,
            "discount_rate": 0,
            "amount": 200,
        },
    )

    updated = await store.update_invoice("i1", InvoiceUpdate(tax_rate=10))

    assert updated.total_amount == 220
    assert backend.tables[INVOICES][0]["amount"] == 220
    assert [call[1] for call in backend.calls] == ["select", "update"]


@pytest.mark.asyncio
async def test_uncached_invoice_update_is_not_sent_when_fetch_fails(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.fail(INVOICES, "select", message="network down")

    with pytest.raises(BackendError):
        await store.update_invoice("i1", InvoiceUpdate(discount_rate=5))

    assert not [call for call in backend.calls if call[1] == "update"]


@pytest.mark.asyncio
async def test_uncached_status_update_skips_the_fetch(backend, store: DataStore) -> None:  # type: ignore[no-untyped-def]
    backend.seed(INVOICES, {"id": "i1", "clinic_id": "c1", "date": "2025-02-01", "items": [], "amount": 0})

    await store.update_invoice("i1", InvoiceUpdate(status="sent"))

    assert backend.calls == [(INVOICES, "update", {"status": "sent"})]
