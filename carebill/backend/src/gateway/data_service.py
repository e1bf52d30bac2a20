"""Per-entity row access against the hosted store.

Each coroutine issues exactly one request and returns rows in their storage
shape (snake_case columns, nullable foreign keys). Backend errors propagate
unchanged as :class:`~carebill.backend.src.gateway.client.BackendError`.
"""

from __future__ import annotations

from typing import Any

from carebill.backend.src.gateway.client import BackendClient, RowQuery
from carebill.backend.src.services.dates import month_date_range

Row = dict[str, Any]

CLINICS = "clinics"
PROVIDERS = "providers"
PATIENTS = "patients"
BILLING_ENTRIES = "billing_entries"
CLAIM_ISSUES = "claim_issues"
TIMECARD_ENTRIES = "timecard_entries"
INVOICES = "invoices"
TODO_ITEMS = "todo_items"
ACCOUNTS_RECEIVABLE = "accounts_receivable"
USER_PROFILES = "user_profiles"


def _by_date() -> RowQuery:
    return RowQuery().order_by("date", descending=True)


def _apply_month(query: RowQuery, month: str | None) -> RowQuery:
    if month:
        start, end = month_date_range(month)
        query.gte("date", start).lte("date", end)
    return query


class DataService:
    """Narrow fetch/insert/update/delete calls, one per entity and operation."""

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    # Clinics
    async def get_clinics(self) -> list[Row]:
        return await self._client.select(CLINICS, RowQuery().order_by("name"))

    async def get_clinic_by_id(self, clinic_id: str) -> Row:
        return await self._client.select_single(CLINICS, RowQuery().eq("id", clinic_id))

    async def create_clinic(self, row: Row) -> Row:
        return await self._client.insert(CLINICS, row)

    async def update_clinic(self, clinic_id: str, changes: Row) -> Row:
        return await self._client.update(CLINICS, clinic_id, changes)

    async def delete_clinic(self, clinic_id: str) -> None:
        await self._client.delete(CLINICS, clinic_id)

    # Providers
    async def get_providers(self) -> list[Row]:
        return await self._client.select(PROVIDERS, RowQuery().order_by("name"))

    async def get_providers_by_clinic(self, clinic_id: str) -> list[Row]:
        return await self._client.select(
            PROVIDERS, RowQuery().eq("clinic_id", clinic_id).order_by("name")
        )

    async def get_provider_by_id(self, provider_id: str) -> Row:
        return await self._client.select_single(PROVIDERS, RowQuery().eq("id", provider_id))

    async def create_provider(self, row: Row) -> Row:
        return await self._client.insert(PROVIDERS, row)

    async def update_provider(self, provider_id: str, changes: Row) -> Row:
        return await self._client.update(PROVIDERS, provider_id, changes)

    async def delete_provider(self, provider_id: str) -> None:
        await self._client.delete(PROVIDERS, provider_id)

    # Patients
    async def get_patients(self) -> list[Row]:
        return await self._client.select(
            PATIENTS, RowQuery().order_by("last_name").order_by("first_name")
        )

    async def get_patients_by_clinic(self, clinic_id: str) -> list[Row]:
        return await self._client.select(
            PATIENTS,
            RowQuery().eq("clinic_id", clinic_id).order_by("last_name").order_by("first_name"),
        )

    async def get_patient_by_id(self, patient_id: str) -> Row:
        return await self._client.select_single(PATIENTS, RowQuery().eq("id", patient_id))

    async def create_patient(self, row: Row) -> Row:
        return await self._client.insert(PATIENTS, row)

    async def update_patient(self, patient_id: str, changes: Row) -> Row:
        return await self._client.update(PATIENTS, patient_id, changes)

    async def delete_patient(self, patient_id: str) -> None:
        await self._client.delete(PATIENTS, patient_id)

    # Billing entries
    async def get_billing_entries(self) -> list[Row]:
        return await self._client.select(BILLING_ENTRIES, _by_date())

    async def get_billing_entries_by_clinic(self, clinic_id: str) -> list[Row]:
        return await self._client.select(BILLING_ENTRIES, _by_date().eq("clinic_id", clinic_id))

    async def get_billing_entries_by_provider(self, provider_id: str) -> list[Row]:
        return await self._client.select(BILLING_ENTRIES, _by_date().eq("provider_id", provider_id))

    async def get_billing_entries_by_month(
        self,
        clinic_id: str | None = None,
        provider_id: str | None = None,
        month: str | None = None,
    ) -> list[Row]:
        """Return entries filtered by any of clinic, provider and "January 2025" month."""

        query = _by_date()
        if clinic_id:
            query.eq("clinic_id", clinic_id)
        if provider_id:
            query.eq("provider_id", provider_id)
        return await self._client.select(BILLING_ENTRIES, _apply_month(query, month))

    async def create_billing_entry(self, row: Row) -> Row:
        return await self._client.insert(BILLING_ENTRIES, row)

    async def update_billing_entry(self, entry_id: str, changes: Row) -> Row:
        return await self._client.update(BILLING_ENTRIES, entry_id, changes)

    async def delete_billing_entry(self, entry_id: str) -> None:
        await self._client.delete(BILLING_ENTRIES, entry_id)

    # Claim issues
    async def get_claim_issues(self) -> list[Row]:
        return await self._client.select(
            CLAIM_ISSUES, RowQuery().order_by("created_date", descending=True)
        )

    async def get_claim_issues_by_clinic(self, clinic_id: str) -> list[Row]:
        return await self._client.select(
            CLAIM_ISSUES,
            RowQuery().eq("clinic_id", clinic_id).order_by("created_date", descending=True),
        )

    async def create_claim_issue(self, row: Row) -> Row:
        return await self._client.insert(CLAIM_ISSUES, row)

    async def update_claim_issue(self, issue_id: str, changes: Row) -> Row:
        return await self._client.update(CLAIM_ISSUES, issue_id, changes)

    async def delete_claim_issue(self, issue_id: str) -> None:
        await self._client.delete(CLAIM_ISSUES, issue_id)

    # Timecard entries
    async def get_timecard_entries(self) -> list[Row]:
        return await self._client.select(TIMECARD_ENTRIES, _by_date())

    async def get_timecard_entries_by_employee(self, employee_id: str) -> list[Row]:
        return await self._client.select(TIMECARD_ENTRIES, _by_date().eq("employee_id", employee_id))

    async def create_timecard_entry(self, row: Row) -> Row:
        return await self._client.insert(TIMECARD_ENTRIES, row)

    async def update_timecard_entry(self, entry_id: str, changes: Row) -> Row:
        return await self._client.update(TIMECARD_ENTRIES, entry_id, changes)

    async def delete_timecard_entry(self, entry_id: str) -> None:
        await self._client.delete(TIMECARD_ENTRIES, entry_id)

    # Invoices
    async def get_invoices(self) -> list[Row]:
        return await self._client.select(INVOICES, _by_date())

    async def get_invoices_by_clinic(self, clinic_id: str) -> list[Row]:
        return await self._client.select(INVOICES, _by_date().eq("clinic_id", clinic_id))

    async def get_invoice_by_id(self, invoice_id: str) -> Row:
        return await self._client.select_single(INVOICES, RowQuery().eq("id", invoice_id))

    async def create_invoice(self, row: Row) -> Row:
        return await self._client.insert(INVOICES, row)

    async def update_invoice(self, invoice_id: str, changes: Row) -> Row:
        return await self._client.update(INVOICES, invoice_id, changes)

    async def delete_invoice(self, invoice_id: str) -> None:
        await self._client.delete(INVOICES, invoice_id)

    # Todo items
    async def get_todo_items(self) -> list[Row]:
        return await self._client.select(
            TODO_ITEMS, RowQuery().order_by("created_at", descending=True)
        )

    async def get_todo_items_by_clinic(self, clinic_id: str) -> list[Row]:
        return await self._client.select(
            TODO_ITEMS,
            RowQuery().eq("clinic_id", clinic_id).order_by("created_at", descending=True),
        )

    async def create_todo_item(self, row: Row) -> Row:
        return await self._client.insert(TODO_ITEMS, row)

    async def update_todo_item(self, item_id: str, changes: Row) -> Row:
        return await self._client.update(TODO_ITEMS, item_id, changes)

    async def delete_todo_item(self, item_id: str) -> None:
        await self._client.delete(TODO_ITEMS, item_id)

    # Accounts receivable
    async def get_accounts_receivable(self) -> list[Row]:
        return await self._client.select(ACCOUNTS_RECEIVABLE, _by_date())

    async def get_accounts_receivable_by_clinic(self, clinic_id: str) -> list[Row]:
        return await self._client.select(ACCOUNTS_RECEIVABLE, _by_date().eq("clinic_id", clinic_id))

    async def get_accounts_receivable_by_month(
        self, clinic_id: str | None = None, month: str | None = None
    ) -> list[Row]:
        query = _by_date()
        if clinic_id:
            query.eq("clinic_id", clinic_id)
        return await self._client.select(ACCOUNTS_RECEIVABLE, _apply_month(query, month))

    async def create_accounts_receivable(self, row: Row) -> Row:
        return await self._client.insert(ACCOUNTS_RECEIVABLE, row)

    async def update_accounts_receivable(self, record_id: str, changes: Row) -> Row:
        return await self._client.update(ACCOUNTS_RECEIVABLE, record_id, changes)

    async def delete_accounts_receivable(self, record_id: str) -> None:
        await self._client.delete(ACCOUNTS_RECEIVABLE, record_id)

    # User profiles
    async def get_user_profile(self, user_id: str) -> Row | None:
        return await self._client.select_maybe_single(USER_PROFILES, RowQuery().eq("id", user_id))

    async def get_user_profiles(self) -> list[Row]:
        return await self._client.select(USER_PROFILES, RowQuery().order_by("email"))

    async def create_user_profile(self, row: Row) -> Row:
        return await self._client.insert(USER_PROFILES, row)

    async def update_user_profile(self, user_id: str, changes: Row) -> Row:
        return await self._client.update(USER_PROFILES, user_id, changes)


__all__ = [
    "ACCOUNTS_RECEIVABLE",
    "BILLING_ENTRIES",
    "CLAIM_ISSUES",
    "CLINICS",
    "DataService",
    "INVOICES",
    "PATIENTS",
    "PROVIDERS",
    "TIMECARD_ENTRIES",
    "TODO_ITEMS",
    "USER_PROFILES",
]
