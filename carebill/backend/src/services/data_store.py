"""In-memory application data store.

The store caches every entity collection for the current session. Commands
follow one protocol: translate the payload to a storage row, perform the
remote write, then patch the local collection from the returned row. When the
remote write fails the error is logged and re-raised and the cache is left
untouched.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, TypeVar

import httpx
import structlog

from carebill.backend.src.gateway.client import BackendError
from carebill.backend.src.gateway.data_service import DataService
from carebill.backend.src.schemas.billing_entry import (
    BillingEntry,
    BillingEntryCreate,
    BillingEntryUpdate,
)
from carebill.backend.src.schemas.claim_issue import (
    ClaimIssue,
    ClaimIssueCreate,
    ClaimIssueUpdate,
)
from carebill.backend.src.schemas.clinic import (
    Clinic,
    ClinicCreate,
    ClinicUpdate,
    Provider,
    ProviderCreate,
    ProviderUpdate,
)
from carebill.backend.src.schemas.invoice import Invoice, InvoiceCreate, InvoiceUpdate
from carebill.backend.src.schemas.patient import Patient, PatientCreate, PatientUpdate
from carebill.backend.src.schemas.receivable import (
    AccountsReceivable,
    AccountsReceivableCreate,
    AccountsReceivableUpdate,
)
from carebill.backend.src.schemas.timecard import (
    TimecardEntry,
    TimecardEntryCreate,
    TimecardEntryUpdate,
)
from carebill.backend.src.schemas.todo import TodoItem, TodoItemCreate, TodoItemUpdate
from carebill.backend.src.schemas.user import UserProfile, UserProfileUpdate
from carebill.backend.src.services import translators as tr
from carebill.backend.src.services.invoicing import next_invoice_number
from carebill.backend.src.services.transitions import (
    BILLING_ENTRY_WORKFLOW,
    CLAIM_ISSUE_WORKFLOW,
    INVOICE_WORKFLOW,
    TODO_ITEM_WORKFLOW,
    StatusMachine,
)

LOGGER = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=Any)

REMOTE_ERRORS = (BackendError, httpx.HTTPError)


@contextmanager
def _logged_failure(operation: str, **context: Any) -> Iterator[None]:
    """Log a failed remote call and let the error propagate."""

    try:
        yield
    except REMOTE_ERRORS as exc:
        LOGGER.error("store_command_failed", operation=operation, error=str(exc), **context)
        raise


def _find(records: Sequence[RecordT], record_id: str) -> RecordT | None:
    return next((record for record in records if record.id == record_id), None)


def _replace(records: Sequence[RecordT], updated: RecordT) -> list[RecordT]:
    return [updated if record.id == updated.id else record for record in records]


def _without(records: Sequence[RecordT], record_id: str) -> list[RecordT]:
    return [record for record in records if record.id != record_id]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DataStore:
    """Session-wide cache of all entity collections plus their commands."""

    def __init__(
        self,
        data_service: DataService,
        *,
        today: Callable[[], date] = date.today,
        now: Callable[[], str] = _utc_now,
    ) -> None:
        self._data = data_service
        self._today = today
        self._now = now
        self.loading = False
        self.error: str | None = None
        self.clear()

    def clear(self) -> None:
        """Drop every cached collection, e.g. after sign-out."""

        self.clinics: list[Clinic] = []
        self.providers: list[Provider] = []
        self.patients: list[Patient] = []
        self.billing_entries: list[BillingEntry] = []
        self.claim_issues: list[ClaimIssue] = []
        self.timecard_entries: list[TimecardEntry] = []
        self.invoices: list[Invoice] = []
        self.todo_items: list[TodoItem] = []
        self.accounts_receivable: list[AccountsReceivable] = []
        self.user_profiles: list[UserProfile] = []
        self.error = None

    async def refresh_data(self) -> None:
        """Bulk-load every collection concurrently and replace the cache."""

        self.loading = True
        self.error = None
        try:
            (
                clinics,
                providers,
                patients,
                billing_entries,
                claim_issues,
                timecard_entries,
                invoices,
                todo_items,
                accounts_receivable,
            ) = await asyncio.gather(
                self._data.get_clinics(),
                self._data.get_providers(),
                self._data.get_patients(),
                self._data.get_billing_entries(),
                self._data.get_claim_issues(),
                self._data.get_timecard_entries(),
                self._data.get_invoices(),
                self._data.get_todo_items(),
                self._data.get_accounts_receivable(),
            )
        except REMOTE_ERRORS as exc:
            self.error = str(exc)
            LOGGER.error("store_refresh_failed", error=str(exc))
            raise
        finally:
            self.loading = False

        self.clinics = [tr.clinic_from_row(row) for row in clinics]
        self.providers = [tr.provider_from_row(row) for row in providers]
        self.patients = [tr.patient_from_row(row) for row in patients]
        self.billing_entries = [tr.billing_entry_from_row(row) for row in billing_entries]
        self.claim_issues = [tr.claim_issue_from_row(row) for row in claim_issues]
        self.timecard_entries = [tr.timecard_entry_from_row(row) for row in timecard_entries]
        self.invoices = [tr.invoice_from_row(row) for row in invoices]
        self.todo_items = [tr.todo_item_from_row(row) for row in todo_items]
        self.accounts_receivable = [
            tr.accounts_receivable_from_row(row) for row in accounts_receivable
        ]
        LOGGER.info(
            "store_refreshed",
            clinics=len(self.clinics),
            providers=len(self.providers),
            billing_entries=len(self.billing_entries),
            invoices=len(self.invoices),
        )

    @staticmethod
    def _check_transition(
        machine: StatusMachine, current: Any, target: str | None
    ) -> None:
        # Records that are not cached cannot be checked; the backend decides.
        if current is None or target is None:
            return
        machine.ensure(current.status, target)

    # Scoped refreshes

    async def refresh_billing_entries(
        self,
        clinic_id: str | None = None,
        provider_id: str | None = None,
        month: str | None = None,
    ) -> list[BillingEntry]:
        with _logged_failure("refresh_billing_entries", clinic_id=clinic_id, month=month):
            rows = await self._data.get_billing_entries_by_month(
                clinic_id=clinic_id, provider_id=provider_id, month=month
            )
        self.billing_entries = [tr.billing_entry_from_row(row) for row in rows]
        return self.billing_entries

    async def refresh_todo_items(self, clinic_id: str | None = None) -> list[TodoItem]:
        with _logged_failure("refresh_todo_items", clinic_id=clinic_id):
            if clinic_id:
                rows = await self._data.get_todo_items_by_clinic(clinic_id)
            else:
                rows = await self._data.get_todo_items()
        self.todo_items = [tr.todo_item_from_row(row) for row in rows]
        return self.todo_items

    async def refresh_accounts_receivable(
        self, clinic_id: str | None = None, month: str | None = None
    ) -> list[AccountsReceivable]:
        with _logged_failure("refresh_accounts_receivable", clinic_id=clinic_id, month=month):
            rows = await self._data.get_accounts_receivable_by_month(
                clinic_id=clinic_id, month=month
            )
        self.accounts_receivable = [tr.accounts_receivable_from_row(row) for row in rows]
        return self.accounts_receivable

    # Clinics

    async def add_clinic(self, clinic: ClinicCreate) -> Clinic:
        row = tr.clinic_to_row(clinic)
        with _logged_failure("add_clinic"):
            created = tr.clinic_from_row(await self._data.create_clinic(row))
        # Clinics and providers keep their name order, so new ones go last.
        self.clinics = [*self.clinics, created]
        return created

    async def update_clinic(self, clinic_id: str, update: ClinicUpdate) -> Clinic:
        row = tr.clinic_update_to_row(update)
        with _logged_failure("update_clinic", clinic_id=clinic_id):
            updated = tr.clinic_from_row(await self._data.update_clinic(clinic_id, row))
        self.clinics = _replace(self.clinics, updated)
        return updated

    async def delete_clinic(self, clinic_id: str) -> None:
        with _logged_failure("delete_clinic", clinic_id=clinic_id):
            await self._data.delete_clinic(clinic_id)
        self.clinics = _without(self.clinics, clinic_id)

    # Providers

    async def add_provider(self, provider: ProviderCreate) -> Provider:
        row = tr.provider_to_row(provider)
        with _logged_failure("add_provider"):
            created = tr.provider_from_row(await self._data.create_provider(row))
        self.providers = [*self.providers, created]
        return created

    async def update_provider(self, provider_id: str, update: ProviderUpdate) -> Provider:
        row = tr.provider_update_to_row(update)
        with _logged_failure("update_provider", provider_id=provider_id):
            updated = tr.provider_from_row(await self._data.update_provider(provider_id, row))
        self.providers = _replace(self.providers, updated)
        return updated

    async def delete_provider(self, provider_id: str) -> None:
        with _logged_failure("delete_provider", provider_id=provider_id):
            await self._data.delete_provider(provider_id)
        self.providers = _without(self.providers, provider_id)

    # Patients

    async def add_patient(self, patient: PatientCreate) -> Patient:
        row = tr.patient_to_row(patient)
        with _logged_failure("add_patient"):
            created = tr.patient_from_row(await self._data.create_patient(row))
        self.patients = [created, *self.patients]
        return created

    async def update_patient(self, patient_id: str, update: PatientUpdate) -> Patient:
        row = tr.patient_update_to_row(update)
        with _logged_failure("update_patient", patient_id=patient_id):
            updated = tr.patient_from_row(await self._data.update_patient(patient_id, row))
        self.patients = _replace(self.patients, updated)
        return updated

    async def delete_patient(self, patient_id: str) -> None:
        with _logged_failure("delete_patient", patient_id=patient_id):
            await self._data.delete_patient(patient_id)
        self.patients = _without(self.patients, patient_id)

    # Billing entries

    async def add_billing_entry(self, entry: BillingEntryCreate) -> BillingEntry:
        if entry.clinic_id is None:
            provider = _find(self.providers, entry.provider_id)
            if provider is None:
                raise ValueError(
                    f"Billing entry needs a clinic: provider {entry.provider_id!r} is not loaded"
                )
            entry = entry.model_copy(update={"clinic_id": provider.clinic_id})
        row = tr.billing_entry_to_row(entry)
        with _logged_failure("add_billing_entry", provider_id=entry.provider_id):
            created = tr.billing_entry_from_row(await self._data.create_billing_entry(row))
        self.billing_entries = [created, *self.billing_entries]
        return created

    async def update_billing_entry(
        self, entry_id: str, update: BillingEntryUpdate
    ) -> BillingEntry:
        self._check_transition(
            BILLING_ENTRY_WORKFLOW, _find(self.billing_entries, entry_id), update.status
        )
        row = tr.billing_entry_update_to_row(update)
        with _logged_failure("update_billing_entry", entry_id=entry_id):
            updated = tr.billing_entry_from_row(
                await self._data.update_billing_entry(entry_id, row)
            )
        self.billing_entries = _replace(self.billing_entries, updated)
        return updated

    async def delete_billing_entry(self, entry_id: str) -> None:
        with _logged_failure("delete_billing_entry", entry_id=entry_id):
            await self._data.delete_billing_entry(entry_id)
        self.billing_entries = _without(self.billing_entries, entry_id)

    # Claim issues

    async def add_claim_issue(self, issue: ClaimIssueCreate) -> ClaimIssue:
        row = tr.claim_issue_to_row(issue)
        with _logged_failure("add_claim_issue", claim_number=issue.claim_number):
            created = tr.claim_issue_from_row(await self._data.create_claim_issue(row))
        self.claim_issues = [created, *self.claim_issues]
        return created

    async def update_claim_issue(self, issue_id: str, update: ClaimIssueUpdate) -> ClaimIssue:
        self._check_transition(
            CLAIM_ISSUE_WORKFLOW, _find(self.claim_issues, issue_id), update.status
        )
        row = tr.claim_issue_update_to_row(update)
        with _logged_failure("update_claim_issue", issue_id=issue_id):
            updated = tr.claim_issue_from_row(await self._data.update_claim_issue(issue_id, row))
        self.claim_issues = _replace(self.claim_issues, updated)
        return updated

    async def delete_claim_issue(self, issue_id: str) -> None:
        with _logged_failure("delete_claim_issue", issue_id=issue_id):
            await self._data.delete_claim_issue(issue_id)
        self.claim_issues = _without(self.claim_issues, issue_id)

    # Timecard entries

    async def add_timecard_entry(self, entry: TimecardEntryCreate) -> TimecardEntry:
        row = tr.timecard_entry_to_row(entry)
        with _logged_failure("add_timecard_entry", employee_id=entry.employee_id):
            created = tr.timecard_entry_from_row(await self._data.create_timecard_entry(row))
        self.timecard_entries = [created, *self.timecard_entries]
        return created

    async def update_timecard_entry(
        self, entry_id: str, update: TimecardEntryUpdate
    ) -> TimecardEntry:
        row = tr.timecard_entry_update_to_row(update)
        with _logged_failure("update_timecard_entry", entry_id=entry_id):
            updated = tr.timecard_entry_from_row(
                await self._data.update_timecard_entry(entry_id, row)
            )
        self.timecard_entries = _replace(self.timecard_entries, updated)
        return updated

    async def delete_timecard_entry(self, entry_id: str) -> None:
        with _logged_failure("delete_timecard_entry", entry_id=entry_id):
            await self._data.delete_timecard_entry(entry_id)
        self.timecard_entries = _without(self.timecard_entries, entry_id)

    # Invoices

    async def add_invoice(self, invoice: InvoiceCreate) -> Invoice:
        """Create an invoice, numbering it ``INV-<year>-<NNN>`` when unnumbered."""

        if not invoice.invoice_number:
            number = next_invoice_number(
                (existing.invoice_number for existing in self.invoices), self._today().year
            )
            invoice = invoice.model_copy(update={"invoice_number": number})
        row = tr.invoice_to_row(invoice)
        with _logged_failure("add_invoice", invoice_number=invoice.invoice_number):
            created = tr.invoice_from_row(await self._data.create_invoice(row))
        self.invoices = [created, *self.invoices]
        return created

    async def update_invoice(self, invoice_id: str, update: InvoiceUpdate) -> Invoice:
        """Update an invoice, storing an ``amount`` recomputed from the merged values.

        Items and rates of an invoice missing from the cache are fetched first,
        so a partial update never totals against defaults.
        """

        current = _find(self.invoices, invoice_id)
        if current is None and update.touches_totals():
            with _logged_failure("fetch_invoice", invoice_id=invoice_id):
                current = tr.invoice_from_row(await self._data.get_invoice_by_id(invoice_id))
        self._check_transition(INVOICE_WORKFLOW, current, update.status)
        row = tr.invoice_update_to_row(update, current)
        with _logged_failure("update_invoice", invoice_id=invoice_id):
            updated = tr.invoice_from_row(await self._data.update_invoice(invoice_id, row))
        self.invoices = _replace(self.invoices, updated)
        return updated

    async def delete_invoice(self, invoice_id: str) -> None:
        with _logged_failure("delete_invoice", invoice_id=invoice_id):
            await self._data.delete_invoice(invoice_id)
        self.invoices = _without(self.invoices, invoice_id)

    # Todo items

    async def add_todo_item(
        self, item: TodoItemCreate, created_by: str | None = None
    ) -> TodoItem:
        changes: dict[str, Any] = {}
        if item.created_by is None and created_by is not None:
            changes["created_by"] = created_by
        if item.status == "completed" and item.completed_at is None:
            changes["completed_at"] = self._now()
        if changes:
            item = item.model_copy(update=changes)
        row = tr.todo_item_to_row(item)
        with _logged_failure("add_todo_item", claim_id=item.claim_id):
            created = tr.todo_item_from_row(await self._data.create_todo_item(row))
        self.todo_items = [created, *self.todo_items]
        return created

    async def update_todo_item(self, item_id: str, update: TodoItemUpdate) -> TodoItem:
        """Update a todo item; completing stamps ``completed_at`` and reopening clears it."""

        current = _find(self.todo_items, item_id)
        self._check_transition(TODO_ITEM_WORKFLOW, current, update.status)
        if update.status is not None and "completed_at" not in update.model_fields_set:
            if update.status == "completed":
                if current is None or current.status != "completed":
                    update = update.model_copy(update={"completed_at": self._now()})
            else:
                update = update.model_copy(update={"completed_at": None})
        row = tr.todo_item_update_to_row(update)
        with _logged_failure("update_todo_item", item_id=item_id):
            updated = tr.todo_item_from_row(await self._data.update_todo_item(item_id, row))
        self.todo_items = _replace(self.todo_items, updated)
        return updated

    async def delete_todo_item(self, item_id: str) -> None:
        with _logged_failure("delete_todo_item", item_id=item_id):
            await self._data.delete_todo_item(item_id)
        self.todo_items = _without(self.todo_items, item_id)

    # Accounts receivable

    async def add_accounts_receivable(
        self, record: AccountsReceivableCreate
    ) -> AccountsReceivable:
        row = tr.accounts_receivable_to_row(record)
        with _logged_failure("add_accounts_receivable", patient_id=record.patient_id):
            created = tr.accounts_receivable_from_row(
                await self._data.create_accounts_receivable(row)
            )
        self.accounts_receivable = [created, *self.accounts_receivable]
        return created

    async def update_accounts_receivable(
        self, record_id: str, update: AccountsReceivableUpdate
    ) -> AccountsReceivable:
        row = tr.accounts_receivable_update_to_row(update)
        with _logged_failure("update_accounts_receivable", record_id=record_id):
            updated = tr.accounts_receivable_from_row(
                await self._data.update_accounts_receivable(record_id, row)
            )
        self.accounts_receivable = _replace(self.accounts_receivable, updated)
        return updated

    async def delete_accounts_receivable(self, record_id: str) -> None:
        with _logged_failure("delete_accounts_receivable", record_id=record_id):
            await self._data.delete_accounts_receivable(record_id)
        self.accounts_receivable = _without(self.accounts_receivable, record_id)

    # User profiles

    async def load_user_profiles(self) -> list[UserProfile]:
        with _logged_failure("load_user_profiles"):
            rows = await self._data.get_user_profiles()
        self.user_profiles = [tr.user_profile_from_row(row) for row in rows]
        return self.user_profiles

    async def update_user_profile(self, user_id: str, update: UserProfileUpdate) -> UserProfile:
        row = tr.user_profile_update_to_row(update)
        with _logged_failure("update_user_profile", user_id=user_id):
            updated = tr.user_profile_from_row(await self._data.update_user_profile(user_id, row))
        self.user_profiles = _replace(self.user_profiles, updated)
        return updated


__all__ = ["DataStore", "REMOTE_ERRORS"]
