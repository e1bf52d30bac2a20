"""Translation between storage rows and view models.

Storage rows use snake_case column names, carry ``created_at``/``updated_at``
audit columns and store absent optionals as ``null``. View models drop the
audit columns and expose absent optionals as ``None``. Update translators only
emit columns the caller explicitly set, so an omitted field is never
overwritten remotely.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel

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
from carebill.backend.src.schemas.invoice import (
    Invoice,
    InvoiceCreate,
    InvoiceItem,
    InvoiceUpdate,
)
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
from carebill.backend.src.services.calculations import compute_invoice_totals

Row = dict[str, Any]


def _pick(update: BaseModel, columns: Iterable[str]) -> Row:
    """Return the explicitly set fields of ``update`` restricted to ``columns``."""

    values = update.model_dump(exclude_unset=True)
    return {column: values[column] for column in columns if column in values}


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _number(value: Any) -> float:
    return float(value) if value is not None else 0.0


# Clinics


def clinic_from_row(row: Row) -> Clinic:
    return Clinic(
        id=row["id"],
        name=row["name"],
        address=_text(row.get("address")),
        phone=_text(row.get("phone")),
        active=bool(row.get("active", True)),
    )


def clinic_to_row(clinic: ClinicCreate) -> Row:
    return {
        "name": clinic.name,
        "address": clinic.address,
        "phone": clinic.phone,
        "active": clinic.active,
    }


def clinic_update_to_row(update: ClinicUpdate) -> Row:
    return _pick(update, ("name", "address", "phone", "active"))


# Providers


def provider_from_row(row: Row) -> Provider:
    return Provider(
        id=row["id"],
        name=row["name"],
        email=_text(row.get("email")),
        clinic_id=row["clinic_id"],
        active=bool(row.get("active", True)),
    )


def provider_to_row(provider: ProviderCreate) -> Row:
    return {
        "name": provider.name,
        "email": str(provider.email),
        "clinic_id": provider.clinic_id,
        "active": provider.active,
    }


def provider_update_to_row(update: ProviderUpdate) -> Row:
    row = _pick(update, ("name", "email", "clinic_id", "active"))
    if row.get("email") is not None:
        row["email"] = str(row["email"])
    return row


# Patients


def patient_from_row(row: Row) -> Patient:
    return Patient(
        id=row["id"],
        patient_id=_text(row.get("patient_id")),
        first_name=_text(row.get("first_name")),
        last_name=_text(row.get("last_name")),
        insurance=_text(row.get("insurance")),
        copay=_number(row.get("copay")),
        coinsurance=_number(row.get("coinsurance")),
        clinic_id=row["clinic_id"],
    )


def patient_to_row(patient: PatientCreate) -> Row:
    return {
        "patient_id": patient.patient_id,
        "first_name": patient.first_name,
        "last_name": patient.last_name,
        "insurance": patient.insurance,
        "copay": patient.copay,
        "coinsurance": patient.coinsurance,
        "clinic_id": patient.clinic_id,
    }


def patient_update_to_row(update: PatientUpdate) -> Row:
    return _pick(
        update,
        ("patient_id", "first_name", "last_name", "insurance", "copay", "coinsurance", "clinic_id"),
    )


# Billing entries

_BILLING_COLUMNS = (
    "provider_id",
    "clinic_id",
    "date",
    "patient_name",
    "procedure_code",
    "description",
    "amount",
    "status",
    "claim_number",
    "notes",
)


def billing_entry_from_row(row: Row) -> BillingEntry:
    return BillingEntry(
        id=row["id"],
        provider_id=row["provider_id"],
        clinic_id=row["clinic_id"],
        date=row["date"],
        patient_name=_text(row.get("patient_name")),
        procedure_code=_text(row.get("procedure_code")),
        description=_text(row.get("description")),
        amount=_number(row.get("amount")),
        status=row.get("status") or "pending",
        claim_number=row.get("claim_number"),
        notes=row.get("notes"),
    )


def billing_entry_to_row(entry: BillingEntryCreate) -> Row:
    return {
        "provider_id": entry.provider_id,
        "clinic_id": entry.clinic_id,
        "date": entry.date,
        "patient_name": entry.patient_name,
        "procedure_code": entry.procedure_code,
        "description": entry.description,
        "amount": entry.amount,
        "status": entry.status,
        "claim_number": entry.claim_number,
        "notes": entry.notes,
    }


def billing_entry_update_to_row(update: BillingEntryUpdate) -> Row:
    return _pick(update, _BILLING_COLUMNS)


# Claim issues


def claim_issue_from_row(row: Row) -> ClaimIssue:
    return ClaimIssue(
        id=row["id"],
        clinic_id=row["clinic_id"],
        provider_id=row["provider_id"],
        claim_number=_text(row.get("claim_number")),
        description=_text(row.get("description")),
        priority=row.get("priority") or "medium",
        status=row.get("status") or "open",
        assigned_to=row.get("assigned_to"),
        due_date=_text(row.get("due_date")),
        created_date=row.get("created_date"),
    )


def claim_issue_to_row(issue: ClaimIssueCreate) -> Row:
    row = {
        "clinic_id": issue.clinic_id,
        "provider_id": issue.provider_id,
        "claim_number": issue.claim_number,
        "description": issue.description,
        "priority": issue.priority,
        "status": issue.status,
        "assigned_to": issue.assigned_to,
        "due_date": issue.due_date,
    }
    # The backend stamps created_date when the caller leaves it out.
    if issue.created_date is not None:
        row["created_date"] = issue.created_date
    return row


def claim_issue_update_to_row(update: ClaimIssueUpdate) -> Row:
    return _pick(
        update,
        (
            "clinic_id",
            "provider_id",
            "claim_number",
            "description",
            "priority",
            "status",
            "assigned_to",
            "due_date",
        ),
    )


# Timecard entries


def timecard_entry_from_row(row: Row) -> TimecardEntry:
    # total_pay is recomputed by the model; a stored value is ignored.
    return TimecardEntry(
        id=row["id"],
        employee_id=row["employee_id"],
        clinic_id=row["clinic_id"],
        date=row["date"],
        hours_worked=_number(row.get("hours_worked")),
        hourly_rate=_number(row.get("hourly_rate")),
        description=_text(row.get("description")),
    )


def timecard_entry_to_row(entry: TimecardEntryCreate) -> Row:
    return {
        "employee_id": entry.employee_id,
        "clinic_id": entry.clinic_id,
        "date": entry.date,
        "hours_worked": entry.hours_worked,
        "hourly_rate": entry.hourly_rate,
        "description": entry.description,
    }


def timecard_entry_update_to_row(update: TimecardEntryUpdate) -> Row:
    return _pick(
        update, ("employee_id", "clinic_id", "date", "hours_worked", "hourly_rate", "description")
    )


# Invoices


def _items_from_row(raw: Any) -> list[InvoiceItem]:
    items = []
    for item in raw or []:
        items.append(
            InvoiceItem(
                description=_text(item.get("description")),
                quantity=_number(item.get("quantity", 1)),
                rate=_number(item.get("rate")),
            )
        )
    return items


def _items_to_row(items: Iterable[InvoiceItem]) -> list[Row]:
    return [
        {
            "description": item.description,
            "quantity": item.quantity,
            "rate": item.rate,
            "amount": item.amount,
        }
        for item in items
    ]


def invoice_from_row(row: Row) -> Invoice:
    """Build an invoice; aggregates are derived from items and rates, not ``amount``."""

    return Invoice(
        id=row["id"],
        clinic_id=row["clinic_id"],
        invoice_number=_text(row.get("invoice_number")),
        date=row["date"],
        due_date=_text(row.get("due_date")),
        status=row.get("status") or "draft",
        items=_items_from_row(row.get("items")),
        tax_rate=_number(row.get("tax_rate")),
        discount_rate=_number(row.get("discount_rate")),
        notes=row.get("notes"),
    )


def invoice_to_row(invoice: InvoiceCreate) -> Row:
    totals = compute_invoice_totals(invoice.items, invoice.tax_rate, invoice.discount_rate)
    return {
        "clinic_id": invoice.clinic_id,
        "invoice_number": invoice.invoice_number,
        "date": invoice.date,
        "due_date": invoice.due_date,
        "status": invoice.status,
        "items": _items_to_row(invoice.items),
        "tax_rate": invoice.tax_rate,
        "discount_rate": invoice.discount_rate,
        "amount": totals.total,
        "notes": invoice.notes,
    }


def invoice_update_to_row(update: InvoiceUpdate, current: Invoice | None = None) -> Row:
    """Translate an invoice update.

    When the update touches items or rates, the stored ``amount`` is recomputed
    from the values merged over ``current``. Without ``current`` it is only
    written when the update carries the items and both rates itself.
    """

    row = _pick(
        update,
        ("clinic_id", "invoice_number", "date", "due_date", "status", "tax_rate", "discount_rate", "notes"),
    )
    if "items" in update.model_fields_set and update.items is not None:
        row["items"] = _items_to_row(update.items)
    if not update.touches_totals():
        return row
    if current is None:
        if update.items is None or update.tax_rate is None or update.discount_rate is None:
            return row
        items, tax_rate, discount_rate = update.items, update.tax_rate, update.discount_rate
    else:
        items = update.items if update.items is not None else current.items
        tax_rate = update.tax_rate if update.tax_rate is not None else current.tax_rate
        discount_rate = (
            update.discount_rate if update.discount_rate is not None else current.discount_rate
        )
    row["amount"] = compute_invoice_totals(items, tax_rate, discount_rate).total
    return row


# Todo items


def todo_item_from_row(row: Row) -> TodoItem:
    return TodoItem(
        id=row["id"],
        clinic_id=row["clinic_id"],
        claim_id=_text(row.get("claim_id")),
        status=row.get("status") or "waiting",
        issue=_text(row.get("issue")),
        notes=row.get("notes"),
        flu_notes=row.get("flu_notes"),
        created_by=_text(row.get("created_by")),
        completed_at=row.get("completed_at"),
    )


def todo_item_to_row(item: TodoItemCreate) -> Row:
    return {
        "clinic_id": item.clinic_id,
        "claim_id": item.claim_id,
        "status": item.status,
        "issue": item.issue,
        "notes": item.notes,
        "flu_notes": item.flu_notes,
        "created_by": item.created_by,
        "completed_at": item.completed_at,
    }


def todo_item_update_to_row(update: TodoItemUpdate) -> Row:
    return _pick(
        update, ("clinic_id", "claim_id", "status", "issue", "notes", "flu_notes", "completed_at")
    )


# Accounts receivable


def accounts_receivable_from_row(row: Row) -> AccountsReceivable:
    return AccountsReceivable(
        id=row["id"],
        patient_id=row["patient_id"],
        clinic_id=row["clinic_id"],
        date=row["date"],
        amount=_number(row.get("amount")),
        type=row["type"],
        amount_owed=_number(row.get("amount_owed")),
        description=row.get("description"),
        notes=row.get("notes"),
    )


def accounts_receivable_to_row(record: AccountsReceivableCreate) -> Row:
    return {
        "patient_id": record.patient_id,
        "clinic_id": record.clinic_id,
        "date": record.date,
        "amount": record.amount,
        "type": record.type,
        "amount_owed": record.amount_owed,
        "description": record.description,
        "notes": record.notes,
    }


def accounts_receivable_update_to_row(update: AccountsReceivableUpdate) -> Row:
    return _pick(
        update,
        ("patient_id", "clinic_id", "date", "amount", "type", "amount_owed", "description", "notes"),
    )


# User profiles


def user_profile_from_row(row: Row) -> UserProfile:
    return UserProfile(
        id=row["id"],
        email=_text(row.get("email")),
        name=_text(row.get("name")),
        role=row.get("role") or "provider",
        clinic_id=row.get("clinic_id"),
        provider_id=row.get("provider_id"),
    )


def user_profile_to_row(profile: UserProfile) -> Row:
    return {
        "id": profile.id,
        "email": profile.email,
        "name": profile.name,
        "role": profile.role,
        "clinic_id": profile.clinic_id,
        "provider_id": profile.provider_id,
    }


def user_profile_update_to_row(update: UserProfileUpdate) -> Row:
    row = _pick(update, ("email", "name", "role", "clinic_id", "provider_id"))
    if row.get("email") is not None:
        row["email"] = str(row["email"])
    return row


__all__ = [
    "accounts_receivable_from_row",
    "accounts_receivable_to_row",
    "accounts_receivable_update_to_row",
    "billing_entry_from_row",
    "billing_entry_to_row",
    "billing_entry_update_to_row",
    "claim_issue_from_row",
    "claim_issue_to_row",
    "claim_issue_update_to_row",
    "clinic_from_row",
    "clinic_to_row",
    "clinic_update_to_row",
    "invoice_from_row",
    "invoice_to_row",
    "invoice_update_to_row",
    "patient_from_row",
    "patient_to_row",
    "patient_update_to_row",
    "provider_from_row",
    "provider_to_row",
    "provider_update_to_row",
    "timecard_entry_from_row",
    "timecard_entry_to_row",
    "timecard_entry_update_to_row",
    "todo_item_from_row",
    "todo_item_to_row",
    "todo_item_update_to_row",
    "user_profile_from_row",
    "user_profile_to_row",
    "user_profile_update_to_row",
]
