"""Dashboard statistics computed from the cached collections."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

from carebill.backend.src.services.calculations import payroll_summary, revenue_by_status
from carebill.backend.src.services.data_store import DataStore
from carebill.backend.src.services.visibility import VisibilityScope

RecordT = TypeVar("RecordT")


def _scoped(records: Iterable[RecordT], scope: VisibilityScope | None) -> list[RecordT]:
    if scope is None:
        return list(records)
    return [record for record in records if scope.allows(record)]


def compute_dashboard_stats(
    store: DataStore, scope: VisibilityScope | None = None
) -> dict[str, Any]:
    """Return headline counts and amounts, restricted to ``scope`` when given.

    Clinics and providers are counted only when active; issue, todo and
    invoice counts are broken down by status.
    """

    entries = _scoped(store.billing_entries, scope)
    issues = _scoped(store.claim_issues, scope)
    todos = _scoped(store.todo_items, scope)
    invoices = _scoped(store.invoices, scope)
    receivables = _scoped(store.accounts_receivable, scope)
    timecards = _scoped(store.timecard_entries, scope)

    if scope is None or scope.unrestricted:
        clinics = store.clinics
        providers = store.providers
        patients = store.patients
    else:
        clinics = [clinic for clinic in store.clinics if clinic.id == scope.clinic_id]
        providers = _scoped(store.providers, VisibilityScope(clinic_id=scope.clinic_id))
        patients = _scoped(store.patients, VisibilityScope(clinic_id=scope.clinic_id))

    by_status = revenue_by_status(entries)
    payroll = payroll_summary(timecards)

    return {
        "active_clinics": sum(1 for clinic in clinics if clinic.active),
        "active_providers": sum(1 for provider in providers if provider.active),
        "patients": len(patients),
        "total_revenue": sum(entry.amount for entry in entries),
        "revenue_by_status": by_status,
        "pending_claims": by_status["pending"]["count"],
        "open_issues": sum(1 for issue in issues if issue.status == "open"),
        "in_progress_issues": sum(1 for issue in issues if issue.status == "in_progress"),
        "resolved_issues": sum(1 for issue in issues if issue.status == "resolved"),
        "completed_todos": sum(1 for item in todos if item.status == "completed"),
        "waiting_todos": sum(1 for item in todos if item.status == "waiting"),
        "total_invoices": len(invoices),
        "paid_invoices": sum(1 for invoice in invoices if invoice.status == "paid"),
        "overdue_invoices": sum(1 for invoice in invoices if invoice.status == "overdue"),
        "accounts_receivable_owed": sum(record.amount_owed for record in receivables),
        "total_hours": payroll["total_hours"],
        "total_payroll": payroll["total_payroll"],
    }


__all__ = ["compute_dashboard_stats"]
