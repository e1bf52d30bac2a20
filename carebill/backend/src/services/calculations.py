"""Calculation helpers.

Every derived monetary value in the application is computed here: line item
amounts, invoice aggregates, timecard pay and the revenue/payroll rollups
shown on the reporting dashboards.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

BILLING_STATUSES = ("pending", "approved", "paid", "rejected")


@dataclass(frozen=True, slots=True)
class InvoiceTotals:
    subtotal: float
    tax_amount: float
    discount_amount: float
    total: float


def line_item_amount(quantity: float, rate: float) -> float:
    """Return the billed amount for a single line item."""

    return quantity * rate


def compute_invoice_totals(
    items: Iterable[Any], tax_rate: float = 0.0, discount_rate: float = 0.0
) -> InvoiceTotals:
    """Compute invoice aggregates from line items and percentage rates.

    ``items`` only need ``quantity`` and ``rate`` attributes. Rates are
    percentages, so ``tax_rate=10`` adds 10% of the subtotal.
    """

    subtotal = sum(line_item_amount(item.quantity, item.rate) for item in items)
    tax_amount = subtotal * tax_rate / 100
    discount_amount = subtotal * discount_rate / 100
    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        total=subtotal + tax_amount - discount_amount,
    )


def timecard_total_pay(hours_worked: float, hourly_rate: float) -> float:
    """Return pay owed for a timecard entry."""

    return hours_worked * hourly_rate


def _records_frame(records: Iterable[Any], columns: Sequence[str]) -> pd.DataFrame:
    rows = [{column: getattr(record, column) for column in columns} for record in records]
    return pd.DataFrame(rows, columns=list(columns))


def calc_total_pay(df: pd.DataFrame) -> pd.DataFrame:
    """Compute the total pay column from hours worked and hourly rate."""

    result = df.copy()
    if {"hours_worked", "hourly_rate"}.issubset(result.columns):
        result["total_pay"] = result["hours_worked"] * result["hourly_rate"]
    return result


def revenue_by_status(entries: Iterable[Any]) -> dict[str, dict[str, float]]:
    """Return amount and count per billing status, including empty statuses."""

    df = _records_frame(entries, ("status", "amount"))
    summary: dict[str, dict[str, float]] = {
        status: {"amount": 0.0, "count": 0} for status in BILLING_STATUSES
    }
    if df.empty:
        return summary
    grouped = df.groupby("status")["amount"].agg(["sum", "count"])
    for status, row in grouped.iterrows():
        summary[str(status)] = {"amount": float(row["sum"]), "count": int(row["count"])}
    return summary


def revenue_by_clinic(entries: Iterable[Any], clinics: Iterable[Any]) -> list[dict[str, Any]]:
    """Return billed revenue and entry counts for each clinic, highest first."""

    df = _records_frame(entries, ("clinic_id", "amount"))
    grouped = (
        df.groupby("clinic_id")["amount"].agg(["sum", "count"])
        if not df.empty
        else pd.DataFrame(columns=["sum", "count"])
    )
    rollup = []
    for clinic in clinics:
        if clinic.id in grouped.index:
            revenue = float(grouped.loc[clinic.id, "sum"])
            count = int(grouped.loc[clinic.id, "count"])
        else:
            revenue, count = 0.0, 0
        rollup.append(
            {"clinic_id": clinic.id, "name": clinic.name, "revenue": revenue, "entries": count}
        )
    return sorted(rollup, key=lambda entry: entry["revenue"], reverse=True)


def revenue_by_provider(entries: Iterable[Any], providers: Iterable[Any]) -> list[dict[str, Any]]:
    """Return billed revenue and entry counts for each provider, highest first."""

    df = _records_frame(entries, ("provider_id", "amount"))
    grouped = (
        df.groupby("provider_id")["amount"].agg(["sum", "count"])
        if not df.empty
        else pd.DataFrame(columns=["sum", "count"])
    )
    rollup = []
    for provider in providers:
        if provider.id in grouped.index:
            revenue = float(grouped.loc[provider.id, "sum"])
            count = int(grouped.loc[provider.id, "count"])
        else:
            revenue, count = 0.0, 0
        rollup.append(
            {
                "provider_id": provider.id,
                "clinic_id": provider.clinic_id,
                "name": provider.name,
                "revenue": revenue,
                "entries": count,
            }
        )
    return sorted(rollup, key=lambda entry: entry["revenue"], reverse=True)


def payroll_summary(timecards: Iterable[Any]) -> dict[str, float]:
    """Return total hours and total payroll across timecard entries."""

    df = calc_total_pay(_records_frame(timecards, ("hours_worked", "hourly_rate")))
    if df.empty:
        return {"total_hours": 0.0, "total_payroll": 0.0}
    return {
        "total_hours": float(df["hours_worked"].sum()),
        "total_payroll": float(df["total_pay"].sum()),
    }


__all__ = [
    "BILLING_STATUSES",
    "InvoiceTotals",
    "calc_total_pay",
    "compute_invoice_totals",
    "line_item_amount",
    "payroll_summary",
    "revenue_by_clinic",
    "revenue_by_provider",
    "revenue_by_status",
    "timecard_total_pay",
]
