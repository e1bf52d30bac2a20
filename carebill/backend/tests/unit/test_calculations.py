"""Unit tests for monetary calculations and computed model fields."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pandas as pd
import pytest

from carebill.backend.src.schemas.billing_entry import BillingEntry
from carebill.backend.src.schemas.clinic import Clinic, Provider
from carebill.backend.src.schemas.invoice import Invoice, InvoiceItem
from carebill.backend.src.schemas.timecard import TimecardEntry
from carebill.backend.src.services.calculations import (
    calc_total_pay,
    compute_invoice_totals,
    payroll_summary,
    revenue_by_clinic,
    revenue_by_provider,
    revenue_by_status,
)


def _entry(entry_id: str, clinic_id: str, provider_id: str, amount: float, status: str) -> BillingEntry:
    return BillingEntry(
        id=entry_id,
        provider_id=provider_id,
        clinic_id=clinic_id,
        date="2025-01-10",
        patient_name="Jane Roe",
        procedure_code="99213",
        amount=amount,
        status=status,
    )


def test_invoice_totals_apply_tax_and_discount_percentages() -> None:
    items = [InvoiceItem(description="Visit", quantity=2, rate=100), InvoiceItem(description="Lab", rate=50)]

    totals = compute_invoice_totals(items, tax_rate=10, discount_rate=5)

    assert totals.subtotal == 250
    assert totals.tax_amount == 25
    assert totals.discount_amount == pytest.approx(12.5)
    assert totals.total == pytest.approx(262.5)


def test_invoice_aggregates_are_derived_from_items() -> None:
    invoice = Invoice(
        id="inv-1",
        clinic_id="c1",
        invoice_number="INV-2025-001",
        date="2025-01-01",
        due_date="2025-01-31",
        items=[InvoiceItem(description="Consult", quantity=3, rate=40)],
        tax_rate=5,
    )

    payload = invoice.model_dump(by_alias=True)

    assert invoice.items[0].amount == 120
    assert payload["subtotal"] == 120
    assert payload["taxAmount"] == 6
    assert payload["discountAmount"] == 0
    assert payload["totalAmount"] == 126


def test_empty_invoice_totals_are_zero() -> None:
    totals = compute_invoice_totals([])

    assert totals.subtotal == 0
    assert totals.total == 0


def test_timecard_total_pay_is_hours_times_rate() -> None:
    entry = TimecardEntry(
        id="t1", employee_id="e1", clinic_id="c1", date="2025-01-02", hours_worked=7.5, hourly_rate=20
    )

    assert entry.total_pay == 150
    assert entry.model_dump(by_alias=True)["totalPay"] == 150


def test_calc_total_pay_adds_column() -> None:
    df = pd.DataFrame({"hours_worked": [2.0, 4.0], "hourly_rate": [10.0, 12.5]})

    result = calc_total_pay(df)

    assert list(result["total_pay"]) == [20.0, 50.0]
    assert "total_pay" not in df.columns


def test_revenue_by_status_includes_every_status() -> None:
    entries = [
        _entry("b1", "c1", "p1", 100, "paid"),
        _entry("b2", "c1", "p1", 50, "paid"),
        _entry("b3", "c2", "p2", 75, "pending"),
    ]

    summary = revenue_by_status(entries)

    assert summary["paid"] == {"amount": 150.0, "count": 2}
    assert summary["pending"] == {"amount": 75.0, "count": 1}
    assert summary["rejected"] == {"amount": 0.0, "count": 0}


def test_revenue_rollups_sort_highest_first() -> None:
    clinics = [Clinic(id="c1", name="North"), Clinic(id="c2", name="South"), Clinic(id="c3", name="East")]
    providers = [
        Provider(id="p1", name="Dr. A", email="a@example.com", clinic_id="c1"),
        Provider(id="p2", name="Dr. B", email="b@example.com", clinic_id="c2"),
    ]
    entries = [
        _entry("b1", "c1", "p1", 100, "paid"),
        _entry("b2", "c2", "p2", 300, "approved"),
    ]

    by_clinic = revenue_by_clinic(entries, clinics)
    by_provider = revenue_by_provider(entries, providers)

    assert [row["clinic_id"] for row in by_clinic] == ["c2", "c1", "c3"]
    assert by_clinic[2] == {"clinic_id": "c3", "name": "East", "revenue": 0.0, "entries": 0}
    assert by_provider[0]["provider_id"] == "p2"
    assert by_provider[0]["revenue"] == 300.0


def test_payroll_summary_handles_empty_input() -> None:
    assert payroll_summary([]) == {"total_hours": 0.0, "total_payroll": 0.0}


def test_payroll_summary_totals_hours_and_pay() -> None:
    timecards = [
        TimecardEntry(id="t1", employee_id="e1", clinic_id="c1", date="2025-01-02", hours_worked=8, hourly_rate=25),
        TimecardEntry(id="t2", employee_id="e2", clinic_id="c1", date="2025-01-03", hours_worked=4, hourly_rate=30),
    ]

    assert payroll_summary(timecards) == {"total_hours": 12.0, "total_payroll": 320.0}
