"""Tabular exports of cached collections.

Columns use the view-model (camelCase) field names so downloaded files match
what the dashboard shows.
"""

from __future__ import annotations

from collections.abc import Iterable
from io import BytesIO

import pandas as pd
from pydantic import BaseModel

from carebill.backend.src.schemas.billing_entry import BillingEntry
from carebill.backend.src.schemas.receivable import AccountsReceivable

BILLING_COLUMNS = [
    "date",
    "patientName",
    "procedureCode",
    "description",
    "amount",
    "status",
    "claimNumber",
    "providerId",
    "clinicId",
    "notes",
]

RECEIVABLE_COLUMNS = [
    "date",
    "patientId",
    "type",
    "amount",
    "amountOwed",
    "description",
    "notes",
    "clinicId",
]


def records_frame(records: Iterable[BaseModel], columns: list[str]) -> pd.DataFrame:
    """Return a DataFrame of ``records`` dumped by alias, restricted to ``columns``."""

    rows = [record.model_dump(by_alias=True) for record in records]
    return pd.DataFrame(rows, columns=columns)


def billing_entries_to_csv(entries: Iterable[BillingEntry]) -> str:
    return records_frame(entries, BILLING_COLUMNS).to_csv(index=False)


def billing_entries_to_excel(entries: Iterable[BillingEntry], sheet_name: str = "Billing") -> bytes:
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        records_frame(entries, BILLING_COLUMNS).to_excel(writer, sheet_name=sheet_name, index=False)
    return buffer.getvalue()


def accounts_receivable_to_csv(records: Iterable[AccountsReceivable]) -> str:
    return records_frame(records, RECEIVABLE_COLUMNS).to_csv(index=False)


__all__ = [
    "BILLING_COLUMNS",
    "RECEIVABLE_COLUMNS",
    "accounts_receivable_to_csv",
    "billing_entries_to_csv",
    "billing_entries_to_excel",
    "records_frame",
]
