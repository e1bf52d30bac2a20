"""Invoice schemas.

Line item amounts and invoice aggregates are computed fields: they are
derived from quantities, rates and the tax/discount percentages every time
they are read and cannot be set independently.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from carebill.backend.src.services.calculations import (
    InvoiceTotals,
    compute_invoice_totals,
    line_item_amount,
)

InvoiceStatus = Literal["draft", "sent", "paid", "overdue", "cancelled"]


class InvoiceItem(BaseModel):
    description: str
    quantity: float = Field(default=1, ge=0)
    rate: float = Field(default=0.0, ge=0)

    model_config = ConfigDict(populate_by_name=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def amount(self) -> float:
        return line_item_amount(self.quantity, self.rate)


class Invoice(BaseModel):
    id: str
    clinic_id: str = Field(alias="clinicId")
    invoice_number: str = Field(alias="invoiceNumber")
    date: str
    due_date: str = Field(alias="dueDate")
    status: InvoiceStatus = "draft"
    items: list[InvoiceItem] = Field(default_factory=list)
    tax_rate: float = Field(default=0.0, ge=0, alias="taxRate")
    discount_rate: float = Field(default=0.0, ge=0, alias="discountRate")
    notes: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def totals(self) -> InvoiceTotals:
        return compute_invoice_totals(self.items, self.tax_rate, self.discount_rate)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def subtotal(self) -> float:
        return self.totals.subtotal

    @computed_field(alias="taxAmount")  # type: ignore[prop-decorator]
    @property
    def tax_amount(self) -> float:
        return self.totals.tax_amount

    @computed_field(alias="discountAmount")  # type: ignore[prop-decorator]
    @property
    def discount_amount(self) -> float:
        return self.totals.discount_amount

    @computed_field(alias="totalAmount")  # type: ignore[prop-decorator]
    @property
    def total_amount(self) -> float:
        return self.totals.total


class InvoiceCreate(BaseModel):
    """New invoice payload. The number is assigned on creation when omitted."""

    clinic_id: str = Field(alias="clinicId")
    invoice_number: str | None = Field(default=None, alias="invoiceNumber")
    date: str
    due_date: str = Field(alias="dueDate")
    status: InvoiceStatus = "draft"
    items: list[InvoiceItem] = Field(default_factory=list)
    tax_rate: float = Field(default=0.0, ge=0, alias="taxRate")
    discount_rate: float = Field(default=0.0, ge=0, alias="discountRate")
    notes: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class InvoiceUpdate(BaseModel):
    clinic_id: str | None = Field(default=None, alias="clinicId")
    invoice_number: str | None = Field(default=None, alias="invoiceNumber")
    date: str | None = None
    due_date: str | None = Field(default=None, alias="dueDate")
    status: InvoiceStatus | None = None
    items: list[InvoiceItem] | None = None
    tax_rate: float | None = Field(default=None, ge=0, alias="taxRate")
    discount_rate: float | None = Field(default=None, ge=0, alias="discountRate")
    notes: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    def touches_totals(self) -> bool:
        """Return True when the update changes an input of the aggregates."""

        return bool({"items", "tax_rate", "discount_rate"} & self.model_fields_set)
