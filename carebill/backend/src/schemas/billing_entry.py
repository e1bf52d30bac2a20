"""Billing entry schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

BillingStatus = Literal["pending", "approved", "paid", "rejected"]


class BillingEntry(BaseModel):
    """A single billed procedure submitted by a provider."""

    id: str
    provider_id: str = Field(alias="providerId")
    clinic_id: str = Field(alias="clinicId")
    date: str
    patient_name: str = Field(alias="patientName")
    procedure_code: str = Field(alias="procedureCode")
    description: str = ""
    amount: float = Field(ge=0)
    status: BillingStatus = "pending"
    claim_number: str | None = Field(default=None, alias="claimNumber")
    notes: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class BillingEntryCreate(BaseModel):
    """New entry. The clinic defaults to the provider's clinic when omitted."""

    provider_id: str = Field(alias="providerId")
    clinic_id: str | None = Field(default=None, alias="clinicId")
    date: str
    patient_name: str = Field(alias="patientName")
    procedure_code: str = Field(alias="procedureCode")
    description: str = ""
    amount: float = Field(ge=0)
    status: BillingStatus = "pending"
    claim_number: str | None = Field(default=None, alias="claimNumber")
    notes: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class BillingEntryUpdate(BaseModel):
    """Partial update; only explicitly supplied fields are written."""

    provider_id: str | None = Field(default=None, alias="providerId")
    clinic_id: str | None = Field(default=None, alias="clinicId")
    date: str | None = None
    patient_name: str | None = Field(default=None, alias="patientName")
    procedure_code: str | None = Field(default=None, alias="procedureCode")
    description: str | None = None
    amount: float | None = Field(default=None, ge=0)
    status: BillingStatus | None = None
    claim_number: str | None = Field(default=None, alias="claimNumber")
    notes: str | None = None

    model_config = ConfigDict(populate_by_name=True)
