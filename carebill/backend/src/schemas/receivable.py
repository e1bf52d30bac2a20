"""Accounts receivable schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ReceivableType = Literal["Insurance", "Patient", "Clinic"]


class AccountsReceivable(BaseModel):
    id: str
    patient_id: str = Field(alias="patientId")
    clinic_id: str = Field(alias="clinicId")
    date: str
    amount: float
    type: ReceivableType
    amount_owed: float = Field(alias="amountOwed")
    description: str | None = None
    notes: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class AccountsReceivableCreate(BaseModel):
    patient_id: str = Field(alias="patientId")
    clinic_id: str = Field(alias="clinicId")
    date: str
    amount: float
    type: ReceivableType
    amount_owed: float = Field(alias="amountOwed")
    description: str | None = None
    notes: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class AccountsReceivableUpdate(BaseModel):
    patient_id: str | None = Field(default=None, alias="patientId")
    clinic_id: str | None = Field(default=None, alias="clinicId")
    date: str | None = None
    amount: float | None = None
    type: ReceivableType | None = None
    amount_owed: float | None = Field(default=None, alias="amountOwed")
    description: str | None = None
    notes: str | None = None

    model_config = ConfigDict(populate_by_name=True)
