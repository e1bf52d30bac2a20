"""Patient schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Patient(BaseModel):
    """Patient demographics and cost-sharing terms for one clinic."""

    id: str
    patient_id: str = Field(alias="patientId")
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    insurance: str = ""
    copay: float = 0.0
    coinsurance: float = 0.0
    clinic_id: str = Field(alias="clinicId")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class PatientCreate(BaseModel):
    patient_id: str = Field(alias="patientId")
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    insurance: str = ""
    copay: float = Field(default=0.0, ge=0)
    coinsurance: float = Field(default=0.0, ge=0)
    clinic_id: str = Field(alias="clinicId")

    model_config = ConfigDict(populate_by_name=True)


class PatientUpdate(BaseModel):
    patient_id: str | None = Field(default=None, alias="patientId")
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    insurance: str | None = None
    copay: float | None = Field(default=None, ge=0)
    coinsurance: float | None = Field(default=None, ge=0)
    clinic_id: str | None = Field(default=None, alias="clinicId")

    model_config = ConfigDict(populate_by_name=True)
