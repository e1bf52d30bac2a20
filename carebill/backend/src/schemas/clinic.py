"""Clinic and provider schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Clinic(BaseModel):
    """A clinic tenant. Deactivation flips ``active`` rather than deleting."""

    id: str
    name: str
    address: str = ""
    phone: str = ""
    active: bool = True

    model_config = ConfigDict(populate_by_name=True)


class ClinicCreate(BaseModel):
    name: str
    address: str = ""
    phone: str = ""
    active: bool = True

    model_config = ConfigDict(populate_by_name=True)


class ClinicUpdate(BaseModel):
    name: str | None = None
    address: str | None = None
    phone: str | None = None
    active: bool | None = None

    model_config = ConfigDict(populate_by_name=True)


class Provider(BaseModel):
    """A billing provider affiliated with exactly one clinic."""

    id: str
    name: str
    email: str
    clinic_id: str = Field(alias="clinicId")
    active: bool = True

    model_config = ConfigDict(populate_by_name=True)


class ProviderCreate(BaseModel):
    name: str
    email: EmailStr
    clinic_id: str = Field(alias="clinicId")
    active: bool = True

    model_config = ConfigDict(populate_by_name=True)


class ProviderUpdate(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    clinic_id: str | None = Field(default=None, alias="clinicId")
    active: bool | None = None

    model_config = ConfigDict(populate_by_name=True)
