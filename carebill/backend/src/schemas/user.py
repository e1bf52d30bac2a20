"""Pydantic schemas for user profiles and auth payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

UserRole = Literal[
    "provider",
    "office_staff",
    "billing_staff",
    "billing_viewer",
    "admin",
    "super_admin",
]


class UserProfile(BaseModel):
    """Durable record of an authenticated principal."""

    id: str
    email: str
    name: str
    role: UserRole = "provider"
    clinic_id: str | None = Field(default=None, alias="clinicId")
    provider_id: str | None = Field(default=None, alias="providerId")

    model_config = ConfigDict(populate_by_name=True)


class UserProfileUpdate(BaseModel):
    email: EmailStr | None = None
    name: str | None = None
    role: UserRole | None = None
    clinic_id: str | None = Field(default=None, alias="clinicId")
    provider_id: str | None = Field(default=None, alias="providerId")

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseModel):
    email: str
    password: str


class SignupRequest(BaseModel):
    email: str
    password: str
    name: str
    role: UserRole = "provider"
    clinic_id: str | None = Field(default=None, alias="clinicId")
    provider_id: str | None = Field(default=None, alias="providerId")

    model_config = ConfigDict(populate_by_name=True)


class PasswordResetRequest(BaseModel):
    email: str


class PasswordUpdateRequest(BaseModel):
    new_password: str = Field(alias="newPassword")
    token_hash: str | None = Field(default=None, alias="tokenHash")

    model_config = ConfigDict(populate_by_name=True)


class CommandResult(BaseModel):
    """Outcome of a session command as returned to clients."""

    success: bool
    error: str | None = None
