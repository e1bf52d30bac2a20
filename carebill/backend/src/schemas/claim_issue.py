"""Claim follow-up issue schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ClaimIssuePriority = Literal["low", "medium", "high"]
ClaimIssueStatus = Literal["open", "in_progress", "resolved"]


class ClaimIssue(BaseModel):
    id: str
    clinic_id: str = Field(alias="clinicId")
    provider_id: str = Field(alias="providerId")
    claim_number: str = Field(alias="claimNumber")
    description: str = ""
    priority: ClaimIssuePriority = "medium"
    status: ClaimIssueStatus = "open"
    assigned_to: str | None = Field(default=None, alias="assignedTo")
    due_date: str = Field(alias="dueDate")
    created_date: str | None = Field(default=None, alias="createdDate")

    model_config = ConfigDict(populate_by_name=True)


class ClaimIssueCreate(BaseModel):
    clinic_id: str = Field(alias="clinicId")
    provider_id: str = Field(alias="providerId")
    claim_number: str = Field(alias="claimNumber")
    description: str = ""
    priority: ClaimIssuePriority = "medium"
    status: ClaimIssueStatus = "open"
    assigned_to: str | None = Field(default=None, alias="assignedTo")
    due_date: str = Field(alias="dueDate")
    created_date: str | None = Field(default=None, alias="createdDate")

    model_config = ConfigDict(populate_by_name=True)


class ClaimIssueUpdate(BaseModel):
    clinic_id: str | None = Field(default=None, alias="clinicId")
    provider_id: str | None = Field(default=None, alias="providerId")
    claim_number: str | None = Field(default=None, alias="claimNumber")
    description: str | None = None
    priority: ClaimIssuePriority | None = None
    status: ClaimIssueStatus | None = None
    assigned_to: str | None = Field(default=None, alias="assignedTo")
    due_date: str | None = Field(default=None, alias="dueDate")

    model_config = ConfigDict(populate_by_name=True)
