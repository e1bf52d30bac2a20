"""Follow-up todo item schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# "in_progress" and "ip" are both live values in stored data and are kept
# as separate variants until product decides whether they mean the same thing.
TodoStatus = Literal["waiting", "in_progress", "ip", "completed", "on_hold"]


class TodoItem(BaseModel):
    id: str
    clinic_id: str = Field(alias="clinicId")
    claim_id: str = Field(alias="claimId")
    status: TodoStatus = "waiting"
    issue: str
    notes: str | None = None
    flu_notes: str | None = Field(default=None, alias="fluNotes")
    created_by: str = Field(alias="createdBy")
    completed_at: str | None = Field(default=None, alias="completedAt")

    model_config = ConfigDict(populate_by_name=True)


class TodoItemCreate(BaseModel):
    clinic_id: str = Field(alias="clinicId")
    claim_id: str = Field(alias="claimId")
    status: TodoStatus = "waiting"
    issue: str
    notes: str | None = None
    flu_notes: str | None = Field(default=None, alias="fluNotes")
    created_by: str | None = Field(default=None, alias="createdBy")
    completed_at: str | None = Field(default=None, alias="completedAt")

    model_config = ConfigDict(populate_by_name=True)


class TodoItemUpdate(BaseModel):
    clinic_id: str | None = Field(default=None, alias="clinicId")
    claim_id: str | None = Field(default=None, alias="claimId")
    status: TodoStatus | None = None
    issue: str | None = None
    notes: str | None = None
    flu_notes: str | None = Field(default=None, alias="fluNotes")
    completed_at: str | None = Field(default=None, alias="completedAt")

    model_config = ConfigDict(populate_by_name=True)
