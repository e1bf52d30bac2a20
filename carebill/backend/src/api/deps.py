"""Shared route helpers: error translation and scope checks."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, TypeVar

import httpx
from fastapi import HTTPException, status

from carebill.backend.src.core.security import require_role
from carebill.backend.src.gateway.client import BackendError
from carebill.backend.src.schemas.user import UserProfile
from carebill.backend.src.services.transitions import InvalidTransitionError
from carebill.backend.src.services.visibility import CLINIC_SCOPED_ROLES, scope_for

RecordT = TypeVar("RecordT")

EDITOR_ROLES = ("provider", "office_staff", "billing_staff")

require_editor = require_role(EDITOR_ROLES)


@contextmanager
def store_errors() -> Iterator[None]:
    """Translate data store failures into HTTP errors."""

    try:
        yield
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except BackendError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message) from exc
    except httpx.HTTPError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Backend unavailable"
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def with_default_clinic(payload: Any, principal: UserProfile) -> Any:
    """Fill a missing clinic on create payloads from a clinic-scoped principal."""

    if getattr(payload, "clinic_id", None) is None and principal.role in CLINIC_SCOPED_ROLES:
        return payload.model_copy(update={"clinic_id": principal.clinic_id})
    return payload


def ensure_in_scope(record: Any, principal: UserProfile) -> None:
    if not scope_for(principal).allows(record):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Record is outside your clinic or provider scope",
        )


def find_visible(records: Sequence[RecordT], record_id: str, principal: UserProfile) -> RecordT:
    """Return the cached record if the principal may see it, else 404."""

    scope = scope_for(principal)
    for record in records:
        if getattr(record, "id", None) == record_id and scope.allows(record):
            return record
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")


__all__ = [
    "EDITOR_ROLES",
    "ensure_in_scope",
    "find_visible",
    "require_editor",
    "store_errors",
    "with_default_clinic",
]
