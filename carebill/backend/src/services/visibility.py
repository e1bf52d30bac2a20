"""Role-scoped visibility rules for dashboard collections."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from carebill.backend.src.schemas.user import UserProfile

RecordT = TypeVar("RecordT")

UNRESTRICTED_ROLES = frozenset({"admin", "super_admin"})
CLINIC_SCOPED_ROLES = frozenset({"office_staff", "billing_staff", "billing_viewer"})
USER_MANAGER_ROLES = UNRESTRICTED_ROLES
READ_ONLY_ROLES = frozenset({"billing_viewer"})


@dataclass(frozen=True, slots=True)
class VisibilityScope:
    """What a principal may see: everything, one clinic, or one provider."""

    unrestricted: bool = False
    clinic_id: str | None = None
    provider_id: str | None = None

    def allows(self, record: Any) -> bool:
        if self.unrestricted:
            return True
        if self.provider_id is not None:
            record_provider = getattr(record, "provider_id", None)
            if record_provider is not None:
                return record_provider == self.provider_id
            # Records without a provider column fall back to the clinic.
            return self.clinic_id is not None and getattr(record, "clinic_id", None) == self.clinic_id
        if self.clinic_id is not None:
            return getattr(record, "clinic_id", None) == self.clinic_id
        return False


NO_ACCESS = VisibilityScope()


def scope_for(principal: UserProfile | None) -> VisibilityScope:
    if principal is None:
        return NO_ACCESS
    if principal.role in UNRESTRICTED_ROLES:
        return VisibilityScope(unrestricted=True)
    if principal.role == "provider":
        if not principal.provider_id:
            return NO_ACCESS
        return VisibilityScope(provider_id=principal.provider_id, clinic_id=principal.clinic_id)
    if principal.role in CLINIC_SCOPED_ROLES and principal.clinic_id:
        return VisibilityScope(clinic_id=principal.clinic_id)
    return NO_ACCESS


def filter_visible(records: Iterable[RecordT], principal: UserProfile | None) -> list[RecordT]:
    """Return the records ``principal`` is allowed to see, preserving order."""

    scope = scope_for(principal)
    return [record for record in records if scope.allows(record)]


def can_manage_users(principal: UserProfile | None) -> bool:
    return principal is not None and principal.role in USER_MANAGER_ROLES


def can_edit_billing(principal: UserProfile | None) -> bool:
    return principal is not None and principal.role not in READ_ONLY_ROLES


__all__ = [
    "CLINIC_SCOPED_ROLES",
    "NO_ACCESS",
    "UNRESTRICTED_ROLES",
    "VisibilityScope",
    "can_edit_billing",
    "can_manage_users",
    "filter_visible",
    "scope_for",
]
