"""Status transition tables for entities with a workflow status.

Each entity gets a :class:`StatusMachine` listing the legal moves out of
every status. Re-applying the current status is always allowed.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass


class InvalidTransitionError(ValueError):
    """Raised when a status change is not allowed for an entity."""

    def __init__(self, entity: str, current: str, target: str) -> None:
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Cannot move {entity} from '{current}' to '{target}'")


@dataclass(frozen=True)
class StatusMachine:
    entity: str
    transitions: Mapping[str, frozenset[str]]

    @property
    def statuses(self) -> frozenset[str]:
        return frozenset(self.transitions)

    def allowed_targets(self, current: str) -> frozenset[str]:
        return self.transitions.get(current, frozenset())

    def can_transition(self, current: str, target: str) -> bool:
        if target not in self.transitions:
            return False
        return current == target or target in self.allowed_targets(current)

    def ensure(self, current: str, target: str) -> None:
        if not self.can_transition(current, target):
            raise InvalidTransitionError(self.entity, current, target)


BILLING_ENTRY_WORKFLOW = StatusMachine(
    "billing entry",
    {
        "pending": frozenset({"approved", "rejected"}),
        "approved": frozenset({"paid", "rejected", "pending"}),
        "rejected": frozenset({"pending"}),
        "paid": frozenset(),
    },
)

CLAIM_ISSUE_WORKFLOW = StatusMachine(
    "claim issue",
    {
        "open": frozenset({"in_progress", "resolved"}),
        "in_progress": frozenset({"open", "resolved"}),
        "resolved": frozenset({"open"}),
    },
)

INVOICE_WORKFLOW = StatusMachine(
    "invoice",
    {
        "draft": frozenset({"sent", "cancelled"}),
        "sent": frozenset({"paid", "overdue", "cancelled"}),
        "overdue": frozenset({"paid", "cancelled"}),
        "paid": frozenset(),
        "cancelled": frozenset(),
    },
)

TODO_ITEM_WORKFLOW = StatusMachine(
    "todo item",
    {
        "waiting": frozenset({"in_progress", "ip", "on_hold", "completed"}),
        "in_progress": frozenset({"waiting", "on_hold", "completed"}),
        "ip": frozenset({"waiting", "on_hold", "completed"}),
        "on_hold": frozenset({"waiting", "in_progress", "ip"}),
        "completed": frozenset({"waiting"}),
    },
)

__all__ = [
    "BILLING_ENTRY_WORKFLOW",
    "CLAIM_ISSUE_WORKFLOW",
    "INVOICE_WORKFLOW",
    "InvalidTransitionError",
    "StatusMachine",
    "TODO_ITEM_WORKFLOW",
]
