"""Typed publish/subscribe channels shared between dashboard components."""

from __future__ import annotations

import inspect
from calendar import month_name
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

import structlog
from pydantic import BaseModel, Field, field_validator

LOGGER = structlog.get_logger(__name__)

EventT = TypeVar("EventT")
Handler = Callable[[EventT], "Awaitable[None] | None"]

MONTH_NAMES = [name for name in month_name if name]


class EventChannel(Generic[EventT]):
    """A named channel that delivers events of one type to its subscribers.

    Handlers may be plain callables or coroutine functions; ``publish`` awaits
    the latter in subscription order. The most recent event is retained so
    late subscribers can read the current selection.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: list[Handler[EventT]] = []
        self._latest: EventT | None = None

    @property
    def latest(self) -> EventT | None:
        return self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: Handler[EventT]) -> Callable[[], None]:
        """Register ``handler`` and return a callable that removes it."""

        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    async def publish(self, event: EventT) -> None:
        self._latest = event
        LOGGER.debug("event_published", channel=self.name, subscribers=len(self._handlers))
        for handler in list(self._handlers):
            result = handler(event)
            if inspect.isawaitable(result):
                await result


class MonthSelection(BaseModel):
    """Month/year picked in the sidebar for the billing views."""

    month: str = Field(description="Full month name, e.g. 'January'")
    year: int = Field(ge=1900, le=9999)

    @field_validator("month")
    @classmethod
    def _normalize_month(cls, value: str) -> str:
        candidate = value.strip().capitalize()
        if candidate not in MONTH_NAMES:
            raise ValueError(f"Unknown month: {value!r}")
        return candidate

    @property
    def label(self) -> str:
        """Return the selection as a 'January 2025' style label."""

        return f"{self.month} {self.year}"


def month_selection_channel() -> EventChannel[MonthSelection]:
    """Return a fresh channel for billing month selections."""

    return EventChannel[MonthSelection]("billing.month_selection")


__all__ = [
    "EventChannel",
    "MONTH_NAMES",
    "MonthSelection",
    "month_selection_channel",
]
