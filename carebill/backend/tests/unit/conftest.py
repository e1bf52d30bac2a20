"""Shared fakes for the unit suite: an in-memory row API and auth provider."""

from __future__ import annotations

import asyncio
import sys
import uuid
from collections import defaultdict
from pathlib import Path
from typing import Any

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest

from carebill.backend.src.core.config import Settings
from carebill.backend.src.core.events import EventChannel
from carebill.backend.src.gateway.auth import (
    AuthApiError,
    AuthChange,
    AuthEvent,
    AuthResponse,
    AuthSession,
    AuthUser,
)
from carebill.backend.src.gateway.client import BackendError, RowQuery
from carebill.backend.src.gateway.data_service import DataService


def _matches(row: dict[str, Any], query: RowQuery) -> bool:
    for column, operator, value in query.filters:
        current = row.get(column)
        if operator == "eq" and current != value:
            return False
        if operator == "gte" and (current is None or str(current) < str(value)):
            return False
        if operator == "lte" and (current is None or str(current) > str(value)):
            return False
    return True


def _ordered(rows: list[dict[str, Any]], query: RowQuery) -> list[dict[str, Any]]:
    for column, descending in reversed(query.ordering):
        rows = sorted(rows, key=lambda row: (row.get(column) is None, row.get(column) or ""), reverse=descending)
    return rows


class FakeBackend:
    """In-memory stand-in for :class:`BackendClient` with failure injection."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.calls: list[tuple[str, str, Any]] = []
        self.failures: dict[tuple[str, str], BackendError] = {}
        self.delays: dict[tuple[str, str], float] = {}
        self.access_token: str | None = None
        self.closed = False

    def seed(self, table: str, *rows: dict[str, Any]) -> None:
        for row in rows:
            self.tables[table].append({"id": str(uuid.uuid4()), **row})

    def fail(self, table: str, operation: str, message: str = "boom", code: str | None = None) -> None:
        self.failures[(table, operation)] = BackendError(message, code=code, status_code=400)

    def stall(self, table: str, operation: str, seconds: float) -> None:
        self.delays[(table, operation)] = seconds

    async def _check(self, table: str, operation: str, payload: Any = None) -> None:
        self.calls.append((table, operation, payload))
        delay = self.delays.get((table, operation))
        if delay:
            await asyncio.sleep(delay)
        error = self.failures.get((table, operation))
        if error is not None:
            raise error

    def set_access_token(self, token: str | None) -> None:
        self.access_token = token

    async def select(self, table: str, query: RowQuery | None = None) -> list[dict[str, Any]]:
        query = query or RowQuery()
        await self._check(table, "select", query)
        rows = [dict(row) for row in self.tables[table] if _matches(row, query)]
        return _ordered(rows, query)

    async def select_single(self, table: str, query: RowQuery) -> dict[str, Any]:
        rows = await self.select(table, query)
        if len(rows) != 1:
            raise BackendError(
                "JSON object requested, multiple (or no) rows returned",
                code="PGRST116",
                status_code=406,
            )
        return rows[0]

    async def select_maybe_single(self, table: str, query: RowQuery) -> dict[str, Any] | None:
        rows = await self.select(table, query)
        if len(rows) > 1:
            raise BackendError("JSON object requested, multiple (or no) rows returned", code="PGRST116")
        return rows[0] if rows else None

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        await self._check(table, "insert", row)
        stored = {"id": str(uuid.uuid4()), "created_at": "2025-01-01T00:00:00Z", **row}
        self.tables[table].append(stored)
        return dict(stored)

    async def update(self, table: str, row_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        await self._check(table, "update", changes)
        for row in self.tables[table]:
            if row["id"] == row_id:
                row.update(changes)
                return dict(row)
        raise BackendError("JSON object requested, multiple (or no) rows returned", code="PGRST116")

    async def delete(self, table: str, row_id: str) -> None:
        await self._check(table, "delete", row_id)
        self.tables[table] = [row for row in self.tables[table] if row["id"] != row_id]

    async def aclose(self) -> None:
        self.closed = True


def make_user(
    email: str = "pat@example.com",
    *,
    user_id: str | None = None,
    confirmed: bool = True,
    metadata: dict[str, Any] | None = None,
) -> AuthUser:
    return AuthUser(
        id=user_id or str(uuid.uuid4()),
        email=email,
        email_confirmed_at="2025-01-01T00:00:00Z" if confirmed else None,
        user_metadata=metadata or {},
    )


class FakeAuth:
    """In-memory stand-in for :class:`AuthClient`."""

    def __init__(self, session: AuthSession | None = None) -> None:
        self._session = session
        self.accounts: dict[str, tuple[str, AuthUser]] = {}
        self.errors: dict[str, Exception] = {}
        self.confirm_on_signup = True
        self.reset_requests: list[tuple[str, str | None]] = []
        self.recovery_tokens: dict[str, AuthUser] = {}
        self.changes: EventChannel[AuthChange] = EventChannel("auth.state_change")
        self.closed = False

    def add_account(self, password: str, user: AuthUser) -> AuthUser:
        self.accounts[user.email] = (password, user)
        return user

    def on_auth_state_change(self, listener):  # type: ignore[no-untyped-def]
        return self.changes.subscribe(listener)

    def _raise_if_configured(self, action: str) -> None:
        error = self.errors.get(action)
        if error is not None:
            raise error

    async def _emit(self, event: AuthEvent) -> None:
        await self.changes.publish(AuthChange(event=event, session=self._session))

    async def get_session(self) -> AuthSession | None:
        self._raise_if_configured("get_session")
        return self._session

    async def sign_in_with_password(self, email: str, password: str) -> AuthResponse:
        self._raise_if_configured("sign_in")
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise AuthApiError("Invalid login credentials", status_code=400)
        user = account[1]
        if not user.email_confirmed:
            raise AuthApiError("Email not confirmed", status_code=400)
        self._session = AuthSession(access_token=f"token-{user.id}", refresh_token="refresh", user=user)
        await self._emit(AuthEvent.SIGNED_IN)
        return AuthResponse(user=user, session=self._session)

    async def sign_up(
        self, email: str, password: str, *, data: dict[str, Any] | None = None
    ) -> AuthResponse:
        self._raise_if_configured("sign_up")
        if email in self.accounts:
            raise AuthApiError("User already registered", status_code=422)
        user = make_user(email, confirmed=self.confirm_on_signup, metadata=data)
        self.accounts[email] = (password, user)
        if not user.email_confirmed:
            return AuthResponse(user=user, session=None)
        self._session = AuthSession(access_token=f"token-{user.id}", refresh_token="refresh", user=user)
        await self._emit(AuthEvent.SIGNED_IN)
        return AuthResponse(user=user, session=self._session)

    async def sign_out(self) -> None:
        try:
            self._raise_if_configured("sign_out")
        finally:
            self._session = None
            await self._emit(AuthEvent.SIGNED_OUT)

    async def reset_password_for_email(self, email: str, *, redirect_to: str | None = None) -> None:
        self._raise_if_configured("reset_password")
        self.reset_requests.append((email, redirect_to))

    async def verify_recovery(self, token_hash: str) -> AuthResponse:
        self._raise_if_configured("verify_recovery")
        user = self.recovery_tokens.get(token_hash)
        if user is None:
            raise AuthApiError("Email link is invalid or has expired", status_code=403)
        self._session = AuthSession(access_token=f"token-{user.id}", refresh_token="refresh", user=user)
        await self._emit(AuthEvent.PASSWORD_RECOVERY)
        return AuthResponse(user=user, session=self._session)

    async def update_user(self, *, password: str | None = None, data: dict[str, Any] | None = None) -> AuthUser:
        self._raise_if_configured("update_user")
        if self._session is None:
            raise AuthApiError("Auth session missing!", status_code=400)
        await self._emit(AuthEvent.USER_UPDATED)
        return self._session.user

    async def refresh_session(self) -> AuthResponse:
        self._raise_if_configured("refresh_session")
        if self._session is None:
            raise AuthApiError("Auth session missing!", status_code=400)
        await self._emit(AuthEvent.TOKEN_REFRESHED)
        return AuthResponse(user=self._session.user, session=self._session)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        SUPABASE_URL="https://project.example.co",
        SUPABASE_ANON_KEY="anon-key",
        SESSION_CHECK_TIMEOUT_SECONDS=0.5,
        PROFILE_LOAD_TIMEOUT_SECONDS=0.2,
        PASSWORD_RESET_REDIRECT_URL="https://app.example.com/reset-password",
    )


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def data_service(backend: FakeBackend) -> DataService:
    return DataService(backend)  # type: ignore[arg-type]


@pytest.fixture()
def auth() -> FakeAuth:
    return FakeAuth()
