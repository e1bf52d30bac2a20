"""Client for the hosted authentication API (GoTrue dialect)."""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import httpx
import structlog

from carebill.backend.src.core.config import Settings
from carebill.backend.src.core.events import EventChannel
from carebill.backend.src.core.metrics import auth_requests_total

LOGGER = structlog.get_logger(__name__)

# Stored sessions this close to expiry are refreshed before use.
EXPIRY_MARGIN_SECONDS = 10


class AuthApiError(Exception):
    """Error returned by the authentication provider."""

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    @classmethod
    def from_response(cls, response: httpx.Response) -> "AuthApiError":
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return cls(response.text or "Authentication request failed", status_code=response.status_code)
        message = (
            body.get("msg")
            or body.get("error_description")
            or body.get("message")
            or body.get("error")
            or "Authentication request failed"
        )
        code = body.get("error_code") or body.get("error")
        return cls(str(message), status_code=response.status_code, code=code)


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True, slots=True)
class AuthUser:
    id: str
    email: str
    email_confirmed_at: str | None = None
    user_metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def email_confirmed(self) -> bool:
        return bool(self.email_confirmed_at)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AuthUser":
        return cls(
            id=str(payload["id"]),
            email=payload.get("email") or "",
            email_confirmed_at=payload.get("email_confirmed_at") or payload.get("confirmed_at"),
            user_metadata=dict(payload.get("user_metadata") or {}),
        )


@dataclass(frozen=True, slots=True)
class AuthSession:
    access_token: str
    refresh_token: str
    user: AuthUser
    expires_in: int | None = None
    expires_at: int | None = None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now + EXPIRY_MARGIN_SECONDS

    @classmethod
    def from_payload(cls, payload: dict[str, Any], *, now: float | None = None) -> "AuthSession":
        expires_in = payload.get("expires_in")
        expires_at = payload.get("expires_at")
        if expires_at is None and expires_in is not None and now is not None:
            expires_at = int(now + expires_in)
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or "",
            expires_in=expires_in,
            expires_at=expires_at,
            user=AuthUser.from_payload(payload["user"]),
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the session in the provider's token-response shape."""

        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_in": self.expires_in,
            "expires_at": self.expires_at,
            "user": {
                "id": self.user.id,
                "email": self.user.email,
                "email_confirmed_at": self.user.email_confirmed_at,
                "user_metadata": self.user.user_metadata,
            },
        }


@dataclass(frozen=True, slots=True)
class AuthResponse:
    """User and (when the account may sign in immediately) session."""

    user: AuthUser | None
    session: AuthSession | None = None


@dataclass(frozen=True, slots=True)
class AuthChange:
    event: AuthEvent
    session: AuthSession | None


class AuthClient:
    """Sign-up, sign-in and session bookkeeping against the auth provider.

    The current session lives in memory and, when `SESSION_FILE` is set, is
    written there on every change so a restarted process can resume it.
    Every transition is published on :attr:`changes`; subscribers are
    awaited before the triggering call returns.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
        session: AuthSession | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._base_url = settings.auth_url
        self._api_key = settings.supabase_anon_key
        self._client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self._session = session
        self._session_file = settings.session_file
        self._restored = session is not None
        self._clock = clock
        self.changes: EventChannel[AuthChange] = EventChannel("auth.state_change")

    def on_auth_state_change(self, listener):  # type: ignore[no-untyped-def]
        """Subscribe to auth transitions; returns an unsubscribe callable."""

        return self.changes.subscribe(listener)

    async def _emit(self, event: AuthEvent) -> None:
        LOGGER.info("auth_state_changed", auth_event=event.value)
        self._persist()
        await self.changes.publish(AuthChange(event=event, session=self._session))

    async def _post(
        self,
        action: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        token: str | None = None,
        method: str = "POST",
    ) -> Any:
        headers = {"apikey": self._api_key, "Authorization": f"Bearer {token or self._api_key}"}
        response = await self._client.request(
            method, f"{self._base_url}{path}", json=json, params=params, headers=headers
        )
        if response.is_error:
            auth_requests_total.labels(action, "error").inc()
            raise AuthApiError.from_response(response)
        auth_requests_total.labels(action, "ok").inc()
        if not response.content:
            return None
        return response.json()

    def _session_from(self, payload: dict[str, Any]) -> AuthSession:
        return AuthSession.from_payload(payload, now=self._clock())

    def _read_stored(self) -> AuthSession | None:
        path = self._session_file
        if path is None or not path.exists():
            return None
        try:
            return AuthSession.from_payload(json.loads(path.read_text(encoding="utf-8")))
        except (ValueError, KeyError, TypeError) as exc:
            LOGGER.warning("stored_session_unreadable", path=str(path), error=str(exc))
            return None

    def _persist(self) -> None:
        self._restored = True
        path = self._session_file
        if path is None:
            return
        if self._session is None:
            path.unlink(missing_ok=True)
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self._session.to_payload()), encoding="utf-8")
        path.chmod(0o600)

    async def _exchange_refresh_token(self, session: AuthSession) -> AuthSession:
        if not session.refresh_token:
            raise AuthApiError("Auth session missing!", status_code=400, code="session_missing")
        payload = await self._post(
            "refresh_session",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": session.refresh_token},
        )
        return self._session_from(payload)

    async def get_session(self) -> AuthSession | None:
        """Return the current session, restoring the stored one on first use.

        An expired session is refreshed before it is returned. When the
        provider rejects the refresh token the stored copy is discarded.
        """

        if not self._restored:
            self._restored = True
            self._session = self._read_stored()
        session = self._session
        if session is not None and session.expired(self._clock()):
            try:
                self._session = await self._exchange_refresh_token(session)
            except AuthApiError as exc:
                LOGGER.info("stored_session_refresh_failed", error=exc.message)
                self._session = None
            self._persist()
        return self._session

    async def sign_up(
        self, email: str, password: str, *, data: dict[str, Any] | None = None
    ) -> AuthResponse:
        payload = await self._post(
            "sign_up", "/signup", json={"email": email, "password": password, "data": data or {}}
        )
        if payload and "access_token" in payload:
            self._session = self._session_from(payload)
            await self._emit(AuthEvent.SIGNED_IN)
            return AuthResponse(user=self._session.user, session=self._session)
        user_payload = (payload or {}).get("user", payload)
        user = AuthUser.from_payload(user_payload) if user_payload else None
        return AuthResponse(user=user, session=None)

    async def sign_in_with_password(self, email: str, password: str) -> AuthResponse:
        payload = await self._post(
            "sign_in",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        self._session = self._session_from(payload)
        await self._emit(AuthEvent.SIGNED_IN)
        return AuthResponse(user=self._session.user, session=self._session)

    async def sign_out(self) -> None:
        """End the session remotely; the local session is cleared regardless."""

        session = self._session
        try:
            if session is not None:
                await self._post("sign_out", "/logout", token=session.access_token)
        finally:
            self._session = None
            await self._emit(AuthEvent.SIGNED_OUT)

    async def reset_password_for_email(self, email: str, *, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._post("reset_password", "/recover", json={"email": email}, params=params)

    async def update_user(self, *, password: str | None = None, data: dict[str, Any] | None = None) -> AuthUser:
        if self._session is None:
            raise AuthApiError("Auth session missing!", status_code=400, code="session_missing")
        body: dict[str, Any] = {}
        if password is not None:
            body["password"] = password
        if data is not None:
            body["data"] = data
        payload = await self._post(
            "update_user", "/user", json=body, token=self._session.access_token, method="PUT"
        )
        user = AuthUser.from_payload(payload)
        self._session = replace(self._session, user=user)
        await self._emit(AuthEvent.USER_UPDATED)
        return user

    async def refresh_session(self) -> AuthResponse:
        if self._session is None:
            raise AuthApiError("Auth session missing!", status_code=400, code="session_missing")
        self._session = await self._exchange_refresh_token(self._session)
        await self._emit(AuthEvent.TOKEN_REFRESHED)
        return AuthResponse(user=self._session.user, session=self._session)

    async def verify_recovery(self, token_hash: str) -> AuthResponse:
        """Exchange a password-recovery link token for a session."""

        payload = await self._post(
            "verify_recovery", "/verify", json={"type": "recovery", "token_hash": token_hash}
        )
        self._session = self._session_from(payload)
        await self._emit(AuthEvent.PASSWORD_RECOVERY)
        return AuthResponse(user=self._session.user, session=self._session)

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = [
    "AuthApiError",
    "AuthChange",
    "AuthClient",
    "AuthEvent",
    "AuthResponse",
    "AuthSession",
    "AuthUser",
]
