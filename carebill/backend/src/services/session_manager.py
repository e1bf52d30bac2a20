"""Session and identity management.

The :class:`SessionManager` owns the single authenticated principal of a
running process. Its lifecycle is an explicit :class:`SessionState` whose
phase moves between ``INITIALIZING``, ``RESOLVING``, ``AUTHENTICATED``,
``ANONYMOUS`` and ``SIGNED_OUT``; ``principal``, ``is_authenticated`` and
``loading`` are all derived from it.

Commands (``login``, ``signup`` ...) never raise. Failures are classified
into user-facing messages and returned as :class:`AuthResult`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass
from enum import Enum
from typing import Any, get_args

import httpx
import structlog

from carebill.backend.src.core.config import Settings, get_settings
from carebill.backend.src.core.events import EventChannel
from carebill.backend.src.gateway.auth import (
    AuthApiError,
    AuthChange,
    AuthClient,
    AuthEvent,
    AuthUser,
)
from carebill.backend.src.gateway.client import BackendError
from carebill.backend.src.gateway.data_service import DataService
from carebill.backend.src.schemas.user import UserProfile, UserRole
from carebill.backend.src.services.translators import (
    user_profile_from_row,
    user_profile_to_row,
)

LOGGER = structlog.get_logger(__name__)

UNEXPECTED_ERROR = "An unexpected error occurred. Please try again later."
EMAIL_NOT_CONFIRMED = (
    "Please check your email and click the confirmation link to activate your account."
)

# Missing row or row-level security denial: fall back to account metadata.
PROFILE_FALLBACK_CODES = frozenset({"PGRST116", "42501"})

_ROLES = frozenset(get_args(UserRole))

AUTH_ERROR_MESSAGES: dict[str, tuple[tuple[tuple[str, ...], str], ...]] = {
    "login": (
        (("Email not confirmed",), EMAIL_NOT_CONFIRMED),
        (
            ("Invalid login credentials",),
            "Invalid email or password. Please check your credentials and try again.",
        ),
        (
            ("Too many requests",),
            "Too many login attempts. Please wait a moment before trying again.",
        ),
        (
            ("User not found",),
            "No account found with this email address. Please sign up first.",
        ),
        (("Invalid email",), "Please enter a valid email address."),
        (
            ("Password should be at least",),
            "Password is too short. Please enter a stronger password.",
        ),
    ),
    "signup": (
        (
            ("User already registered",),
            "An account with this email already exists. Please sign in instead.",
        ),
        (("Password should be at least",), "Password must be at least 6 characters long."),
        (
            ("Invalid email", "email_address_invalid"),
            "Please enter a valid email address. "
            "Make sure it's a real email address from a valid domain.",
        ),
        (
            ("Password is too weak",),
            "Password is too weak. Please choose a stronger password.",
        ),
        (
            ("Signup is disabled",),
            "New account registration is currently disabled. Please contact support.",
        ),
        (
            ("Email rate limit exceeded",),
            "Too many signup attempts. Please wait a moment before trying again.",
        ),
    ),
    "reset_password": (
        (
            ("User not found",),
            "No account found with this email address. "
            "Please check your email or sign up first.",
        ),
        (("Invalid email",), "Please enter a valid email address."),
        (
            ("Email rate limit exceeded",),
            "Too many password reset attempts. Please wait a moment before trying again.",
        ),
        (
            ("Password reset is disabled",),
            "Password reset is currently disabled. Please contact support.",
        ),
    ),
    "update_password": (
        (("Password should be at least",), "Password must be at least 6 characters long."),
        (
            ("Password is too weak",),
            "Password is too weak. Please choose a stronger password.",
        ),
        (
            ("Invalid password",),
            "Invalid password format. Please choose a different password.",
        ),
        (("User not found",), "User session expired. Please sign in again."),
    ),
}


def classify_auth_error(operation: str, message: str) -> str:
    """Map a provider error message to the user-facing text for ``operation``.

    Matching is by substring, first rule wins. Unrecognized messages are
    returned unchanged.
    """

    for needles, friendly in AUTH_ERROR_MESSAGES.get(operation, ()):
        if any(needle in message for needle in needles):
            return friendly
    return message


class SessionPhase(str, Enum):
    INITIALIZING = "initializing"
    RESOLVING = "resolving"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True, slots=True)
class SessionState:
    phase: SessionPhase
    principal: UserProfile | None = None
    provisional: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.phase is SessionPhase.AUTHENTICATED and self.principal is not None

    @property
    def loading(self) -> bool:
        return self.phase in (SessionPhase.INITIALIZING, SessionPhase.RESOLVING)


@dataclass(frozen=True, slots=True)
class AuthResult:
    success: bool
    error: str | None = None


def _email_local_part(email: str | None) -> str:
    if email and "@" in email:
        return email.split("@", 1)[0]
    return email or "User"


class SessionManager:
    """Tracks the signed-in principal and exposes the account commands.

    Profile resolution is bounded by ``profile_load_timeout_seconds`` and the
    initial session check by ``session_check_timeout_seconds``. A resolution
    that outlives its timeout is abandoned, not cancelled: the request keeps
    running but its result is discarded.
    """

    def __init__(
        self,
        auth: AuthClient,
        data_service: DataService,
        settings: Settings | None = None,
    ) -> None:
        self._auth = auth
        self._data = data_service
        self._settings = settings or get_settings()
        self._state = SessionState(SessionPhase.INITIALIZING)
        self._generation = 0
        self._ready = asyncio.Event()
        self._unsubscribe: Any = None
        self._abandoned: set[asyncio.Task[Any]] = set()
        self.changes: EventChannel[SessionState] = EventChannel("session.state")

    # Derived state

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def principal(self) -> UserProfile | None:
        return self._state.principal

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def loading(self) -> bool:
        return self._state.loading

    async def _set_state(self, state: SessionState) -> None:
        previous = self._state.phase
        self._state = state
        if state.loading:
            self._ready.clear()
        else:
            self._ready.set()
        LOGGER.info(
            "session_state_changed",
            previous=previous.value,
            phase=state.phase.value,
            user_id=state.principal.id if state.principal else None,
            provisional=state.provisional,
        )
        await self.changes.publish(state)

    async def wait_until_ready(self, timeout: float | None = None) -> SessionState:
        """Block until identity resolution has finished or timed out."""

        await asyncio.wait_for(self._ready.wait(), timeout)
        return self._state

    # Lifecycle

    async def initialize(self) -> SessionState:
        """Subscribe to auth transitions and resolve any persisted session."""

        if self._unsubscribe is None:
            self._unsubscribe = self._auth.on_auth_state_change(self._handle_auth_change)
        await self._set_state(SessionState(SessionPhase.INITIALIZING))
        finished = await self._bounded(
            self._check_session(),
            self._settings.session_check_timeout_seconds,
            "session_check",
        )
        if not finished and self._state.loading:
            LOGGER.warning(
                "session_check_timeout",
                timeout_seconds=self._settings.session_check_timeout_seconds,
            )
            self._generation += 1
            await self._set_state(SessionState(SessionPhase.ANONYMOUS))
        return self._state

    async def _check_session(self) -> None:
        try:
            session = await self._auth.get_session()
        except Exception as exc:
            LOGGER.error("session_check_failed", error=str(exc))
            await self._set_state(SessionState(SessionPhase.ANONYMOUS))
            return
        if session is None:
            LOGGER.info("session_not_found")
            await self._set_state(SessionState(SessionPhase.ANONYMOUS))
            return
        if not session.user.email_confirmed:
            LOGGER.info("session_email_unconfirmed", user_id=session.user.id)
            await self._set_state(SessionState(SessionPhase.ANONYMOUS))
            return
        await self._resolve_profile(session.user)

    async def close(self) -> None:
        """Stop listening for auth transitions and drop abandoned work."""

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._abandoned):
            task.cancel()
        self._abandoned.clear()

    # Profile resolution

    async def _bounded(
        self, coro: Coroutine[Any, Any, Any], timeout: float, operation: str
    ) -> bool:
        """Await ``coro`` for at most ``timeout`` seconds; return False on timeout.

        The task is left running on timeout and its eventual failure, if any,
        is only logged.
        """

        task = asyncio.ensure_future(coro)
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if task in done:
            task.result()
            return True
        self._abandoned.add(task)
        task.add_done_callback(lambda finished: self._reap(finished, operation))
        return False

    def _reap(self, task: asyncio.Task[Any], operation: str) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.warning("abandoned_task_failed", operation=operation, error=str(exc))
        else:
            LOGGER.info("abandoned_task_finished", operation=operation)

    async def _resolve_profile(self, user: AuthUser) -> None:
        """Load the durable profile for ``user`` and publish it as the principal.

        Only one resolution runs at a time; a call that arrives while another
        is in flight is skipped. The loading phase always ends, either with a
        principal, anonymously, or after the timeout.
        """

        if self._state.phase is SessionPhase.RESOLVING:
            LOGGER.info("profile_resolution_skipped", user_id=user.id)
            return
        self._generation += 1
        generation = self._generation
        await self._set_state(
            SessionState(
                SessionPhase.RESOLVING,
                principal=self._state.principal,
                provisional=self._state.provisional,
            )
        )

        outcome: dict[str, Any] = {}

        async def load() -> None:
            outcome["result"] = await self._load_principal(user)

        try:
            finished = await self._bounded(
                load(), self._settings.profile_load_timeout_seconds, "profile_load"
            )
        except Exception as exc:
            if generation != self._generation:
                return
            LOGGER.error("profile_load_failed", user_id=user.id, error=str(exc))
            await self._set_state(SessionState(SessionPhase.ANONYMOUS))
            return

        if generation != self._generation:
            LOGGER.info("profile_resolution_superseded", user_id=user.id)
            return
        if not finished:
            LOGGER.warning(
                "profile_load_timeout",
                user_id=user.id,
                timeout_seconds=self._settings.profile_load_timeout_seconds,
            )
            self._generation += 1
            await self._set_state(SessionState(SessionPhase.ANONYMOUS))
            return

        principal, provisional = outcome["result"]
        if principal is None:
            await self._set_state(SessionState(SessionPhase.ANONYMOUS))
            return
        LOGGER.info(
            "profile_loaded", user_id=principal.id, role=principal.role, provisional=provisional
        )
        await self._set_state(
            SessionState(SessionPhase.AUTHENTICATED, principal=principal, provisional=provisional)
        )

    async def _load_principal(self, user: AuthUser) -> tuple[UserProfile | None, bool]:
        try:
            row = await self._data.get_user_profile(user.id)
        except BackendError as exc:
            if exc.code in PROFILE_FALLBACK_CODES or "No rows found" in exc.message:
                LOGGER.info("profile_unavailable", user_id=user.id, code=exc.code)
                return self._provisional_principal(user)
            raise
        if row is None:
            LOGGER.info("profile_missing", user_id=user.id)
            return self._provisional_principal(user)
        return user_profile_from_row(row), False

    @staticmethod
    def _provisional_principal(user: AuthUser) -> tuple[UserProfile | None, bool]:
        """Build a principal from account metadata when no profile row is readable."""

        if not user.email_confirmed:
            return None, False
        metadata = user.user_metadata
        role = metadata.get("role")
        profile = UserProfile(
            id=user.id,
            email=user.email,
            name=metadata.get("name") or _email_local_part(user.email),
            role=role if role in _ROLES else "provider",
        )
        return profile, True

    async def _handle_auth_change(self, change: AuthChange) -> None:
        session = change.session
        if change.event is AuthEvent.SIGNED_IN and session is not None:
            if session.user.email_confirmed:
                await self._resolve_profile(session.user)
            else:
                LOGGER.info("sign_in_email_unconfirmed", user_id=session.user.id)
                await self._set_state(SessionState(SessionPhase.ANONYMOUS))
        elif change.event is AuthEvent.SIGNED_OUT:
            self._generation += 1
            await self._set_state(SessionState(SessionPhase.SIGNED_OUT))
        elif change.event is AuthEvent.TOKEN_REFRESHED and session is not None:
            if self._state.principal is None:
                await self._resolve_profile(session.user)
        elif change.event is AuthEvent.PASSWORD_RECOVERY:
            if self._state.loading:
                self._generation += 1
                await self._set_state(SessionState(SessionPhase.ANONYMOUS))
        else:
            LOGGER.debug("auth_change_ignored", auth_event=change.event.value)

    # Commands

    async def login(self, email: str, password: str) -> AuthResult:
        try:
            response = await self._auth.sign_in_with_password(email, password)
        except AuthApiError as exc:
            LOGGER.info("login_failed", email=email, error=exc.message)
            return AuthResult(False, classify_auth_error("login", exc.message))
        except Exception as exc:
            LOGGER.error("login_error", email=email, error=str(exc))
            return AuthResult(False, UNEXPECTED_ERROR)

        if response.user is None:
            return AuthResult(False, "Login failed. Please try again.")
        if not response.user.email_confirmed:
            return AuthResult(False, EMAIL_NOT_CONFIRMED)
        return AuthResult(True)

    async def signup(
        self,
        email: str,
        password: str,
        name: str,
        role: UserRole = "provider",
        clinic_id: str | None = None,
        provider_id: str | None = None,
    ) -> AuthResult:
        """Create the account and its profile row.

        Accounts that still need email confirmation succeed without signing in.
        """

        try:
            response = await self._auth.sign_up(
                email, password, data={"name": name, "role": role}
            )
        except AuthApiError as exc:
            LOGGER.info("signup_failed", email=email, error=exc.message)
            return AuthResult(False, classify_auth_error("signup", exc.message))
        except Exception as exc:
            LOGGER.error("signup_error", email=email, error=str(exc))
            return AuthResult(False, UNEXPECTED_ERROR)

        user = response.user
        if user is None:
            return AuthResult(False, "Signup failed. Please try again.")

        await self._create_profile(user, clinic_id, provider_id)
        if not user.email_confirmed:
            LOGGER.info("signup_pending_confirmation", user_id=user.id)
            return AuthResult(True)
        await self._resolve_profile(user)
        return AuthResult(True)

    async def _create_profile(
        self, user: AuthUser, clinic_id: str | None, provider_id: str | None
    ) -> None:
        metadata = user.user_metadata
        role = metadata.get("role")
        profile = UserProfile(
            id=user.id,
            email=user.email,
            name=metadata.get("name") or _email_local_part(user.email),
            role=role if role in _ROLES else "provider",
            clinic_id=clinic_id or None,
            provider_id=provider_id or None,
        )
        try:
            await self._data.create_user_profile(user_profile_to_row(profile))
            LOGGER.info("profile_created", user_id=user.id)
            return
        except (BackendError, httpx.HTTPError) as exc:
            LOGGER.warning("profile_create_failed", user_id=user.id, error=str(exc))

        minimal = profile.model_copy(
            update={"name": _email_local_part(user.email), "role": "provider"}
        )
        try:
            await self._data.create_user_profile(user_profile_to_row(minimal))
            LOGGER.info("profile_created_on_retry", user_id=user.id)
        except (BackendError, httpx.HTTPError) as exc:
            LOGGER.error("profile_create_retry_failed", user_id=user.id, error=str(exc))

    async def logout(self) -> AuthResult:
        try:
            await self._auth.sign_out()
        except Exception as exc:
            LOGGER.error("logout_error", error=str(exc))
            if self._state.phase is not SessionPhase.SIGNED_OUT:
                self._generation += 1
                await self._set_state(SessionState(SessionPhase.SIGNED_OUT))
            message = exc.message if isinstance(exc, AuthApiError) else UNEXPECTED_ERROR
            return AuthResult(False, message)
        return AuthResult(True)

    async def reset_password(self, email: str) -> AuthResult:
        try:
            await self._auth.reset_password_for_email(
                email, redirect_to=self._settings.password_reset_redirect_url
            )
        except AuthApiError as exc:
            LOGGER.info("password_reset_failed", email=email, error=exc.message)
            return AuthResult(False, classify_auth_error("reset_password", exc.message))
        except Exception as exc:
            LOGGER.error("password_reset_error", email=email, error=str(exc))
            return AuthResult(False, UNEXPECTED_ERROR)
        return AuthResult(True)

    async def update_password(self, new_password: str, *, token_hash: str | None = None) -> AuthResult:
        """Set a new password, first redeeming a recovery link token when given."""

        try:
            if token_hash:
                await self._auth.verify_recovery(token_hash)
            await self._auth.update_user(password=new_password)
        except AuthApiError as exc:
            LOGGER.info("password_update_failed", error=exc.message)
            return AuthResult(False, classify_auth_error("update_password", exc.message))
        except Exception as exc:
            LOGGER.error("password_update_error", error=str(exc))
            return AuthResult(False, UNEXPECTED_ERROR)
        return AuthResult(True)

    async def refresh_session(self) -> AuthResult:
        """Refresh the access token and reload the principal's profile."""

        try:
            response = await self._auth.refresh_session()
        except AuthApiError as exc:
            LOGGER.info("session_refresh_failed", error=exc.message)
            return AuthResult(False, exc.message)
        except Exception as exc:
            LOGGER.error("session_refresh_error", error=str(exc))
            return AuthResult(False, "An unexpected error occurred")

        if response.session is None:
            return AuthResult(False, "No session found")
        await self._resolve_profile(response.session.user)
        return AuthResult(True)


__all__ = [
    "AUTH_ERROR_MESSAGES",
    "AuthResult",
    "SessionManager",
    "SessionPhase",
    "SessionState",
    "classify_auth_error",
]
