"""Per-process session context shared by every consumer of the core."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from carebill.backend.src.core.config import Settings, get_settings
from carebill.backend.src.core.events import (
    EventChannel,
    MonthSelection,
    month_selection_channel,
)
from carebill.backend.src.gateway.auth import AuthChange, AuthClient
from carebill.backend.src.gateway.client import BackendClient
from carebill.backend.src.gateway.data_service import DataService
from carebill.backend.src.services.data_store import REMOTE_ERRORS, DataStore
from carebill.backend.src.services.session_manager import (
    SessionManager,
    SessionPhase,
    SessionState,
)

LOGGER = structlog.get_logger(__name__)


@dataclass
class AppContext:
    """Session manager, data store and the clients they share."""

    settings: Settings
    backend: BackendClient
    auth: AuthClient
    session: SessionManager
    store: DataStore
    month_selection: EventChannel[MonthSelection]
    _unsubscribers: list[Callable[[], None]] = field(default_factory=list)

    async def start(self) -> None:
        """Resolve the persisted session and, when signed in, load every collection."""

        session = await self.auth.get_session()
        self.backend.set_access_token(session.access_token if session else None)
        await self.session.initialize()
        if self.session.is_authenticated:
            await self.load_data()

    async def load_data(self) -> bool:
        """Bulk-load the store; a failure is recorded on ``store.error``."""

        try:
            await self.store.refresh_data()
        except REMOTE_ERRORS as exc:
            LOGGER.warning("initial_data_load_failed", error=str(exc))
            return False
        return True

    async def aclose(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        await self.session.close()
        await self.auth.aclose()
        await self.backend.aclose()


def build_context(
    settings: Settings | None = None,
    *,
    backend: BackendClient | None = None,
    auth: AuthClient | None = None,
) -> AppContext:
    """Wire the clients, session manager and store for one running process."""

    settings = settings or get_settings()
    backend = backend or BackendClient(settings)
    auth = auth or AuthClient(settings)
    data_service = DataService(backend)
    session = SessionManager(auth, data_service, settings)
    store = DataStore(data_service)

    # Subscribed before the session manager so profile loads carry the new token.
    def apply_token(change: AuthChange) -> None:
        backend.set_access_token(change.session.access_token if change.session else None)

    def drop_cache(state: SessionState) -> None:
        if state.phase is SessionPhase.SIGNED_OUT:
            store.clear()

    context = AppContext(
        settings=settings,
        backend=backend,
        auth=auth,
        session=session,
        store=store,
        month_selection=month_selection_channel(),
    )
    context._unsubscribers.append(auth.on_auth_state_change(apply_token))
    context._unsubscribers.append(session.changes.subscribe(drop_cache))
    return context


__all__ = ["AppContext", "build_context"]
