"""Remote data gateway: row API, auth provider and per-entity data access."""

from .auth import (
    AuthApiError,
    AuthChange,
    AuthClient,
    AuthEvent,
    AuthResponse,
    AuthSession,
    AuthUser,
)
from .client import BackendClient, BackendError, RowQuery
from .data_service import DataService

__all__ = [
    "AuthApiError",
    "AuthChange",
    "AuthClient",
    "AuthEvent",
    "AuthResponse",
    "AuthSession",
    "AuthUser",
    "BackendClient",
    "BackendError",
    "DataService",
    "RowQuery",
]
