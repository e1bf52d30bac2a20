"""Public API routers exposed by the FastAPI application."""

from . import admin, auth, billing, health, invoices, records, reports, todos

__all__ = [
    "admin",
    "auth",
    "billing",
    "health",
    "invoices",
    "records",
    "reports",
    "todos",
]
