"""Entrypoint for the FastAPI application."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from dotenv import load_dotenv

# Load .env locally only; deployed environments inject variables directly.
env_path = os.path.join(os.path.dirname(__file__), "../.env")
if os.path.exists(env_path):
    load_dotenv(dotenv_path=os.path.abspath(env_path))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import admin, auth, billing, health, invoices, records, reports, todos
from .core.config import get_settings
from .core.logging import configure_logging
from .services.context import AppContext, build_context


def create_app(context: AppContext | None = None) -> FastAPI:
    """Build the application around one session context.

    When ``context`` is given it is used as-is and left for the caller to
    start and close; otherwise one is built from settings and owned by the
    application lifespan.
    """

    settings = get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if context is not None:
            app.state.context = context
            yield
            return
        owned = build_context(settings)
        app.state.context = owned
        await owned.start()
        try:
            yield
        finally:
            await owned.aclose()

    app = FastAPI(title="CareBill", version="0.1.0", lifespan=lifespan)
    if context is not None:
        app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(billing.router, prefix="/api")
    app.include_router(invoices.router, prefix="/api")
    app.include_router(todos.router, prefix="/api")
    app.include_router(records.router, prefix="/api")
    app.include_router(reports.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")

    return app


app = create_app()
