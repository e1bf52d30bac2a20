"""HTTP client for the hosted row API (PostgREST dialect)."""

from __future__ import annotations

from dataclasses import dataclass, field
from time import perf_counter
from typing import Any

import httpx
import structlog

from carebill.backend.src.core.config import Settings
from carebill.backend.src.core.metrics import (
    gateway_request_seconds,
    gateway_requests_total,
)

LOGGER = structlog.get_logger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"


class BackendError(Exception):
    """Error reported by the row API, carried unmodified to the caller."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        self.hint = hint

    @classmethod
    def from_response(cls, response: httpx.Response) -> "BackendError":
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            return cls(
                str(body.get("message") or response.reason_phrase or "Request failed"),
                code=body.get("code"),
                status_code=response.status_code,
                details=body.get("details"),
                hint=body.get("hint"),
            )
        return cls(
            response.text or response.reason_phrase or "Request failed",
            status_code=response.status_code,
        )


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


@dataclass
class RowQuery:
    """Server-side filters and ordering for a select."""

    filters: list[tuple[str, str, object]] = field(default_factory=list)
    ordering: list[tuple[str, bool]] = field(default_factory=list)

    def eq(self, column: str, value: object) -> "RowQuery":
        self.filters.append((column, "eq", value))
        return self

    def gte(self, column: str, value: object) -> "RowQuery":
        self.filters.append((column, "gte", value))
        return self

    def lte(self, column: str, value: object) -> "RowQuery":
        self.filters.append((column, "lte", value))
        return self

    def order_by(self, column: str, *, descending: bool = False) -> "RowQuery":
        self.ordering.append((column, descending))
        return self

    def params(self) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = [("select", "*")]
        for column, operator, value in self.filters:
            params.append((column, f"{operator}.{_format_value(value)}"))
        if self.ordering:
            params.append(
                (
                    "order",
                    ",".join(
                        f"{column}.{'desc' if descending else 'asc'}"
                        for column, descending in self.ordering
                    ),
                )
            )
        return params


class BackendClient:
    """Issue single request/response calls against one table at a time.

    There is no batching, retrying or caching here: each method performs
    exactly one HTTP request and either returns decoded rows or raises
    :class:`BackendError`.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = settings.rest_url
        self._api_key = settings.supabase_anon_key
        self._access_token: str | None = None
        self._client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    def set_access_token(self, token: str | None) -> None:
        """Authorize subsequent requests as the signed-in user (or anon)."""

        self._access_token = token

    def _headers(self, *, accept: str | None = None, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token or self._api_key}",
        }
        if accept:
            headers["Accept"] = accept
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        operation: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        accept: str | None = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        start = perf_counter()
        try:
            response = await self._client.request(
                method,
                f"{self._base_url}/{table}",
                params=params,
                json=json,
                headers=self._headers(accept=accept, prefer=prefer),
            )
        except httpx.HTTPError as exc:
            gateway_requests_total.labels(table, operation, "transport_error").inc()
            LOGGER.warning("gateway_transport_error", table=table, operation=operation, error=str(exc))
            raise
        finally:
            gateway_request_seconds.labels(table, operation).observe(perf_counter() - start)

        if response.is_error:
            gateway_requests_total.labels(table, operation, "error").inc()
            error = BackendError.from_response(response)
            LOGGER.info(
                "gateway_request_failed",
                table=table,
                operation=operation,
                status_code=response.status_code,
                code=error.code,
                error=error.message,
            )
            raise error

        gateway_requests_total.labels(table, operation, "ok").inc()
        return response

    async def select(self, table: str, query: RowQuery | None = None) -> list[dict[str, Any]]:
        response = await self._request("GET", table, "select", params=(query or RowQuery()).params())
        return response.json() or []

    async def select_single(self, table: str, query: RowQuery) -> dict[str, Any]:
        """Return exactly one row; zero or many rows raise ``PGRST116``."""

        response = await self._request(
            "GET", table, "select", params=query.params(), accept=SINGLE_OBJECT
        )
        return response.json()

    async def select_maybe_single(self, table: str, query: RowQuery) -> dict[str, Any] | None:
        """Return the only matching row, or ``None`` when nothing matches."""

        rows = await self.select(table, query)
        if len(rows) > 1:
            raise BackendError(
                "JSON object requested, multiple (or no) rows returned",
                code="PGRST116",
                status_code=406,
                details=f"Results contain {len(rows)} rows",
            )
        return rows[0] if rows else None

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "POST",
            table,
            "insert",
            params=[("select", "*")],
            json=row,
            accept=SINGLE_OBJECT,
            prefer="return=representation",
        )
        return response.json()

    async def update(self, table: str, row_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "PATCH",
            table,
            "update",
            params=[("id", f"eq.{row_id}"), ("select", "*")],
            json=changes,
            accept=SINGLE_OBJECT,
            prefer="return=representation",
        )
        return response.json()

    async def delete(self, table: str, row_id: str) -> None:
        await self._request(
            "DELETE",
            table,
            "delete",
            params=[("id", f"eq.{row_id}")],
            prefer="return=minimal",
        )

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["BackendClient", "BackendError", "RowQuery"]
