"""HTTP-level tests for the row API and auth clients using httpx mock transports."""

from __future__ import annotations

import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import httpx
import pytest

from carebill.backend.src.core.config import Settings
from carebill.backend.src.gateway.auth import AuthApiError, AuthChange, AuthClient, AuthEvent
from carebill.backend.src.gateway.client import BackendClient, BackendError, RowQuery

SESSION_PAYLOAD = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "expires_in": 3600,
    "user": {
        "id": "user-1",
        "email": "pat@example.com",
        "email_confirmed_at": "2025-01-01T00:00:00Z",
        "user_metadata": {"name": "Pat", "role": "billing_staff"},
    },
}


def _settings() -> Settings:
    return Settings(SUPABASE_URL="https://project.example.co/", SUPABASE_ANON_KEY="anon-key")


def _backend(handler) -> BackendClient:  # type: ignore[no-untyped-def]
    return BackendClient(_settings(), http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _auth(handler) -> AuthClient:  # type: ignore[no-untyped-def]
    return AuthClient(_settings(), http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_row_query_params_encode_filters_and_ordering() -> None:
    query = RowQuery().eq("clinic_id", "c1").eq("active", True).gte("date", "2025-01-01")
    query.order_by("date", descending=True).order_by("name")

    assert query.params() == [
        ("select", "*"),
        ("clinic_id", "eq.c1"),
        ("active", "eq.true"),
        ("date", "gte.2025-01-01"),
        ("order", "date.desc,name.asc"),
    ]


@pytest.mark.asyncio
async def test_select_sends_api_key_and_user_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": "c1", "name": "North"}])

    client = _backend(handler)
    client.set_access_token("user-token")
    rows = await client.select("clinics", RowQuery().order_by("name"))
    await client.aclose()

    assert rows == [{"id": "c1", "name": "North"}]
    request = seen[0]
    assert request.url.path == "/rest/v1/clinics"
    assert request.url.params["order"] == "name.asc"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer user-token"


@pytest.mark.asyncio
async def test_insert_requests_single_representation() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        body = json.loads(request.content)
        return httpx.Response(201, json={"id": "new", **body})

    client = _backend(handler)
    created = await client.insert("clinics", {"name": "East"})

    assert created == {"id": "new", "name": "East"}
    assert seen[0].method == "POST"
    assert seen[0].headers["prefer"] == "return=representation"
    assert seen[0].headers["accept"] == "application/vnd.pgrst.object+json"
    assert seen[0].headers["authorization"] == "Bearer anon-key"


@pytest.mark.asyncio
async def test_update_and_delete_target_row_by_id() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json={"id": "c1", "active": False})

    client = _backend(handler)
    await client.update("clinics", "c1", {"active": False})
    await client.delete("clinics", "c1")

    assert [request.method for request in seen] == ["PATCH", "DELETE"]
    assert all(request.url.params["id"] == "eq.c1" for request in seen)
    assert json.loads(seen[0].content) == {"active": False}


@pytest.mark.asyncio
async def test_backend_errors_keep_code_and_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            406,
            json={
                "code": "PGRST116",
                "message": "JSON object requested, multiple (or no) rows returned",
                "details": "The result contains 0 rows",
                "hint": None,
            },
        )

    client = _backend(handler)
    with pytest.raises(BackendError) as excinfo:
        await client.select_single("clinics", RowQuery().eq("id", "missing"))

    assert excinfo.value.code == "PGRST116"
    assert excinfo.value.status_code == 406
    assert "multiple (or no) rows" in excinfo.value.message


@pytest.mark.asyncio
async def test_select_maybe_single_returns_none_for_no_rows() -> None:
    client = _backend(lambda request: httpx.Response(200, json=[]))

    assert await client.select_maybe_single("user_profiles", RowQuery().eq("id", "u1")) is None


@pytest.mark.asyncio
async def test_transport_errors_propagate() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _backend(handler)
    with pytest.raises(httpx.ConnectError):
        await client.select("clinics")


@pytest.mark.asyncio
async def test_sign_in_stores_session_and_emits_signed_in() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=SESSION_PAYLOAD)

    auth = _auth(handler)
    events: list[AuthChange] = []
    auth.on_auth_state_change(events.append)

    response = await auth.sign_in_with_password("pat@example.com", "secret")

    assert seen[0].url.path == "/auth/v1/token"
    assert seen[0].url.params["grant_type"] == "password"
    assert response.session is not None
    assert response.session.user.email_confirmed
    assert response.session.user.user_metadata["role"] == "billing_staff"
    assert (await auth.get_session()) == response.session
    assert [event.event for event in events] == [AuthEvent.SIGNED_IN]


@pytest.mark.asyncio
async def test_sign_up_without_session_does_not_sign_in() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "user-2", "email": "new@example.com", "user_metadata": {}})

    auth = _auth(handler)
    events: list[AuthChange] = []
    auth.on_auth_state_change(events.append)

    response = await auth.sign_up("new@example.com", "secret", data={"name": "New"})

    assert response.session is None
    assert response.user is not None
    assert not response.user.email_confirmed
    assert events == []


@pytest.mark.asyncio
async def test_auth_errors_surface_provider_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"})

    auth = _auth(handler)
    with pytest.raises(AuthApiError) as excinfo:
        await auth.sign_in_with_password("pat@example.com", "wrong")

    assert excinfo.value.message == "Invalid login credentials"
    assert excinfo.value.code == "invalid_grant"


@pytest.mark.asyncio
async def test_sign_out_clears_session_even_when_remote_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/logout"):
            return httpx.Response(500, json={"msg": "upstream down"})
        return httpx.Response(200, json=SESSION_PAYLOAD)

    auth = _auth(handler)
    events: list[AuthChange] = []
    auth.on_auth_state_change(events.append)
    await auth.sign_in_with_password("pat@example.com", "secret")

    with pytest.raises(AuthApiError):
        await auth.sign_out()

    assert await auth.get_session() is None
    assert events[-1].event is AuthEvent.SIGNED_OUT
    assert events[-1].session is None


@pytest.mark.asyncio
async def test_reset_password_passes_redirect() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    auth = _auth(handler)
    await auth.reset_password_for_email("pat@example.com", redirect_to="https://app.example.com/reset")

    assert seen[0].url.path == "/auth/v1/recover"
    assert seen[0].url.params["redirect_to"] == "https://app.example.com/reset"


@pytest.mark.asyncio
async def test_update_user_requires_session() -> None:
    auth = _auth(lambda request: httpx.Response(200, json={}))

    with pytest.raises(AuthApiError, match="Auth session missing"):
        await auth.update_user(password="new-secret")


@pytest.mark.asyncio
async def test_verify_recovery_starts_recovery_session() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=SESSION_PAYLOAD)

    auth = _auth(handler)
    events: list[AuthChange] = []
    auth.on_auth_state_change(events.append)

    response = await auth.verify_recovery("hash-123")

    assert seen[0].url.path == "/auth/v1/verify"
    assert json.loads(seen[0].content) == {"type": "recovery", "token_hash": "hash-123"}
    assert response.session is not None
    assert [event.event for event in events] == [AuthEvent.PASSWORD_RECOVERY]
