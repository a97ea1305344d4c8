"""Registration and login flows."""
from __future__ import annotations

import pytest
from httpx import AsyncClient

from conftest import authenticate

pytestmark = pytest.mark.asyncio


async def test_register_then_login(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]

    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "New.Member@Example.com",
            "password": "Str0ngPass!",
            "full_name": "Morgan Member",
        },
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["user"]["email"] == "new.member@example.com"
    assert body["user"]["role"] == "client"
    assert body["token"]["access_token"]

    headers = await authenticate(client, "new.member@example.com", "Str0ngPass!")
    me = await client.get("/api/v1/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["full_name"] == "Morgan Member"


async def test_register_duplicate_email_conflicts(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": app_context["client_email"],
            "password": "Str0ngPass!",
            "full_name": "Someone Else",
        },
    )
    assert response.status_code == 409


async def test_login_with_wrong_password_is_rejected(
    app_context: dict[str, object],
) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": app_context["client_email"], "password": "nope-nope"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 401


async def test_admin_routes_require_admin_role(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]

    anonymous = await client.get("/api/v1/passes")
    assert anonymous.status_code == 401

    headers = await authenticate(
        client, app_context["client_email"], app_context["client_password"]  # type: ignore[arg-type]
    )
    forbidden = await client.get("/api/v1/passes", headers=headers)
    assert forbidden.status_code == 403
