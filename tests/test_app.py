# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Application wiring: health checks and error envelopes."""

import pytest
from httpx import AsyncClient

from ieca_server.auth import create_access_token

pytestmark = pytest.mark.anyio


async def test_root(client: AsyncClient):
    r = await client.get("/")
    assert r.status_code == 200
    assert r.json()["api"] == "/api/v1"


async def test_health(client: AsyncClient):
    r = await client.get("/api/v1/health")
    assert r.json() == {"status": "ok"}


async def test_unknown_route_uses_envelope(client: AsyncClient):
    r = await client.get("/api/v1/nope")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Not Found"}


async def test_invalid_token_rejected(client: AsyncClient):
    r = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"
    assert r.json() == {"success": False, "message": "Invalid or expired token"}


async def test_non_numeric_subject_rejected(client: AsyncClient):
    token = create_access_token({"sub": "not-a-number"})
    r = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Invalid token"}


async def test_query_validation_error(client: AsyncClient, member_headers):
    r = await client.get("/api/v1/global-chat?limit=0", headers=member_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Validation failed"
    assert r.json()["errors"][0]["loc"] == ["query", "limit"]
