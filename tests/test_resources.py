# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Learning resource endpoint tests."""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.anyio

RESOURCE = {
    "title": "OWASP Top 10 Primer",
    "description": "The ten most critical web risks",
    "category": "web",
    "tags": ["owasp"],
    "author_name": "IECA Team",
    "difficulty": "BEGINNER",
}


@pytest.fixture
async def resource(client: AsyncClient, admin_headers):
    r = await client.post("/api/v1/resources", json=RESOURCE, headers=admin_headers)
    assert r.status_code == 200
    return r.json()["data"]


async def test_create_requires_admin(client: AsyncClient, member_headers):
    r = await client.post("/api/v1/resources", json=RESOURCE, headers=member_headers)
    assert r.status_code == 403


async def test_get_counts_views(client: AsyncClient, resource):
    url = f"/api/v1/resources/{resource['id']}"
    assert (await client.get(url)).json()["data"]["views"] == 1
    assert (await client.get(url)).json()["data"]["views"] == 2


async def test_record_download(client: AsyncClient, resource):
    r = await client.post(f"/api/v1/resources/{resource['id']}/download")
    assert r.json()["data"]["downloads"] == 1


async def test_filters_only_return_published(client: AsyncClient, resource, admin_headers):
    await client.post(
        "/api/v1/resources",
        json={**RESOURCE, "title": "Draft guide", "status": "DRAFT"},
        headers=admin_headers,
    )
    await client.post(
        "/api/v1/resources",
        json={**RESOURCE, "title": "Malware analysis", "category": "malware", "difficulty": "ADVANCED"},
        headers=admin_headers,
    )

    everything = await client.get("/api/v1/resources")
    assert len(everything.json()["data"]) == 3

    web = await client.get("/api/v1/resources?category=web")
    assert [r["title"] for r in web.json()["data"]] == ["OWASP Top 10 Primer"]

    advanced = await client.get("/api/v1/resources?difficulty=ADVANCED")
    assert [r["title"] for r in advanced.json()["data"]] == ["Malware analysis"]


async def test_update_and_delete(client: AsyncClient, resource, admin_headers):
    url = f"/api/v1/resources/{resource['id']}"
    r = await client.put(url, json={"difficulty": "INTERMEDIATE"}, headers=admin_headers)
    assert r.json()["data"]["difficulty"] == "INTERMEDIATE"
    assert r.json()["data"]["title"] == RESOURCE["title"]

    assert (await client.delete(url, headers=admin_headers)).status_code == 200
    assert (await client.get(url)).status_code == 404


async def test_null_update_rejected(client: AsyncClient, resource, admin_headers):
    url = f"/api/v1/resources/{resource['id']}"
    for field in ("title", "category", "author_name", "difficulty"):
        r = await client.put(url, json={field: None}, headers=admin_headers)
        assert r.status_code == 400, field

    r = await client.put(url, json={"description": None}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["description"] is None
    assert r.json()["data"]["category"] == RESOURCE["category"]
