# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Notification endpoint tests."""

import pytest
from httpx import AsyncClient

from ieca_server.services import notifications

pytestmark = pytest.mark.anyio


@pytest.fixture
async def notification(session, member):
    return await notifications.create_notification(session, member.id, "Welcome", "Hello there")


async def test_list_and_unread_count(client: AsyncClient, notification, member_headers):
    r = await client.get("/api/v1/notifications", headers=member_headers)
    assert r.status_code == 200
    items = r.json()["data"]
    assert [n["title"] for n in items] == ["Welcome"]
    assert items[0]["read"] is False

    count = await client.get("/api/v1/notifications/unread-count", headers=member_headers)
    assert count.json()["data"] == {"count": 1}


async def test_mark_as_read_is_idempotent(client: AsyncClient, notification, member_headers):
    url = f"/api/v1/notifications/{notification.id}"
    first = await client.put(url, headers=member_headers)
    second = await client.put(url, headers=member_headers)
    assert first.status_code == second.status_code == 200
    assert second.json()["data"]["read"] is True

    unread = await client.get("/api/v1/notifications?unread=true", headers=member_headers)
    assert unread.json()["data"] == []


async def test_delete_missing_notification(client: AsyncClient, member_headers):
    r = await client.delete("/api/v1/notifications/9999", headers=member_headers)
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Notification not found"}


async def test_mark_missing_notification_read(client: AsyncClient, member_headers):
    r = await client.put("/api/v1/notifications/9999", headers=member_headers)
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Notification not found"}


async def test_delete_notification(client: AsyncClient, notification, member_headers):
    r = await client.delete(f"/api/v1/notifications/{notification.id}", headers=member_headers)
    assert r.status_code == 200
    again = await client.delete(f"/api/v1/notifications/{notification.id}", headers=member_headers)
    assert again.status_code == 404


async def test_other_users_notification_is_not_found(client: AsyncClient, notification, other_headers):
    r = await client.put(f"/api/v1/notifications/{notification.id}", headers=other_headers)
    assert r.status_code == 404
    r = await client.delete(f"/api/v1/notifications/{notification.id}", headers=other_headers)
    assert r.status_code == 404


async def test_mark_all_read(client: AsyncClient, session, member, member_headers):
    for i in range(3):
        await notifications.create_notification(session, member.id, f"N{i}", "body")
    r = await client.post("/api/v1/notifications/read-all", headers=member_headers)
    assert r.json()["data"] == {"updated": 3}
    count = await client.get("/api/v1/notifications/unread-count", headers=member_headers)
    assert count.json()["data"]["count"] == 0


async def test_create_requires_admin(client: AsyncClient, member, member_headers, admin_headers):
    payload = {"user_id": member.id, "title": "Heads up", "message": "Maintenance tonight", "type": "WARNING"}
    denied = await client.post("/api/v1/notifications", json=payload, headers=member_headers)
    assert denied.status_code == 403
    assert denied.json()["success"] is False

    created = await client.post("/api/v1/notifications", json=payload, headers=admin_headers)
    assert created.status_code == 200
    assert created.json()["data"]["type"] == "WARNING"


async def test_create_for_missing_user(client: AsyncClient, admin_headers):
    r = await client.post(
        "/api/v1/notifications",
        json={"user_id": 9999, "title": "Hi", "message": "There"},
        headers=admin_headers,
    )
    assert r.status_code == 404
