# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Global chat: messages, presence and reactions."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from ieca_server.errors import NotFound
from ieca_server.models import GlobalChatMember, GlobalChatReaction
from ieca_server.models.base import utcnow
from ieca_server.services import global_chat

pytestmark = pytest.mark.anyio


@pytest.fixture
async def message(client: AsyncClient, member_headers):
    r = await client.post("/api/v1/global-chat", json={"content": "hello all"}, headers=member_headers)
    assert r.status_code == 200
    return r.json()["data"]


async def _reaction_rows(session, message_id: int) -> int:
    return await session.scalar(
        select(func.count()).select_from(GlobalChatReaction).where(GlobalChatReaction.message_id == message_id)
    )


async def test_send_and_list_messages(client: AsyncClient, message, member_headers, member):
    await client.post("/api/v1/global-chat", json={"content": "second"}, headers=member_headers)
    r = await client.get("/api/v1/global-chat", headers=member_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["room"]["name"] == "General"
    assert [m["content"] for m in data["messages"]] == ["hello all", "second"]
    assert data["messages"][0]["author_name"] == "Test Member"
    assert [m["user_id"] for m in data["online_members"]] == [member.id]


async def test_empty_text_message_rejected(client: AsyncClient, member_headers):
    r = await client.post("/api/v1/global-chat", json={"content": "  "}, headers=member_headers)
    assert r.status_code == 400


async def test_reply_to_missing_message(client: AsyncClient, member_headers):
    r = await client.post(
        "/api/v1/global-chat",
        json={"content": "re", "reply_to_id": 999},
        headers=member_headers,
    )
    assert r.status_code == 404


async def test_add_reaction_twice_keeps_one(client: AsyncClient, message, member_headers, session):
    url = f"/api/v1/global-chat/{message['id']}/reactions"
    for _ in range(2):
        r = await client.post(url, json={"emoji": "👍", "action": "add"}, headers=member_headers)
        assert r.status_code == 200
    state = r.json()["data"]
    assert state["message_id"] == message["id"]
    assert state["reactions"] == [{"emoji": "👍", "count": 1, "user_ids": [message["user_id"]]}]
    assert await _reaction_rows(session, message["id"]) == 1


async def test_remove_reaction_twice_is_harmless(client: AsyncClient, message, member_headers, session):
    url = f"/api/v1/global-chat/{message['id']}/reactions"
    await client.post(url, json={"emoji": "👍", "action": "add"}, headers=member_headers)
    for _ in range(2):
        r = await client.post(url, json={"emoji": "👍", "action": "remove"}, headers=member_headers)
        assert r.status_code == 200
    assert r.json()["data"]["reactions"] == []
    assert await _reaction_rows(session, message["id"]) == 0


async def test_reactions_grouped_by_emoji(client: AsyncClient, message, member_headers, other_headers, other_member):
    url = f"/api/v1/global-chat/{message['id']}/reactions"
    await client.post(url, json={"emoji": "👍", "action": "add"}, headers=member_headers)
    await client.post(url, json={"emoji": "👍", "action": "add"}, headers=other_headers)
    r = await client.post(url, json={"emoji": "🔥", "action": "add"}, headers=other_headers)
    groups = {g["emoji"]: g for g in r.json()["data"]["reactions"]}
    assert groups["👍"]["count"] == 2
    assert groups["🔥"]["user_ids"] == [other_member.id]

    # Removing one user's reaction leaves the others alone
    r = await client.post(url, json={"emoji": "👍", "action": "remove"}, headers=member_headers)
    groups = {g["emoji"]: g for g in r.json()["data"]["reactions"]}
    assert groups["👍"]["user_ids"] == [other_member.id]


async def test_reaction_on_missing_message(client: AsyncClient, member_headers):
    r = await client.post(
        "/api/v1/global-chat/999/reactions",
        json={"emoji": "👍", "action": "add"},
        headers=member_headers,
    )
    assert r.status_code == 404


async def test_reaction_invalid_action(client: AsyncClient, message, member_headers):
    r = await client.post(
        f"/api/v1/global-chat/{message['id']}/reactions",
        json={"emoji": "👍", "action": "toggle"},
        headers=member_headers,
    )
    assert r.status_code == 400


async def test_apply_reaction_service_missing_message(session, member):
    with pytest.raises(NotFound):
        await global_chat.apply_reaction(session, 12345, member.id, "👍", "add")


async def test_edit_own_message_only(client: AsyncClient, message, member_headers, other_headers):
    url = f"/api/v1/global-chat/{message['id']}"
    denied = await client.patch(url, json={"content": "hacked"}, headers=other_headers)
    assert denied.status_code == 403

    r = await client.patch(url, json={"content": "hello everyone"}, headers=member_headers)
    assert r.status_code == 200
    assert r.json()["data"]["content"] == "hello everyone"
    assert r.json()["data"]["is_edited"] is True


async def test_file_message_cannot_be_edited(client: AsyncClient, member_headers):
    sent = await client.post(
        "/api/v1/global-chat",
        json={"content": "report.pdf", "message_type": "FILE"},
        headers=member_headers,
    )
    r = await client.patch(
        f"/api/v1/global-chat/{sent.json()['data']['id']}",
        json={"content": "other.pdf"},
        headers=member_headers,
    )
    assert r.status_code == 400


async def test_delete_own_message_only(client: AsyncClient, message, member_headers, other_headers):
    url = f"/api/v1/global-chat/{message['id']}"
    await client.post(f"{url}/reactions", json={"emoji": "👍", "action": "add"}, headers=member_headers)
    assert (await client.delete(url, headers=other_headers)).status_code == 403
    assert (await client.delete(url, headers=member_headers)).status_code == 200
    assert (await client.delete(url, headers=member_headers)).status_code == 404


async def test_online_members_window(session, member, other_member):
    room = await global_chat.get_global_room(session)
    await global_chat.join_room(session, room.id, member.id)
    await global_chat.join_room(session, room.id, other_member.id)

    stale = await session.get(GlobalChatMember, (room.id, other_member.id))
    stale.last_seen_at = utcnow() - timedelta(minutes=30)
    await session.commit()

    online = await global_chat.get_online_members(session, room.id)
    assert [m.user_id for m in online] == [member.id]


async def test_presence_heartbeat(client: AsyncClient, member_headers, member, session):
    r = await client.patch("/api/v1/global-chat", headers=member_headers)
    assert r.status_code == 200
    room = await global_chat.get_global_room(session)
    assert await session.get(GlobalChatMember, (room.id, member.id)) is not None


async def test_chat_requires_auth(client: AsyncClient):
    assert (await client.get("/api/v1/global-chat")).status_code == 401
