# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Global chat API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.envelope import ok
from ieca_server.api.schemas import ChatMessageCreate, ChatMessageUpdate, ChatRoomResponse, ReactionRequest
from ieca_server.auth import get_current_user
from ieca_server.database import get_db
from ieca_server.models import User
from ieca_server.services import global_chat

router = APIRouter(prefix="/global-chat", tags=["global-chat"])


@router.get("")
async def get_chat(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Room info, a page of messages (oldest first) and who is online."""
    room = await global_chat.get_global_room(db)
    messages = await global_chat.get_messages(db, room.id, limit, offset)
    online = await global_chat.get_online_members(db, room.id)
    return ok({
        "room": ChatRoomResponse.model_validate(room),
        "messages": messages,
        "online_members": online,
    })


@router.post("")
async def send_message(
    data: ChatMessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    room = await global_chat.get_global_room(db)
    message = await global_chat.send_message(
        db, room.id, user.id, data.content, data.message_type, data.reply_to_id
    )
    return ok(message)


@router.patch("")
async def update_presence(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Heartbeat: refresh the caller's last-seen time."""
    room = await global_chat.get_global_room(db)
    await global_chat.update_last_seen(db, room.id, user.id)
    return ok(message="Last seen updated")


@router.patch("/{message_id}")
async def edit_message(
    message_id: int,
    data: ChatMessageUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    message = await global_chat.update_message(db, message_id, user.id, data.content)
    return ok(message)


@router.delete("/{message_id}")
async def delete_message(
    message_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await global_chat.delete_message(db, message_id, user.id)
    return ok(message="Message deleted successfully")


@router.post("/{message_id}/reactions")
async def react(
    message_id: int,
    data: ReactionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Add or remove the caller's emoji reaction. Returns the message's reactions afterwards."""
    state = await global_chat.apply_reaction(db, message_id, user.id, data.emoji, data.action)
    return ok(state)
