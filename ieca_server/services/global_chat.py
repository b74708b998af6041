# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Global chat: the shared room, presence, messages and emoji reactions."""

import logging
from collections.abc import Iterable
from datetime import timedelta
from typing import Literal

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.schemas import ChatMessageResponse, OnlineMember, ReactionGroup, ReactionState
from ieca_server.config import settings
from ieca_server.errors import NotFound, PermissionDenied, ValidationError
from ieca_server.models import (
    GlobalChatMember,
    GlobalChatMessage,
    GlobalChatReaction,
    GlobalChatRoom,
    User,
)
from ieca_server.models.global_chat import EDITABLE_MESSAGE_TYPES
from ieca_server.models.base import utcnow

logger = logging.getLogger(__name__)

GLOBAL_ROOM_NAME = "General"
GLOBAL_ROOM_DESCRIPTION = "Global chat room for all IECA members"


def _insert_ignoring_duplicates(db: AsyncSession, table):
    """INSERT that silently skips rows violating a unique constraint."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as pg_insert
        return pg_insert(table).on_conflict_do_nothing()
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert
        return sqlite_insert(table).on_conflict_do_nothing()
    return None


async def get_global_room(db: AsyncSession) -> GlobalChatRoom:
    """Return the shared room, creating it on first use."""
    result = await db.execute(select(GlobalChatRoom).where(GlobalChatRoom.name == GLOBAL_ROOM_NAME))
    room = result.scalar_one_or_none()
    if room:
        return room
    stmt = _insert_ignoring_duplicates(db, GlobalChatRoom)
    if stmt is not None:
        await db.execute(stmt.values(name=GLOBAL_ROOM_NAME, description=GLOBAL_ROOM_DESCRIPTION))
    else:
        db.add(GlobalChatRoom(name=GLOBAL_ROOM_NAME, description=GLOBAL_ROOM_DESCRIPTION))
    await db.commit()
    result = await db.execute(select(GlobalChatRoom).where(GlobalChatRoom.name == GLOBAL_ROOM_NAME))
    logger.info("Created global chat room")
    return result.scalar_one()


async def join_room(db: AsyncSession, room_id: int, user_id: int) -> GlobalChatMember:
    """Add the user to the room if needed and refresh their presence."""
    member = await db.get(GlobalChatMember, (room_id, user_id))
    now = utcnow()
    if member:
        member.last_seen_at = now
    else:
        member = GlobalChatMember(room_id=room_id, user_id=user_id, joined_at=now, last_seen_at=now)
        db.add(member)
    await db.commit()
    return member


async def update_last_seen(db: AsyncSession, room_id: int, user_id: int) -> GlobalChatMember:
    return await join_room(db, room_id, user_id)


async def get_online_members(db: AsyncSession, room_id: int) -> list[OnlineMember]:
    """Members seen within the configured online window, most recent first."""
    cutoff = utcnow() - timedelta(minutes=settings.chat_online_window_minutes)
    result = await db.execute(
        select(GlobalChatMember, User.name, User.role)
        .join(User, GlobalChatMember.user_id == User.id)
        .where(GlobalChatMember.room_id == room_id, GlobalChatMember.last_seen_at >= cutoff)
        .order_by(GlobalChatMember.last_seen_at.desc())
    )
    return [
        OnlineMember(user_id=m.user_id, name=name, role=role, last_seen_at=m.last_seen_at)
        for m, name, role in result.all()
    ]


def _group_reactions(rows: Iterable[tuple[str, int]]) -> list[ReactionGroup]:
    groups: dict[str, list[int]] = {}
    for emoji, user_id in rows:
        groups.setdefault(emoji, []).append(user_id)
    return [
        ReactionGroup(emoji=emoji, count=len(user_ids), user_ids=sorted(user_ids))
        for emoji, user_ids in groups.items()
    ]


async def _reactions_for(db: AsyncSession, message_ids: list[int]) -> dict[int, list[ReactionGroup]]:
    if not message_ids:
        return {}
    result = await db.execute(
        select(GlobalChatReaction.message_id, GlobalChatReaction.emoji, GlobalChatReaction.user_id)
        .where(GlobalChatReaction.message_id.in_(message_ids))
        .order_by(GlobalChatReaction.created_at, GlobalChatReaction.id)
    )
    per_message: dict[int, list[tuple[str, int]]] = {}
    for message_id, emoji, user_id in result.all():
        per_message.setdefault(message_id, []).append((emoji, user_id))
    return {mid: _group_reactions(rows) for mid, rows in per_message.items()}


def _to_response(message: GlobalChatMessage, author_name: str | None, reactions: list[ReactionGroup]) -> ChatMessageResponse:
    return ChatMessageResponse(
        id=message.id,
        room_id=message.room_id,
        user_id=message.user_id,
        author_name=author_name,
        content=message.content,
        message_type=message.message_type,
        reply_to_id=message.reply_to_id,
        is_edited=message.is_edited,
        reactions=reactions,
        created_at=message.created_at,
        updated_at=message.updated_at,
    )


async def get_messages(db: AsyncSession, room_id: int, limit: int = 50, offset: int = 0) -> list[ChatMessageResponse]:
    """A page of the newest messages, returned oldest first for display."""
    result = await db.execute(
        select(GlobalChatMessage, User.name)
        .join(User, GlobalChatMessage.user_id == User.id)
        .where(GlobalChatMessage.room_id == room_id)
        .order_by(GlobalChatMessage.created_at.desc(), GlobalChatMessage.id.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = list(reversed(result.all()))
    reactions = await _reactions_for(db, [m.id for m, _ in rows])
    return [_to_response(m, name, reactions.get(m.id, [])) for m, name in rows]


async def get_message(db: AsyncSession, message_id: int) -> GlobalChatMessage | None:
    return await db.get(GlobalChatMessage, message_id)


async def send_message(
    db: AsyncSession,
    room_id: int,
    user_id: int,
    content: str = "",
    message_type: str = "TEXT",
    reply_to_id: int | None = None,
) -> ChatMessageResponse:
    if message_type in EDITABLE_MESSAGE_TYPES and not content.strip():
        raise ValidationError("Message content is required")
    if reply_to_id is not None:
        parent = await get_message(db, reply_to_id)
        if not parent or parent.room_id != room_id:
            raise NotFound("Message being replied to not found")
    await join_room(db, room_id, user_id)
    message = GlobalChatMessage(
        room_id=room_id,
        user_id=user_id,
        content=content,
        message_type=message_type,
        reply_to_id=reply_to_id,
    )
    db.add(message)
    await db.commit()
    author = await db.get(User, user_id)
    return _to_response(message, author.name if author else None, [])


async def _get_own_message(db: AsyncSession, message_id: int, user_id: int, verb: str) -> GlobalChatMessage:
    message = await get_message(db, message_id)
    if not message:
        raise NotFound("Message not found")
    if message.user_id != user_id:
        raise PermissionDenied(f"You can only {verb} your own messages")
    return message


async def update_message(db: AsyncSession, message_id: int, user_id: int, content: str) -> ChatMessageResponse:
    """Edit a TEXT or CODE message owned by the user."""
    message = await _get_own_message(db, message_id, user_id, "edit")
    if message.message_type not in EDITABLE_MESSAGE_TYPES:
        raise ValidationError("Only text and code messages can be edited")
    message.content = content
    message.is_edited = True
    await db.commit()
    author = await db.get(User, user_id)
    reactions = await _reactions_for(db, [message.id])
    return _to_response(message, author.name if author else None, reactions.get(message.id, []))


async def delete_message(db: AsyncSession, message_id: int, user_id: int) -> None:
    message = await _get_own_message(db, message_id, user_id, "delete")
    await db.execute(delete(GlobalChatReaction).where(GlobalChatReaction.message_id == message.id))
    await db.delete(message)
    await db.commit()


async def get_reaction_state(db: AsyncSession, message_id: int) -> ReactionState:
    reactions = await _reactions_for(db, [message_id])
    return ReactionState(message_id=message_id, reactions=reactions.get(message_id, []))


async def apply_reaction(
    db: AsyncSession,
    message_id: int,
    user_id: int,
    emoji: str,
    action: Literal["add", "remove"],
) -> ReactionState:
    """Add or remove the (message, user, emoji) reaction. Both actions are idempotent.

    Returns the message's full reaction set after the change.
    """
    if not await get_message(db, message_id):
        raise NotFound("Message not found")
    if action == "add":
        values = {"message_id": message_id, "user_id": user_id, "emoji": emoji, "created_at": utcnow()}
        stmt = _insert_ignoring_duplicates(db, GlobalChatReaction)
        if stmt is not None:
            await db.execute(stmt.values(**values))
        else:
            existing = await db.execute(
                select(GlobalChatReaction.id).where(
                    GlobalChatReaction.message_id == message_id,
                    GlobalChatReaction.user_id == user_id,
                    GlobalChatReaction.emoji == emoji,
                )
            )
            if existing.first() is None:
                await db.execute(insert(GlobalChatReaction).values(**values))
    elif action == "remove":
        await db.execute(
            delete(GlobalChatReaction).where(
                GlobalChatReaction.message_id == message_id,
                GlobalChatReaction.user_id == user_id,
                GlobalChatReaction.emoji == emoji,
            )
        )
    else:
        raise ValidationError(f"Unknown reaction action: {action}")
    await db.commit()
    return await get_reaction_state(db, message_id)
