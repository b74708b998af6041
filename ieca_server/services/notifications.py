# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""In-app notifications: Unread -> Read (one-way) and explicit delete."""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.errors import NotFound
from ieca_server.models import Notification, User

logger = logging.getLogger(__name__)


async def create_notification(
    db: AsyncSession,
    user_id: int,
    title: str,
    message: str,
    notification_type: str = "INFO",
) -> Notification:
    if not await db.get(User, user_id):
        raise NotFound("User not found")
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=notification_type,
    )
    db.add(notification)
    await db.commit()
    await db.refresh(notification)
    return notification


async def list_notifications(db: AsyncSession, user_id: int, unread_only: bool = False) -> list[Notification]:
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.read == False)
    result = await db.execute(query.order_by(Notification.created_at.desc(), Notification.id.desc()))
    return list(result.scalars().all())


async def unread_count(db: AsyncSession, user_id: int) -> int:
    count = await db.scalar(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read == False)
    )
    return count or 0


async def _get_owned(db: AsyncSession, notification_id: int, user_id: int) -> Notification:
    notification = await db.get(Notification, notification_id)
    # Someone else's notification is reported as missing, not forbidden
    if not notification or notification.user_id != user_id:
        raise NotFound("Notification not found")
    return notification


async def mark_as_read(db: AsyncSession, notification_id: int, user_id: int) -> Notification:
    """Set read=true. Re-marking a read notification is a no-op."""
    notification = await _get_owned(db, notification_id, user_id)
    if not notification.read:
        notification.read = True
        await db.commit()
    return notification


async def mark_all_read(db: AsyncSession, user_id: int) -> int:
    """Mark every unread notification of the user as read. Returns how many changed."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read == False)
        .values(read=True)
    )
    await db.commit()
    return result.rowcount or 0


async def delete_notification(db: AsyncSession, notification_id: int, user_id: int) -> None:
    notification = await _get_owned(db, notification_id, user_id)
    await db.delete(notification)
    await db.commit()
    logger.debug("Deleted notification %s", notification_id)
