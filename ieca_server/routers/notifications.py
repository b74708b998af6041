# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Notification API routes. Users only see and change their own notifications."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.envelope import ok
from ieca_server.api.schemas import NotificationCreate, NotificationResponse
from ieca_server.auth import get_current_user_id, require_admin
from ieca_server.database import get_db
from ieca_server.models import User
from ieca_server.services import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    unread: bool = Query(False, description="Only unread notifications"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict:
    items = await notifications.list_notifications(db, user_id, unread_only=unread)
    return ok([NotificationResponse.model_validate(n) for n in items])


@router.get("/unread-count")
async def unread_count(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return ok({"count": await notifications.unread_count(db, user_id)})


@router.post("")
async def create_notification(
    data: NotificationCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Send a notification to a user (moderators and admins)."""
    notification = await notifications.create_notification(
        db, data.user_id, data.title, data.message, data.type
    )
    return ok(NotificationResponse.model_validate(notification), "Notification created successfully!")


@router.post("/read-all")
async def mark_all_read(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict:
    changed = await notifications.mark_all_read(db, user_id)
    return ok({"updated": changed}, "All notifications marked as read")


@router.put("/{notification_id}")
async def mark_as_read(
    notification_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict:
    notification = await notifications.mark_as_read(db, notification_id, user_id)
    return ok(NotificationResponse.model_validate(notification), "Notification marked as read!")


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await notifications.delete_notification(db, notification_id, user_id)
    return ok(message="Notification deleted successfully!")
