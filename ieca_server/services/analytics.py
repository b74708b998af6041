# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Admin dashboard statistics."""

from datetime import timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.models import BlogPost, EmailLog, Notification, Resource, SecurityToolUsage, User
from ieca_server.models.base import utcnow

NEW_USER_WINDOW_DAYS = 30


async def _count(db: AsyncSession, model, *conditions) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*conditions)) or 0


async def dashboard_stats(db: AsyncSession) -> dict[str, Any]:
    since = utcnow() - timedelta(days=NEW_USER_WINDOW_DAYS)
    emails = await db.execute(select(EmailLog.status, func.count()).group_by(EmailLog.status))
    return {
        "total_users": await _count(db, User),
        "active_users": await _count(db, User, User.is_active == True),
        "new_users_last_30_days": await _count(db, User, User.created_at >= since),
        "published_posts": await _count(db, BlogPost, BlogPost.status == "PUBLISHED"),
        "published_resources": await _count(db, Resource, Resource.status == "PUBLISHED"),
        "unread_notifications": await _count(db, Notification, Notification.read == False),
        "emails": {status: count for status, count in emails.all()},
        "tool_usage": await _count(db, SecurityToolUsage),
    }
