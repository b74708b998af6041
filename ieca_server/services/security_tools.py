# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Security tool catalogue and per-user usage statistics."""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.errors import NotFound, ValidationError
from ieca_server.models import SecurityTool, SecurityToolUsage

RECENT_ACTIVITY_LIMIT = 5


async def _count_usage(db: AsyncSession, user_id: int, status: str | None = None) -> int:
    query = select(func.count()).select_from(SecurityToolUsage).where(SecurityToolUsage.user_id == user_id)
    if status:
        query = query.where(SecurityToolUsage.status == status)
    return await db.scalar(query) or 0


async def list_tools_for_user(db: AsyncSession, user_id: int) -> dict[str, Any]:
    """Every tool with its total usage count and the user's last run, plus the user's scan stats."""
    usage_count = (
        select(func.count(SecurityToolUsage.id))
        .where(SecurityToolUsage.tool_id == SecurityTool.id)
        .correlate(SecurityTool)
        .scalar_subquery()
    )
    last_used = (
        select(func.max(SecurityToolUsage.created_at))
        .where(SecurityToolUsage.tool_id == SecurityTool.id, SecurityToolUsage.user_id == user_id)
        .correlate(SecurityTool)
        .scalar_subquery()
    )
    result = await db.execute(
        select(SecurityTool, usage_count, last_used).order_by(SecurityTool.name)
    )
    tools = [
        {
            "id": tool.id,
            "name": tool.name,
            "type": tool.type,
            "description": tool.description,
            "is_active": tool.is_active,
            "usage_count": count or 0,
            "last_used": last,
        }
        for tool, count, last in result.all()
    ]

    recent = await db.execute(
        select(SecurityToolUsage, SecurityTool.name)
        .join(SecurityTool, SecurityToolUsage.tool_id == SecurityTool.id)
        .where(SecurityToolUsage.user_id == user_id)
        .order_by(SecurityToolUsage.created_at.desc(), SecurityToolUsage.id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
    )
    recent_activity = [
        {
            "id": usage.id,
            "action": f"Used {tool_name}",
            "tool": tool_name,
            "status": usage.status.lower(),
            "timestamp": usage.created_at,
        }
        for usage, tool_name in recent.all()
    ]

    stats = {
        "total_tools": len(tools),
        "total_usage": await _count_usage(db, user_id),
        "active_scans": await _count_usage(db, user_id, "PENDING"),
        "completed_scans": await _count_usage(db, user_id, "COMPLETED"),
        "recent_activity": recent_activity,
    }
    return {"tools": tools, "stats": stats}


async def record_usage(
    db: AsyncSession,
    tool_id: int,
    user_id: int,
    target: str | None = None,
    status: str = "PENDING",
) -> SecurityToolUsage:
    tool = await db.get(SecurityTool, tool_id)
    if not tool:
        raise NotFound("Security tool not found")
    if not tool.is_active:
        raise ValidationError(f"{tool.name} is currently disabled")
    usage = SecurityToolUsage(tool_id=tool_id, user_id=user_id, target=target, status=status)
    db.add(usage)
    await db.commit()
    return usage
