# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Security tool catalogue and usage tracking."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.envelope import ok
from ieca_server.api.schemas import ToolUsageCreate, ToolUsageResponse
from ieca_server.auth import get_current_user
from ieca_server.database import get_db
from ieca_server.models import User
from ieca_server.services import security_tools

router = APIRouter(prefix="/security", tags=["security"])


@router.get("/tools")
async def list_tools(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Tools with the caller's usage counts and activity summary."""
    return ok(await security_tools.list_tools_for_user(db, user.id))


@router.post("/tools/{tool_id}/usage")
async def record_usage(
    tool_id: int,
    data: ToolUsageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    usage = await security_tools.record_usage(db, tool_id, user.id, data.target, data.status)
    return ok(ToolUsageResponse.model_validate(usage), "Tool usage recorded")
