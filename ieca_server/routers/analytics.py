# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Admin dashboard analytics."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.envelope import ok
from ieca_server.auth import require_admin
from ieca_server.database import get_db
from ieca_server.models import User
from ieca_server.services import analytics

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/dashboard")
async def dashboard(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return ok(await analytics.dashboard_stats(db))
