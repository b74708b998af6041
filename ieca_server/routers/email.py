# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Email administration: templates, delivery log, stats and badge emails."""

import math
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.envelope import ok
from ieca_server.api.schemas import (
    BadgeEmailRequest,
    EmailLogResponse,
    EmailTemplateCreate,
    EmailTemplateResponse,
    EmailTemplateUpdate,
    TemplatePreviewRequest,
)
from ieca_server.auth import get_current_user, require_admin
from ieca_server.database import get_db
from ieca_server.errors import Internal, NotFound
from ieca_server.models import User
from ieca_server.services import badges, email_templates, users

router = APIRouter(tags=["email"])


@router.get("/email/templates")
async def list_templates(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    templates = await email_templates.list_templates(db)
    return ok([EmailTemplateResponse.model_validate(t) for t in templates])


@router.post("/email/templates")
async def create_template(
    data: EmailTemplateCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    template = await email_templates.create_template(db, **data.model_dump())
    return ok(EmailTemplateResponse.model_validate(template), "Template created successfully")


@router.get("/email/templates/{template_id}")
async def get_template(
    template_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    template = await email_templates.get_template(db, template_id)
    return ok(EmailTemplateResponse.model_validate(template))


@router.put("/email/templates/{template_id}")
async def update_template(
    template_id: int,
    data: EmailTemplateUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    template = await email_templates.update_template(
        db, template_id, data.model_dump(exclude_unset=True)
    )
    return ok(EmailTemplateResponse.model_validate(template), "Template updated successfully")


@router.delete("/email/templates/{template_id}")
async def delete_template(
    template_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await email_templates.delete_template(db, template_id)
    return ok(message="Template deleted successfully")


@router.post("/email/templates/{template_id}/preview")
async def preview_template(
    template_id: int,
    data: TemplatePreviewRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Render a template with sample variables without sending anything."""
    return ok(await email_templates.preview_template(db, template_id, data.variables))


@router.get("/email/logs")
async def list_logs(
    status: str | None = Query(None),
    recipient: str | None = Query(None),
    template_id: int | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    logs, total = await email_templates.list_logs(
        db, status, recipient, template_id, date_from, date_to, page, limit
    )
    return ok({
        "logs": [EmailLogResponse.model_validate(log) for log in logs],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if total else 0,
        },
    })


@router.get("/email/stats")
async def stats(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return ok(await email_templates.delivery_stats(db))


@router.post("/badge-email")
async def send_badge_email(
    data: BadgeEmailRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Email a member about a badge they just earned."""
    recipient = await users.get_user_by_id(db, data.user_id)
    if not recipient:
        raise NotFound("User not found")
    sent = await badges.send_badge_email(
        db, recipient, data.badge, data.total_badges, data.next_badge_hint
    )
    if not sent:
        raise Internal("Failed to send badge email")
    return ok(message="Badge email sent successfully")
