# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Admin-managed email templates, the email log and delivery statistics."""

from datetime import datetime
from typing import Any

from jinja2 import TemplateError
from jinja2.sandbox import SandboxedEnvironment
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.errors import Conflict, NotFound, ValidationError
from ieca_server.models import EmailLog, EmailTemplate

# Templates are written by admins, so they render sandboxed
_sandbox = SandboxedEnvironment(autoescape=True)
_text_sandbox = SandboxedEnvironment(autoescape=False)


def _compile(source: str, field: str, env: SandboxedEnvironment):
    try:
        return env.from_string(source)
    except TemplateError as e:
        raise ValidationError(f"Invalid template in {field}: {e}")


def render_template(template: EmailTemplate, context: dict[str, Any]) -> tuple[str, str, str | None]:
    """Render (subject, html, text) of a stored template."""
    try:
        subject = _compile(template.subject, "subject", _text_sandbox).render(**context).strip()
        html = _compile(template.html_content, "html_content", _sandbox).render(**context)
        text = None
        if template.text_content:
            text = _compile(template.text_content, "text_content", _text_sandbox).render(**context)
    except TemplateError as e:
        raise ValidationError(f"Template rendering failed: {e}")
    return subject, html, text


def _validate_sources(fields: dict[str, Any]) -> None:
    for field in ("subject", "html_content", "text_content"):
        if fields.get(field):
            _compile(fields[field], field, _sandbox)


async def list_templates(db: AsyncSession) -> list[EmailTemplate]:
    result = await db.execute(select(EmailTemplate).order_by(EmailTemplate.name))
    return list(result.scalars().all())


async def get_template(db: AsyncSession, template_id: int) -> EmailTemplate:
    template = await db.get(EmailTemplate, template_id)
    if not template:
        raise NotFound("Email template not found")
    return template


async def _ensure_name_free(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    query = select(EmailTemplate.id).where(EmailTemplate.name == name)
    if exclude_id is not None:
        query = query.where(EmailTemplate.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise Conflict(f"An email template named '{name}' already exists")


async def create_template(db: AsyncSession, **fields) -> EmailTemplate:
    _validate_sources(fields)
    await _ensure_name_free(db, fields["name"])
    template = EmailTemplate(**fields)
    db.add(template)
    await db.commit()
    await db.refresh(template)
    return template


async def update_template(db: AsyncSession, template_id: int, changes: dict[str, Any]) -> EmailTemplate:
    template = await get_template(db, template_id)
    _validate_sources(changes)
    if changes.get("name") and changes["name"] != template.name:
        await _ensure_name_free(db, changes["name"], exclude_id=template.id)
    for field, value in changes.items():
        setattr(template, field, value)
    await db.commit()
    return template


async def delete_template(db: AsyncSession, template_id: int) -> None:
    template = await get_template(db, template_id)
    await db.delete(template)
    await db.commit()


async def preview_template(db: AsyncSession, template_id: int, variables: dict[str, Any]) -> dict[str, Any]:
    template = await get_template(db, template_id)
    subject, html, text = render_template(template, variables)
    return {"subject": subject, "html": html, "text": text}


async def list_logs(
    db: AsyncSession,
    status: str | None = None,
    recipient: str | None = None,
    template_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[EmailLog], int]:
    """One page of the email log, newest first, with the total match count."""
    conditions = []
    if status:
        conditions.append(EmailLog.status == status)
    if recipient:
        conditions.append(EmailLog.recipient.ilike(f"%{recipient}%"))
    if template_id is not None:
        conditions.append(EmailLog.template_id == template_id)
    if date_from:
        conditions.append(EmailLog.created_at >= date_from)
    if date_to:
        conditions.append(EmailLog.created_at <= date_to)

    total = await db.scalar(select(func.count()).select_from(EmailLog).where(*conditions))
    result = await db.execute(
        select(EmailLog)
        .where(*conditions)
        .order_by(EmailLog.created_at.desc(), EmailLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def delivery_stats(db: AsyncSession) -> dict[str, Any]:
    """Email counts per status and the share of finished attempts that were delivered."""
    result = await db.execute(select(EmailLog.status, func.count()).group_by(EmailLog.status))
    by_status = {"PENDING": 0, "SENT": 0, "FAILED": 0}
    by_status.update({status: count for status, count in result.all()})
    finished = by_status["SENT"] + by_status["FAILED"]
    success_rate = round(100.0 * by_status["SENT"] / finished, 1) if finished else 0.0
    templates = await db.scalar(select(func.count()).select_from(EmailTemplate))
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "success_rate": success_rate,
        "templates": templates or 0,
    }
