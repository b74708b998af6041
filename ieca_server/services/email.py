# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Transactional email. Logs to console when SMTP is not configured.

Every attempt made through `send` is recorded in the email log. Delivery is
best effort: failures are logged and reported as False, never raised.
"""

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

from jinja2 import DictLoader, Environment, select_autoescape
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.config import settings
from ieca_server.models import EmailLog, EmailTemplate
from ieca_server.models.base import utcnow
from ieca_server.services.email_templates import render_template

logger = logging.getLogger(__name__)

KIND_PASSWORD_RESET = "password-reset"
KIND_PASSWORD_CHANGED = "password-changed"
KIND_BADGE = "badge"

_LAYOUT = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: system-ui, sans-serif; color: #333; max-width: 560px;">
<h2 style="color: #4c51bf;">IECA</h2>
{% block body %}{% endblock %}
<p style="color: #888; font-size: 12px;">You are receiving this because you have an IECA account.</p>
</body>
</html>"""

_BUILTIN = {
    "layout.html": _LAYOUT,
    "password-reset.subject": "IECA - Password Reset Request",
    "password-reset.txt": (
        "Hello {{ name }},\n\n"
        "We received a request to reset your IECA password. Open the link below to choose a new one:\n\n"
        "{{ reset_url }}\n\n"
        "The link expires in {{ ttl_minutes }} minutes. If you did not ask for this, ignore this email."
    ),
    "password-reset.html": (
        "{% extends 'layout.html' %}{% block body %}"
        "<p>Hello {{ name }},</p>"
        "<p>We received a request to reset your IECA password.</p>"
        '<p><a href="{{ reset_url }}">Reset your password</a></p>'
        "<p>The link expires in {{ ttl_minutes }} minutes. If you did not ask for this, ignore this email.</p>"
        "{% endblock %}"
    ),
    "password-changed.subject": "IECA - Your password was changed",
    "password-changed.txt": (
        "Hello {{ name }},\n\n"
        "The password of your IECA account was just changed. "
        "If this was not you, reset your password immediately and contact an administrator."
    ),
    "password-changed.html": (
        "{% extends 'layout.html' %}{% block body %}"
        "<p>Hello {{ name }},</p>"
        "<p>The password of your IECA account was just changed.</p>"
        "<p>If this was not you, reset your password immediately and contact an administrator.</p>"
        "{% endblock %}"
    ),
    "badge.subject": "\U0001F389 Badge Earned: {{ badge_title }}",
    "badge.txt": (
        "Congratulations {{ name }}! You've earned the {{ badge_title }} badge. {{ badge_description }}\n\n"
        "You now have {{ total_badges }} badge{{ 's' if total_badges != 1 }}."
        "{% if next_badge_hint %}\n\nNext up: {{ next_badge_hint }}{% endif %}"
    ),
    "badge.html": (
        "{% extends 'layout.html' %}{% block body %}"
        "<p>Congratulations {{ name }}!</p>"
        "<p>You've earned the <strong>{{ badge_title }}</strong> badge ({{ badge_type }}).</p>"
        "<p>{{ badge_description }}</p>"
        "<p>You now have {{ total_badges }} badge{{ 's' if total_badges != 1 }}.</p>"
        "{% if next_badge_hint %}<p>Next up: {{ next_badge_hint }}</p>{% endif %}"
        "{% endblock %}"
    ),
}

KINDS = (KIND_PASSWORD_RESET, KIND_PASSWORD_CHANGED, KIND_BADGE)

_env = Environment(loader=DictLoader(_BUILTIN), autoescape=select_autoescape(["html"]))
_text_env = Environment(loader=DictLoader(_BUILTIN), autoescape=False)


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    text: str
    html: str
    template_id: int | None = None


def reset_url(token: str) -> str:
    base = (settings.app_base_url or "http://localhost:3000").rstrip("/")
    return f"{base}/reset-password?token={token}"


def render_builtin(kind: str, context: dict[str, Any]) -> RenderedEmail:
    if kind not in KINDS:
        raise ValueError(f"Unknown email kind: {kind}")
    return RenderedEmail(
        subject=_text_env.get_template(f"{kind}.subject").render(**context).strip(),
        text=_text_env.get_template(f"{kind}.txt").render(**context),
        html=_env.get_template(f"{kind}.html").render(**context),
    )


async def active_template(db: AsyncSession, kind: str) -> EmailTemplate | None:
    """The admin template overriding the built-in one for this kind, if any."""
    result = await db.execute(
        select(EmailTemplate).where(EmailTemplate.name == kind, EmailTemplate.is_active == True)
    )
    return result.scalar_one_or_none()


def render(template: EmailTemplate | None, kind: str, context: dict[str, Any]) -> RenderedEmail:
    if template is None:
        return render_builtin(kind, context)
    subject, html, text = render_template(template, context)
    return RenderedEmail(subject=subject, text=text or "", html=html, template_id=template.id)


def _deliver(to: str, subject: str, body: str, html: str | None) -> None:
    if html:
        msg = MIMEMultipart("alternative")
        msg.attach(MIMEText(body, "plain"))
        msg.attach(MIMEText(html, "html"))
    else:
        msg = MIMEText(body, "plain")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
        server.starttls()
        server.login(settings.smtp_user, settings.smtp_password or "")
        server.sendmail(settings.smtp_from, [to], msg.as_string())


async def send_email(to: str, subject: str, body: str, html: str | None = None) -> None:
    """Send an email (plain, plus HTML when given). Logs to console if SMTP not configured.

    Raises on SMTP failure.
    """
    if settings.smtp_host and settings.smtp_user:
        await asyncio.to_thread(_deliver, to, subject, body, html)
    else:
        logger.info("Email (SMTP not configured): To=%s Subject=%s Body=%s", to, subject, body[:200])


async def send(
    db: AsyncSession,
    kind: str,
    recipient_email: str,
    recipient_name: str,
    payload: dict[str, Any] | None = None,
) -> bool:
    """Render and deliver one transactional email, recording the attempt. Returns whether it was sent."""
    context = {"name": recipient_name, "email": recipient_email, **(payload or {})}
    template = await active_template(db, kind)
    log = EmailLog(
        template_id=template.id if template else None,
        kind=kind,
        recipient=recipient_email,
        subject=template.subject if template else kind,
        status="PENDING",
        details={k: v for k, v in (payload or {}).items() if k not in ("token", "reset_url")},
    )
    try:
        rendered = render(template, kind, context)
        log.subject = rendered.subject[:255]
        await send_email(recipient_email, rendered.subject, rendered.text, rendered.html)
    except Exception as e:
        logger.exception("Failed to send %s email to %s: %s", kind, recipient_email, e)
        log.status = "FAILED"
        log.error_message = str(e)[:1000]
    else:
        log.status = "SENT"
        log.sent_at = utcnow()
    db.add(log)
    await db.commit()
    return log.status == "SENT"


async def send_password_reset_email(db: AsyncSession, to: str, name: str, token: str) -> bool:
    return await send(
        db,
        KIND_PASSWORD_RESET,
        to,
        name,
        {"token": token, "reset_url": reset_url(token), "ttl_minutes": settings.password_reset_ttl_minutes},
    )


async def send_password_changed_email(db: AsyncSession, to: str, name: str) -> bool:
    return await send(db, KIND_PASSWORD_CHANGED, to, name)
