# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Badge notification emails."""

import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.schemas import Badge
from ieca_server.config import settings
from ieca_server.models import EmailLog, User
from ieca_server.models.base import utcnow
from ieca_server.services import email

logger = logging.getLogger(__name__)

# Checked in order; first keyword found in the badge id wins
_TYPE_KEYWORDS = (
    ("security", ("security",)),
    ("scanner", ("scanner",)),
    ("researcher", ("researcher", "hunter")),
    ("content", ("content", "blogger")),
    ("community", ("community",)),
    ("streak", ("warrior", "champion")),
    ("welcome", ("welcome", "aboard")),
)

NEXT_BADGE_HINTS = {
    "security-enthusiast": "Use 30 more security tools to earn Security Expert badge!",
    "scanner": "Complete 15 more scans to earn Master Scanner badge!",
    "bug-hunter": "Submit 5 more reports to earn Security Researcher badge!",
    "blogger": "Publish 7 more posts to earn Content Creator badge!",
    "weekly-warrior": "Login for 23 more consecutive days to earn Monthly Champion!",
    "monthly-champion": "Login for 335 more consecutive days to earn Yearly Warrior!",
    "welcome-aboard": "Explore security tools, join discussions, and start your cybersecurity journey!",
}


def badge_type(badge_id: str) -> str:
    for kind, keywords in _TYPE_KEYWORDS:
        if any(k in badge_id for k in keywords):
            return kind
    return "security"


def next_badge_hint(badge_id: str) -> str | None:
    return NEXT_BADGE_HINTS.get(badge_id)


async def _recently_sent(db: AsyncSession, recipient: str, badge_id: str) -> bool:
    since = utcnow() - timedelta(hours=settings.badge_email_dedup_hours)
    result = await db.execute(
        select(EmailLog.id, EmailLog.details).where(
            EmailLog.recipient == recipient,
            EmailLog.kind == email.KIND_BADGE,
            EmailLog.status == "SENT",
            EmailLog.created_at >= since,
        )
    )
    return any((details or {}).get("badge_id") == badge_id for _, details in result.all())


async def send_badge_email(
    db: AsyncSession,
    user: User,
    badge: Badge,
    total_badges: int,
    hint: str | None = None,
) -> bool:
    """Email the user about a newly earned badge.

    Returns True without sending when the same badge email already went out
    within the dedup window.
    """
    if await _recently_sent(db, user.email, badge.id):
        logger.info("Badge email %s already sent recently to user %s", badge.id, user.id)
        return True
    return await email.send(
        db,
        email.KIND_BADGE,
        user.email,
        user.name,
        {
            "badge_id": badge.id,
            "badge_title": badge.title,
            "badge_description": badge.description,
            "badge_type": badge_type(badge.id),
            "total_badges": total_badges,
            "next_badge_hint": hint or next_badge_hint(badge.id),
        },
    )
