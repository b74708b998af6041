# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Password reset tokens and password changes.

A reset request issues a random token, stores only its SHA-256 digest and
returns the plain token to the caller, who emails it. A user has at most one
active (unused, unexpired) token: issuing a new one marks the previous ones
used inside the same transaction, with the user row locked so two concurrent
requests cannot both leave a token active.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.auth import hash_password, verify_password
from ieca_server.config import settings
from ieca_server.errors import ValidationError
from ieca_server.models import PasswordResetToken, User
from ieca_server.models.base import utcnow
from ieca_server.services.users import normalize_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class ResetRequest:
    """An issued token plus the public profile fields needed for the reset email."""

    user_id: int
    email: str
    name: str
    token: str
    expires_at: datetime


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def check_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


async def request_reset(db: AsyncSession, email: str) -> ResetRequest | None:
    """Issue a reset token for the account with this email.

    Returns None when no account matches; callers must respond exactly as they
    do when a token was issued.
    """
    if not email or not email.strip():
        raise ValidationError("Email is required")
    result = await db.execute(
        select(User).where(User.email == normalize_email(email)).with_for_update()
    )
    user = result.scalar_one_or_none()
    if not user:
        return None

    now = utcnow()
    await db.execute(
        update(PasswordResetToken)
        .where(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.used == False,
        )
        .values(used=True, used_at=now)
    )
    token = generate_reset_token()
    expires_at = now + timedelta(minutes=settings.password_reset_ttl_minutes)
    db.add(PasswordResetToken(user_id=user.id, token_hash=hash_token(token), expires_at=expires_at))
    await db.commit()
    logger.info("Issued password reset token for user %s", user.id)
    return ResetRequest(
        user_id=user.id,
        email=user.email,
        name=user.name,
        token=token,
        expires_at=expires_at,
    )


async def validate_reset_token(db: AsyncSession, token: str) -> PasswordResetToken | None:
    """Return the active token row for this token, or None if unknown, used or expired."""
    if not token:
        return None
    result = await db.execute(
        select(PasswordResetToken).where(
            PasswordResetToken.token_hash == hash_token(token),
            PasswordResetToken.used == False,
            PasswordResetToken.expires_at > utcnow(),
        )
    )
    return result.scalar_one_or_none()


async def reset_password(db: AsyncSession, token: str, new_password: str) -> User | None:
    """Set a new password using an active token and consume the token. None if the token is not active."""
    check_password_strength(new_password)
    prt = await validate_reset_token(db, token)
    if not prt:
        return None
    user = await db.get(User, prt.user_id)
    if not user:
        return None
    user.password_hash = hash_password(new_password)
    prt.used = True
    prt.used_at = utcnow()
    await db.commit()
    logger.info("Password reset for user %s", user.id)
    return user


async def change_password(db: AsyncSession, user_id: int, current_password: str, new_password: str) -> bool:
    """Change the password of an authenticated user. False if the current password is wrong."""
    check_password_strength(new_password)
    user = await db.get(User, user_id)
    if not user or not verify_password(current_password, user.password_hash):
        return False
    user.password_hash = hash_password(new_password)
    await db.commit()
    logger.info("Password changed for user %s", user.id)
    return True
