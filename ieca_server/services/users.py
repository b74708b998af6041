# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""User accounts: creation, authentication and the member directory."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.auth import hash_password, verify_password
from ieca_server.errors import Conflict
from ieca_server.models import User
from ieca_server.models.base import utcnow
from ieca_server.models.user import ROLE_MEMBER

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    email: str,
    name: str,
    password: str,
    role: str = ROLE_MEMBER,
) -> User:
    """Create an active account. Raises Conflict when the email is taken."""
    if await get_user_by_email(db, email):
        raise Conflict("Email already registered")
    user = User(
        email=normalize_email(email),
        name=name.strip(),
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Created %s account %s", role, user.id)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User | None:
    """Return the active user matching the credentials and stamp last_login_at, or None."""
    user = await get_user_by_email(db, email)
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        return None
    user.last_login_at = utcnow()
    await db.commit()
    return user


async def list_members(db: AsyncSession) -> list[User]:
    """Active accounts for the member directory, newest first."""
    result = await db.execute(
        select(User).where(User.is_active == True).order_by(User.created_at.desc(), User.id.desc())
    )
    return list(result.scalars().all())
