# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Authentication: JWT, password hashing and the current-user dependencies."""

from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.config import settings
from ieca_server.database import get_db
from ieca_server.errors import PermissionDenied
from ieca_server.models import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain, hashed)


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        return payload
    except JWTError:
        return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> int:
    """Extract and validate user ID from the Bearer JWT. Raises 401 if invalid."""
    if not credentials:
        raise _unauthorized("Not authenticated")
    payload = decode_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")
    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token")
    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token")


async def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Load the authenticated user. Deactivated or deleted accounts are rejected with 401."""
    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """The authenticated user, or None for anonymous requests. A bad token is still a 401."""
    if not credentials:
        return None
    user_id = await get_current_user_id(credentials)
    return await get_current_user(user_id, db)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow ADMIN and MODERATOR accounts only."""
    if not user.is_staff:
        raise PermissionDenied("Admin access required")
    return user
