# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Authentication API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.envelope import ok
from ieca_server.api.schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    MemberResponse,
    ResetPasswordRequest,
    Token,
    UserCreate,
    UserLogin,
    UserResponse,
)
from ieca_server.auth import create_access_token, get_current_user
from ieca_server.database import get_db
from ieca_server.errors import ValidationError
from ieca_server.models import User
from ieca_server.rate_limit import rate_limit_auth_dep
from ieca_server.services import email, password, users

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a reset link has been sent."


@router.post("/auth/register", dependencies=[Depends(rate_limit_auth_dep)])
async def register(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Create a member account."""
    user = await users.create_user(db, data.email, data.name, data.password)
    return ok(UserResponse.model_validate(user), "Account created")


@router.post("/auth/login", dependencies=[Depends(rate_limit_auth_dep)])
async def login(
    data: UserLogin,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Authenticate and return a JWT."""
    user = await users.authenticate(db, data.email, data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return ok(Token(access_token=create_access_token({"sub": str(user.id)})))


@router.get("/auth/me")
async def get_me(user: User = Depends(get_current_user)) -> dict:
    """Get current user profile."""
    return ok(UserResponse.model_validate(user))


@router.post("/auth/forgot-password", dependencies=[Depends(rate_limit_auth_dep)])
async def forgot_password(
    data: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Request a password reset email. Responds identically whether or not the email is registered."""
    reset = await password.request_reset(db, data.email)
    if reset:
        # The token is already committed; a failed email must not change the response
        sent = await email.send_password_reset_email(db, reset.email, reset.name, reset.token)
        if not sent:
            logger.warning("Password reset email for user %s was not delivered", reset.user_id)
    return ok(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/auth/reset-password", dependencies=[Depends(rate_limit_auth_dep)])
async def reset_password(
    data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Set a new password with the token from the reset email."""
    user = await password.reset_password(db, data.token, data.new_password)
    if not user:
        raise ValidationError("Invalid or expired reset token")
    await email.send_password_changed_email(db, user.email, user.name)
    return ok(message="Password reset successful")


@router.post("/auth/change-password", dependencies=[Depends(rate_limit_auth_dep)])
async def change_password(
    data: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Change the password of the signed-in user."""
    if not await password.change_password(db, user.id, data.current_password, data.new_password):
        raise ValidationError("Current password is incorrect")
    await email.send_password_changed_email(db, user.email, user.name)
    return ok(message="Password changed successfully")


@router.get("/members")
async def list_members(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Member directory."""
    members = await users.list_members(db)
    return ok([MemberResponse.model_validate(m) for m in members])
