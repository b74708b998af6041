# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Password reset token issuance and validation."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from ieca_server.errors import ValidationError
from ieca_server.models import PasswordResetToken
from ieca_server.models.base import utcnow
from ieca_server.services import password

pytestmark = pytest.mark.anyio


async def test_unknown_email_returns_none(session):
    assert await password.request_reset(session, "ghost@example.com") is None
    tokens = (await session.execute(select(PasswordResetToken))).scalars().all()
    assert tokens == []


async def test_empty_email_rejected(session):
    with pytest.raises(ValidationError):
        await password.request_reset(session, "   ")


async def test_new_token_invalidates_previous(session, member):
    first = await password.request_reset(session, "user@example.com")
    assert first.user_id == member.id
    assert await password.validate_reset_token(session, first.token) is not None

    second = await password.request_reset(session, "USER@example.com")
    assert second.token != first.token
    assert await password.validate_reset_token(session, first.token) is None
    assert await password.validate_reset_token(session, second.token) is not None

    active = (
        await session.execute(
            select(PasswordResetToken).where(
                PasswordResetToken.user_id == member.id,
                PasswordResetToken.used == False,
            )
        )
    ).scalars().all()
    assert len(active) == 1
    assert active[0].token_hash == password.hash_token(second.token)


async def test_token_is_random_hex(session, member):
    reset = await password.request_reset(session, "user@example.com")
    assert len(reset.token) == 64
    int(reset.token, 16)


async def test_expired_token_rejected(session, member):
    reset = await password.request_reset(session, "user@example.com")
    row = (await session.execute(select(PasswordResetToken))).scalar_one()
    row.expires_at = utcnow() - timedelta(minutes=1)
    await session.commit()
    assert await password.validate_reset_token(session, reset.token) is None
    assert await password.reset_password(session, reset.token, "brandnew123") is None


async def test_reset_password_consumes_token(session, member):
    reset = await password.request_reset(session, "user@example.com")
    user = await password.reset_password(session, reset.token, "brandnew123")
    assert user.id == member.id
    assert await password.validate_reset_token(session, reset.token) is None


async def test_change_password_wrong_current(session, member):
    assert await password.change_password(session, member.id, "wrongpass1", "brandnew123") is False
    assert await password.change_password(session, member.id, "testpass123", "brandnew123") is True
