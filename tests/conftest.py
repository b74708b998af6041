# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pytest fixtures. Every test runs against its own in-memory SQLite database."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from ieca_server import rate_limit
from ieca_server.auth import create_access_token
from ieca_server.config import Settings
from ieca_server.database import Database
from ieca_server.main import create_app
from ieca_server.models.user import ROLE_ADMIN, ROLE_MEMBER
from ieca_server.services import users

PASSWORD = "testpass123"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    rate_limit.reset()
    yield
    rate_limit.reset()


@pytest.fixture
async def database():
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database: Database):
    async with database.session_maker() as s:
        yield s


@pytest.fixture
def app(database: Database):
    return create_app(Settings(create_tables_on_startup=False), database=database)


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_user(database: Database, email: str, name: str, role: str = ROLE_MEMBER):
    async with database.session_maker() as s:
        return await users.create_user(s, email, name, PASSWORD, role=role)


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
async def member(database: Database):
    return await make_user(database, "user@example.com", "Test Member")


@pytest.fixture
async def other_member(database: Database):
    return await make_user(database, "other@example.com", "Other Member")


@pytest.fixture
async def admin(database: Database):
    return await make_user(database, "admin@example.com", "Admin", role=ROLE_ADMIN)


@pytest.fixture
def member_headers(member) -> dict:
    return auth_headers(member)


@pytest.fixture
def other_headers(other_member) -> dict:
    return auth_headers(other_member)


@pytest.fixture
def admin_headers(admin) -> dict:
    return auth_headers(admin)


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture outgoing emails instead of delivering them."""
    outbox: list[dict] = []

    async def fake_send_email(to, subject, body, html=None):
        outbox.append({"to": to, "subject": subject, "body": body, "html": html})

    monkeypatch.setattr("ieca_server.services.email.send_email", fake_send_email)
    return outbox
