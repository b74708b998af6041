# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Email templates, the delivery log and badge emails."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from ieca_server.api.schemas import Badge
from ieca_server.models import EmailLog
from ieca_server.services import badges, email

pytestmark = pytest.mark.anyio

TEMPLATE = {
    "name": "newsletter",
    "type": "MARKETING",
    "subject": "News for {{ name }}",
    "html_content": "<p>Hi {{ name }}</p>",
    "text_content": "Hi {{ name }}",
}


@pytest.fixture
async def template(client: AsyncClient, admin_headers):
    r = await client.post("/api/v1/email/templates", json=TEMPLATE, headers=admin_headers)
    assert r.status_code == 200
    return r.json()["data"]


async def test_templates_require_admin(client: AsyncClient, member_headers):
    r = await client.get("/api/v1/email/templates", headers=member_headers)
    assert r.status_code == 403
    assert r.json() == {"success": False, "message": "Admin access required"}


async def test_duplicate_template_name_conflicts(client: AsyncClient, template, admin_headers):
    r = await client.post("/api/v1/email/templates", json=TEMPLATE, headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["success"] is False


async def test_invalid_template_source_rejected(client: AsyncClient, admin_headers):
    r = await client.post(
        "/api/v1/email/templates",
        json={**TEMPLATE, "name": "broken", "html_content": "{% if %}"},
        headers=admin_headers,
    )
    assert r.status_code == 400


async def test_preview_escapes_html(client: AsyncClient, template, admin_headers):
    r = await client.post(
        f"/api/v1/email/templates/{template['id']}/preview",
        json={"variables": {"name": "<b>Ada</b>"}},
        headers=admin_headers,
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["subject"] == "News for <b>Ada</b>"
    assert data["html"] == "<p>Hi &lt;b&gt;Ada&lt;/b&gt;</p>"
    assert data["text"] == "Hi <b>Ada</b>"


async def test_update_and_delete_template(client: AsyncClient, template, admin_headers):
    url = f"/api/v1/email/templates/{template['id']}"
    r = await client.put(url, json={"is_active": False}, headers=admin_headers)
    assert r.json()["data"]["is_active"] is False
    assert (await client.delete(url, headers=admin_headers)).status_code == 200
    assert (await client.get(url, headers=admin_headers)).status_code == 404


async def test_null_template_update_rejected(client: AsyncClient, template, admin_headers):
    url = f"/api/v1/email/templates/{template['id']}"
    for field in ("name", "subject", "html_content", "is_active"):
        r = await client.put(url, json={field: None}, headers=admin_headers)
        assert r.status_code == 400, field
    r = await client.get(url, headers=admin_headers)
    assert r.json()["data"]["subject"] == template["subject"]


async def test_active_template_overrides_builtin(session, admin, sent_emails):
    from ieca_server.services import email_templates

    await email_templates.create_template(
        session,
        name=email.KIND_PASSWORD_CHANGED,
        subject="Custom notice for {{ name }}",
        html_content="<p>changed</p>",
        text_content="changed",
    )
    assert await email.send_password_changed_email(session, "user@example.com", "Ada") is True
    assert sent_emails[0]["subject"] == "Custom notice for Ada"
    log = (await session.execute(select(EmailLog))).scalar_one()
    assert log.template_id is not None
    assert log.kind == email.KIND_PASSWORD_CHANGED


async def test_logs_and_stats(client: AsyncClient, session, admin_headers, monkeypatch):
    async def flaky_send_email(to, subject, body, html=None):
        if to.startswith("bad"):
            raise OSError("mailbox unavailable")

    monkeypatch.setattr("ieca_server.services.email.send_email", flaky_send_email)
    await email.send_password_changed_email(session, "good@example.com", "Good")
    await email.send_password_changed_email(session, "bad@example.com", "Bad")

    r = await client.get("/api/v1/email/logs?status=FAILED", headers=admin_headers)
    data = r.json()["data"]
    assert [log["recipient"] for log in data["logs"]] == ["bad@example.com"]
    assert data["pagination"] == {"page": 1, "limit": 20, "total": 1, "pages": 1}

    r = await client.get("/api/v1/email/logs?recipient=GOOD&limit=1", headers=admin_headers)
    assert [log["recipient"] for log in r.json()["data"]["logs"]] == ["good@example.com"]

    stats = (await client.get("/api/v1/email/stats", headers=admin_headers)).json()["data"]
    assert stats["total"] == 2
    assert stats["by_status"]["SENT"] == 1
    assert stats["success_rate"] == 50.0


def test_badge_type_and_hint():
    assert badges.badge_type("bug-hunter") == "researcher"
    assert badges.badge_type("weekly-warrior") == "streak"
    assert badges.badge_type("something-new") == "security"
    assert badges.next_badge_hint("blogger").startswith("Publish 7 more posts")
    assert badges.next_badge_hint("unknown") is None


async def test_badge_email_deduplicated(client: AsyncClient, member, member_headers, sent_emails):
    payload = {
        "user_id": member.id,
        "badge": {"id": "welcome-aboard", "title": "Welcome Aboard", "description": "Joined IECA"},
        "total_badges": 1,
    }
    first = await client.post("/api/v1/badge-email", json=payload, headers=member_headers)
    second = await client.post("/api/v1/badge-email", json=payload, headers=member_headers)
    assert first.status_code == second.status_code == 200
    assert len(sent_emails) == 1
    assert sent_emails[0]["subject"] == "\U0001F389 Badge Earned: Welcome Aboard"
    assert "Next up: Explore security tools" in sent_emails[0]["body"]

    other = {**payload, "badge": {"id": "blogger", "title": "Blogger"}, "total_badges": 2}
    await client.post("/api/v1/badge-email", json=other, headers=member_headers)
    assert len(sent_emails) == 2


async def test_badge_email_failure(client: AsyncClient, member, member_headers, monkeypatch):
    async def broken_send_email(to, subject, body, html=None):
        raise OSError("SMTP down")

    monkeypatch.setattr("ieca_server.services.email.send_email", broken_send_email)
    r = await client.post(
        "/api/v1/badge-email",
        json={"user_id": member.id, "badge": {"id": "scanner", "title": "Scanner"}},
        headers=member_headers,
    )
    assert r.status_code == 500
    assert r.json() == {"success": False, "message": "Failed to send badge email"}


async def test_failed_badge_email_is_retried(session, member, sent_emails, monkeypatch):
    badge = Badge(id="scanner", title="Scanner")

    async def broken_send_email(to, subject, body, html=None):
        raise OSError("SMTP down")

    with monkeypatch.context() as m:
        m.setattr("ieca_server.services.email.send_email", broken_send_email)
        assert await badges.send_badge_email(session, member, badge, 1) is False
    assert await badges.send_badge_email(session, member, badge, 1) is True
    assert len(sent_emails) == 1


async def test_badge_email_unknown_user(client: AsyncClient, member_headers):
    r = await client.post(
        "/api/v1/badge-email",
        json={"user_id": 999, "badge": {"id": "scanner", "title": "Scanner"}},
        headers=member_headers,
    )
    assert r.status_code == 404
