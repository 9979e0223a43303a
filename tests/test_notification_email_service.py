"""Tests for notification email rendering and best-effort sending."""

import asyncio
import uuid
from datetime import datetime, timezone

import pytest

from projecthub.db.enums import NotificationType
from projecthub.services import notification_email_service
from projecthub.services.email_transport import SendResult
from projecthub.services.notification_email_service import (
    ContextComment,
    EmailContext,
    build_target_url,
    render_notification_email,
    send_notification_email,
)


def _ctx(**overrides):
    values = dict(
        task_title="Draft brief",
        job_title="Acme rebrand",
        job_number="J1",
        actor_name="Uma",
        target_url="http://localhost:3000/jobs/abc",
    )
    values.update(overrides)
    return EmailContext(**values)


def test_target_url_prefers_job_page(monkeypatch):
    monkeypatch.setattr(notification_email_service.settings, "FRONTEND_URL", "https://app.example.com/")
    job_id = uuid.uuid4()

    assert build_target_url(uuid.uuid4(), job_id) == f"https://app.example.com/jobs/{job_id}"
    assert build_target_url(uuid.uuid4(), None) == "https://app.example.com/tasks"
    assert build_target_url(None, None) == "https://app.example.com"


def test_every_type_has_a_template():
    for notification_type in NotificationType:
        rendered = render_notification_email(notification_type, _ctx(comment_body="hi"))
        assert rendered.subject
        assert "http://localhost:3000/jobs/abc" in rendered.html
        assert "http://localhost:3000/jobs/abc" in rendered.text


def test_task_assigned_email_mentions_task_and_job():
    rendered = render_notification_email(NotificationType.TASK_ASSIGNED, _ctx())

    assert rendered.subject == "You've been assigned to a task: Draft brief"
    assert "#J1 Acme rebrand" in rendered.text
    assert "Uma assigned you" in rendered.text


def test_html_escapes_user_content():
    rendered = render_notification_email(
        NotificationType.COMMENT_MENTION,
        _ctx(actor_name="<script>", comment_body="<b>hello</b> & bye"),
    )

    assert "<script>" not in rendered.html
    assert "&lt;script&gt;" in rendered.html
    assert "&lt;b&gt;hello&lt;/b&gt; &amp; bye" in rendered.html


def test_mention_email_includes_recent_comments():
    created = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)
    recent = tuple(ContextComment(author_name="Bob", body=f"note {i}", created_at=created) for i in range(3))

    rendered = render_notification_email(
        NotificationType.COMMENT_MENTION,
        _ctx(comment_body="@vic thoughts?", recent_comments=recent),
    )

    assert rendered.subject == "Uma mentioned you in Draft brief"
    assert "Recent comments" in rendered.html
    for i in range(3):
        assert f"note {i}" in rendered.html
        assert f"- Bob: note {i}" in rendered.text


def test_mention_on_job_comment_uses_job_label():
    rendered = render_notification_email(
        NotificationType.COMMENT_MENTION, _ctx(task_title=None, comment_body="hi")
    )
    assert rendered.subject == "Uma mentioned you in #J1 Acme rebrand"


class _SlowTransport:
    key = "slow"

    async def send(self, message):
        await asyncio.sleep(1)
        return SendResult(success=True)


class _RejectingTransport:
    key = "rejecting"

    async def send(self, message):
        return SendResult(success=False, error="Resend API error: 422")


@pytest.mark.asyncio
async def test_send_returns_true_on_success(transport):
    sent = await send_notification_email(
        transport,
        to_email="vic@test.com",
        recipient_id=uuid.uuid4(),
        type=NotificationType.TASK_ASSIGNED,
        ctx=_ctx(),
        idempotency_key="k",
    )

    assert sent is True
    assert transport.sent[0].idempotency_key == "k"


@pytest.mark.asyncio
async def test_send_without_transport_is_skipped():
    assert await send_notification_email(
        None,
        to_email="vic@test.com",
        recipient_id=uuid.uuid4(),
        type=NotificationType.TASK_ASSIGNED,
        ctx=_ctx(),
    ) is False


@pytest.mark.asyncio
async def test_send_timeout_is_swallowed():
    sent = await send_notification_email(
        _SlowTransport(),
        to_email="vic@test.com",
        recipient_id=uuid.uuid4(),
        type=NotificationType.TASK_ASSIGNED,
        ctx=_ctx(),
        timeout=0.01,
    )
    assert sent is False


@pytest.mark.asyncio
async def test_rejected_send_returns_false():
    sent = await send_notification_email(
        _RejectingTransport(),
        to_email="vic@test.com",
        recipient_id=uuid.uuid4(),
        type=NotificationType.JOB_ASSIGNED,
        ctx=_ctx(),
    )
    assert sent is False
