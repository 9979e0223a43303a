"""Tests for side-effect dispatch: per-recipient isolation of writes and sends."""

import uuid

import pytest
from sqlalchemy.exc import OperationalError

from projecthub.db.enums import NotificationType
from projecthub.db.models import Comment, Notification, Task
from projecthub.services import notification_service, task_events


def _notified_users(db):
    return {row.user_id for row in db.query(Notification.user_id)}


def _task(db, job=None, title="Draft brief"):
    task = Task(title=title, job_id=job.id if job else None)
    db.add(task)
    db.commit()
    return task


@pytest.mark.asyncio
async def test_email_failure_does_not_prevent_notification(db, make_user, make_job, make_transport):
    actor = make_user(name="Uma")
    ok = make_user(name="Vic", email="vic@test.com")
    rejected = make_user(name="Wes", email="wes@test.com")
    broken = make_user(name="Xia", email="xia@test.com")
    transport = make_transport(fail_for={"wes@test.com"}, raise_for={"xia@test.com"})
    task = _task(db, make_job())

    report = await task_events.notify_task_assignment(
        db, task, [ok.id, rejected.id, broken.id], actor_id=actor.id, transport=transport
    )

    assert _notified_users(db) == {ok.id, rejected.id, broken.id}
    assert report.notified == [ok.id, rejected.id, broken.id]
    assert transport.sent_to() == ["vic@test.com"]
    assert set(report.email_failures) == {rejected.id, broken.id}
    assert report.emailed == [ok.id]


@pytest.mark.asyncio
async def test_notification_write_failure_still_sends_email(
    db, make_user, make_job, transport, monkeypatch
):
    actor = make_user(name="Uma")
    failing = make_user(name="Vic", email="vic@test.com")
    healthy = make_user(name="Wes", email="wes@test.com")
    task = _task(db, make_job())

    real_write = notification_service.notify_task_assignment

    def flaky_write(db, user_id, **kwargs):
        if user_id == failing.id:
            raise OperationalError("INSERT", {}, Exception("database is locked"))
        return real_write(db, user_id=user_id, **kwargs)

    monkeypatch.setattr(notification_service, "notify_task_assignment", flaky_write)

    report = await task_events.notify_task_assignment(
        db, task, [failing.id, healthy.id], actor_id=actor.id, transport=transport
    )

    assert _notified_users(db) == {healthy.id}
    assert report.notification_failures == [failing.id]
    assert sorted(transport.sent_to()) == ["vic@test.com", "wes@test.com"]


@pytest.mark.asyncio
async def test_no_transport_skips_email_only(db, make_user):
    actor = make_user(name="Uma")
    assignee = make_user(name="Vic")
    task = _task(db)

    report = await task_events.notify_task_assignment(
        db, task, [assignee.id], actor_id=actor.id, transport=None
    )

    assert report.notified == [assignee.id]
    assert report.emailed == []
    assert _notified_users(db) == {assignee.id}


@pytest.mark.asyncio
async def test_preferences_gate_each_channel(db, make_user, transport):
    actor = make_user(name="Uma")
    quiet = make_user(name="Vic", email="vic@test.com")
    notification_service.update_preferences(db, quiet.id, {"assignment_in_app": False})
    task = _task(db)

    report = await task_events.notify_task_assignment(
        db, task, [quiet.id], actor_id=actor.id, transport=transport
    )

    assert report.notified == []
    assert _notified_users(db) == set()
    assert transport.sent_to() == ["vic@test.com"]


@pytest.mark.asyncio
async def test_unknown_recipient_is_skipped(db, make_user, transport):
    actor = make_user(name="Uma")
    real = make_user(name="Vic", email="vic@test.com")
    task = _task(db)

    report = await task_events.notify_task_assignment(
        db, task, [uuid.uuid4(), real.id], actor_id=actor.id, transport=transport
    )

    assert report.notified == [real.id]
    assert transport.sent_to() == ["vic@test.com"]


@pytest.mark.asyncio
async def test_job_assignment_notifies_added_users(db, make_user, make_job, transport):
    actor = make_user(name="Uma")
    added = make_user(name="Vic", email="vic@test.com")
    job = make_job(title="Acme rebrand", job_number="J1")

    report = await task_events.notify_job_assignment(
        db, job, [added.id, actor.id], actor_id=actor.id, transport=transport
    )

    assert report.recipients == [added.id]
    note = db.query(Notification).one()
    assert note.type == NotificationType.JOB_ASSIGNED.value
    assert note.message == "Acme rebrand"
    assert transport.sent[0].subject == "You've been added to a job: #J1 Acme rebrand"


@pytest.mark.asyncio
async def test_comment_mentions_notify_and_email_with_context(db, make_user, make_job, transport):
    author = make_user(name="Uma", email="uma@test.com")
    bob = make_user(name="Bob", email="bob@test.com")
    job = make_job(title="Acme rebrand")
    task = _task(db, job)

    for i in range(4):
        db.add(Comment(task_id=task.id, author_id=bob.id, body=f"earlier {i}"))
        db.commit()
    comment = Comment(task_id=task.id, author_id=author.id, body="@bob can you review? @uma")
    db.add(comment)
    db.commit()

    report = await task_events.notify_comment_mentions(db, comment, transport=transport)

    assert report.recipients == [bob.id]
    note = db.query(Notification).one()
    assert note.title == "Uma mentioned you in a comment"
    assert note.message == "Draft brief"
    assert note.comment_id == comment.id
    assert note.actor_id == author.id

    message = transport.sent[0]
    assert message.to_email == "bob@test.com"
    assert message.idempotency_key == f"comment-mention/{comment.id}:{bob.id}"
    assert "can you review?" in message.html
    assert message.text.count("- Bob: earlier") == 3


@pytest.mark.asyncio
async def test_resolution_failure_is_contained(db, make_user, transport, monkeypatch):
    actor = make_user(name="Uma")
    task = _task(db)

    def boom(db, event):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(task_events, "resolve_recipients", boom)

    report = await task_events.notify_task_completion(db, task, actor_id=actor.id, transport=transport)

    assert report.recipients == []
    assert transport.sent == []


@pytest.mark.asyncio
async def test_context_load_failure_is_contained(db, make_user, make_job, transport, monkeypatch):
    actor = make_user(name="Uma")
    assignee = make_user(name="Vic", email="vic@test.com")
    job = make_job()
    task = _task(db, job)

    def lost_connection(db, user_id):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(task_events, "_actor_name", lost_connection)

    assignment = await task_events.notify_task_assignment(
        db, task, [assignee.id], actor_id=actor.id, transport=transport
    )
    job_assignment = await task_events.notify_job_assignment(
        db, job, [assignee.id], actor_id=actor.id, transport=transport
    )
    completion = await task_events.notify_task_completion(db, task, actor_id=actor.id, transport=transport)
    comment = Comment(task_id=task.id, author_id=actor.id, body="@vic please check")
    db.add(comment)
    db.commit()
    mention = await task_events.notify_comment_mentions(db, comment, transport=transport)

    for report in (assignment, job_assignment, completion, mention):
        assert report.recipients == []
    assert _notified_users(db) == set()
    assert transport.sent == []
