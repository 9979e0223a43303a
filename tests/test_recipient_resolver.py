"""Tests for notification recipient resolution."""

import uuid

from projecthub.db.enums import CollaboratorRole, NotificationType, Role
from projecthub.db.models import JobCollaborator, Task
from projecthub.services.recipient_resolver import (
    NotificationEvent,
    find_users_by_mention,
    parse_mentions,
    resolve_recipients,
)


def _collaborate(db, job, user, role=CollaboratorRole.COLLABORATOR):
    db.add(JobCollaborator(job_id=job.id, user_id=user.id, role=role.value))
    db.commit()


# =============================================================================
# parse_mentions
# =============================================================================

def test_parse_mentions_names_and_emails():
    body = "Hey @alice and @bob.smith@example.com, see @carol."
    assert parse_mentions(body) == ["alice", "bob.smith@example.com", "carol"]


def test_parse_mentions_ignores_plain_email_addresses():
    assert parse_mentions("mail dave@example.com for details") == []


def test_parse_mentions_empty_body():
    assert parse_mentions("") == []
    assert parse_mentions(None) == []


# =============================================================================
# find_users_by_mention
# =============================================================================

def test_find_users_by_mention_matches_name_or_email_case_insensitive(db, make_user):
    alice = make_user(name="Alice Smith", email="asmith@test.com")
    bob = make_user(name="Bob", email="bob@test.com")

    assert find_users_by_mention(db, "ALICE") == [alice.id]
    assert find_users_by_mention(db, "bob@test") == [bob.id]


def test_find_users_by_mention_treats_wildcards_literally(db, make_user):
    make_user(name="Alice", email="alice@test.com")

    assert find_users_by_mention(db, "%") == []
    assert find_users_by_mention(db, "_lice") == []


# =============================================================================
# resolve_recipients
# =============================================================================

def test_assignment_excludes_actor_and_duplicates(db, make_user):
    actor = make_user(name="Actor")
    other = make_user(name="Other")

    event = NotificationEvent(
        type=NotificationType.TASK_ASSIGNED,
        actor_id=actor.id,
        task_id=uuid.uuid4(),
        assignee_ids=(actor.id, other.id, other.id),
    )

    assert resolve_recipients(db, event) == [other.id]


def test_self_mention_is_suppressed(db, make_user):
    author = make_user(name="Alice", email="alice@test.com")
    bob = make_user(name="Bob", email="bob@test.com")

    event = NotificationEvent(
        type=NotificationType.COMMENT_MENTION,
        actor_id=author.id,
        comment_body="note to self @alice, cc @bob @bob",
        comment_author_id=author.id,
    )

    assert resolve_recipients(db, event) == [bob.id]


def test_mention_without_matches_resolves_nobody(db, make_user):
    author = make_user(name="Alice")
    event = NotificationEvent(
        type=NotificationType.COMMENT_MENTION,
        actor_id=author.id,
        comment_body="@nobody-here please look",
        comment_author_id=author.id,
    )

    assert resolve_recipients(db, event) == []


def test_completion_recipients_are_admin_collaborators_minus_actor(db, make_user, make_job):
    job = make_job()
    admin = make_user(name="Admin", role=Role.ADMIN)
    admin_actor = make_user(name="Admin Actor", role=Role.ADMIN)
    member = make_user(name="Member")
    outside_admin = make_user(name="Outside", role=Role.ADMIN)
    for user in (admin, admin_actor, member):
        _collaborate(db, job, user)

    task = Task(job_id=job.id, title="Order tiles")
    db.add(task)
    db.commit()

    event = NotificationEvent(
        type=NotificationType.TASK_COMPLETED,
        actor_id=admin_actor.id,
        task_id=task.id,
    )

    recipients = resolve_recipients(db, event)

    assert recipients == [admin.id]
    assert outside_admin.id not in recipients


def test_completion_of_standalone_task_has_no_recipients(db, make_user):
    actor = make_user(name="Actor", role=Role.ADMIN)
    task = Task(title="Standalone")
    db.add(task)
    db.commit()

    event = NotificationEvent(
        type=NotificationType.TASK_COMPLETED,
        actor_id=actor.id,
        task_id=task.id,
    )

    assert resolve_recipients(db, event) == []
