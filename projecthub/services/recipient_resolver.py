"""Recipient resolution for notification events.

Given an event and the current entity graph (task -> job -> collaborators),
decide which users are notified. The actor is always excluded and the result
never contains duplicates.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from projecthub.db.enums import NotificationType, Role
from projecthub.db.models import JobCollaborator, Task, User

logger = logging.getLogger(__name__)

# "@alice" or "@alice@example.com"; an "@" preceded by a word character is
# part of an email, not the start of a mention.
MENTION_RE = re.compile(r"(?<![\w@])@([\w.+-]+(?:@[\w-]+(?:\.[\w-]+)+)?)")


@dataclass(frozen=True)
class NotificationEvent:
    """
    One occurrence that may notify users.

    assignee_ids: newly assigned users (assignment events only).
    comment_body / comment_author_id: mention events only.
    """

    type: NotificationType
    actor_id: UUID | None
    task_id: UUID | None = None
    job_id: UUID | None = None
    comment_id: UUID | None = None
    assignee_ids: tuple[UUID, ...] = ()
    comment_body: str | None = None
    comment_author_id: UUID | None = None


def _dedupe(user_ids: Iterable[UUID], exclude: Iterable[UUID | None] = ()) -> list[UUID]:
    excluded = {u for u in exclude if u is not None}
    seen: set[UUID] = set()
    result: list[UUID] = []
    for user_id in user_ids:
        if user_id in excluded or user_id in seen:
            continue
        seen.add(user_id)
        result.append(user_id)
    return result


# =============================================================================
# Mentions
# =============================================================================


def parse_mentions(text: str) -> list[str]:
    """Return mention tokens (without "@") in order of appearance."""
    tokens = []
    for match in MENTION_RE.finditer(text or ""):
        token = match.group(1).rstrip(".-")
        if token:
            tokens.append(token)
    return tokens


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def find_users_by_mention(db: Session, mention: str) -> list[UUID]:
    """Users whose email or name contains the mention text (case-insensitive)."""
    term = mention.lstrip("@").strip().lower()
    if not term:
        return []

    pattern = _like_pattern(term)
    rows = (
        db.query(User.id)
        .filter(
            or_(
                User.email.ilike(pattern, escape="\\"),
                User.name.ilike(pattern, escape="\\"),
            )
        )
        .order_by(User.created_at, User.id)
        .all()
    )
    return [row.id for row in rows]


# =============================================================================
# Per-type resolvers
# =============================================================================


def _resolve_assignment(db: Session, event: NotificationEvent) -> list[UUID]:
    return list(event.assignee_ids)


def _resolve_mention(db: Session, event: NotificationEvent) -> list[UUID]:
    candidates: list[UUID] = []
    for token in parse_mentions(event.comment_body or ""):
        candidates.extend(find_users_by_mention(db, token))
    # Author never gets a notification for mentioning themselves
    return _dedupe(candidates, exclude=[event.comment_author_id])


def _resolve_completion(db: Session, event: NotificationEvent) -> list[UUID]:
    job_id = event.job_id
    if job_id is None and event.task_id is not None:
        task = db.query(Task).filter(Task.id == event.task_id).first()
        job_id = task.job_id if task else None

    if job_id is None:
        # Standalone task: no job collaborators to notify
        logger.debug("Completed task %s has no job, no recipients", event.task_id)
        return []

    rows = (
        db.query(JobCollaborator.user_id)
        .join(User, User.id == JobCollaborator.user_id)
        .filter(
            JobCollaborator.job_id == job_id,
            User.role == Role.ADMIN.value,
        )
        .order_by(JobCollaborator.created_at, JobCollaborator.id)
        .all()
    )
    return [row.user_id for row in rows]


Resolver = Callable[[Session, NotificationEvent], list[UUID]]

RECIPIENT_RESOLVERS: Mapping[NotificationType, Resolver] = {
    NotificationType.TASK_ASSIGNED: _resolve_assignment,
    NotificationType.JOB_ASSIGNED: _resolve_assignment,
    NotificationType.COMMENT_MENTION: _resolve_mention,
    NotificationType.TASK_COMPLETED: _resolve_completion,
}


def resolve_recipients(db: Session, event: NotificationEvent) -> list[UUID]:
    """Resolve recipients for an event, excluding the actor, without duplicates."""
    resolver = RECIPIENT_RESOLVERS[event.type]
    return _dedupe(resolver(db, event), exclude=[event.actor_id])
