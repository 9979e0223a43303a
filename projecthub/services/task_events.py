"""Task/job/comment domain events (side-effect dispatch).

Every entry point runs *after* the triggering mutation has committed:

    auto-enroll collaborators (assignment only) -> resolve recipients
        -> per recipient: write notification, then send email

Recipients are handled as independent coroutines joined without
short-circuiting, so one recipient's failure (database or email) never
affects another's, and nothing here raises into the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from projecthub.core.structured_logging import build_log_context
from projecthub.db.enums import NotificationChannel, NotificationType
from projecthub.db.models import Comment, Job, Task, User
from projecthub.services import (
    collaborator_service,
    notification_email_service,
    notification_service,
)
from projecthub.services.email_transport import EmailTransport, get_transport
from projecthub.services.notification_email_service import ContextComment, EmailContext
from projecthub.services.recipient_resolver import NotificationEvent, resolve_recipients

logger = logging.getLogger(__name__)

NotificationWriter = Callable[[UUID], object]


@dataclass
class DispatchReport:
    """Outcome of one event's side effects."""

    type: NotificationType
    recipients: list[UUID] = field(default_factory=list)
    enrolled: list[UUID] = field(default_factory=list)
    notified: list[UUID] = field(default_factory=list)
    emailed: list[UUID] = field(default_factory=list)
    notification_failures: list[UUID] = field(default_factory=list)
    email_failures: list[UUID] = field(default_factory=list)


def _actor_name(db: Session, actor_id: UUID | None) -> str:
    if not actor_id:
        return "Someone"
    actor = db.get(User, actor_id)
    return actor.display_name if actor else "Someone"


async def _deliver(
    db: Session,
    event: NotificationEvent,
    recipient_id: UUID,
    write: NotificationWriter,
    ctx: EmailContext,
    transport: EmailTransport | None,
    report: DispatchReport,
    idempotency_key: str | None,
) -> None:
    """Write then send for one recipient. Each half fails on its own."""
    log_extra = build_log_context(
        user_id=recipient_id,
        actor_id=event.actor_id,
        task_id=event.task_id,
        job_id=event.job_id,
        comment_id=event.comment_id,
        notification_type=event.type.value,
    )

    recipient = db.get(User, recipient_id)
    if recipient is None:
        logger.warning("Notification recipient not found, skipping", extra=log_extra)
        return

    try:
        if notification_service.should_notify(db, recipient_id, event.type, NotificationChannel.IN_APP):
            write(recipient_id)
            report.notified.append(recipient_id)
    except Exception as exc:
        # The primary mutation is already committed; only this insert is lost
        db.rollback()
        logger.warning("Notification not written: %s", exc.__class__.__name__, extra=log_extra)
        report.notification_failures.append(recipient_id)

    try:
        wants_email = notification_service.should_notify(
            db, recipient_id, event.type, NotificationChannel.EMAIL
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to read email preference", extra=log_extra)
        report.email_failures.append(recipient_id)
        return

    if not wants_email:
        return

    sent = await notification_email_service.send_notification_email(
        transport,
        to_email=recipient.email,
        recipient_id=recipient_id,
        type=event.type,
        ctx=ctx,
        idempotency_key=f"{idempotency_key}:{recipient_id}" if idempotency_key else None,
    )
    if sent:
        report.emailed.append(recipient_id)
    else:
        report.email_failures.append(recipient_id)


async def _dispatch(
    db: Session,
    event: NotificationEvent,
    write: NotificationWriter,
    ctx: EmailContext,
    transport: EmailTransport | None,
    report: DispatchReport,
    idempotency_key: str | None = None,
) -> DispatchReport:
    log_extra = build_log_context(
        actor_id=event.actor_id,
        task_id=event.task_id,
        job_id=event.job_id,
        comment_id=event.comment_id,
        notification_type=event.type.value,
    )
    try:
        report.recipients = resolve_recipients(db, event)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to resolve notification recipients", extra=log_extra)
        return report

    if not report.recipients:
        return report

    if transport is None:
        transport = get_transport()

    results = await asyncio.gather(
        *(
            _deliver(db, event, recipient_id, write, ctx, transport, report, idempotency_key)
            for recipient_id in report.recipients
        ),
        return_exceptions=True,
    )
    for recipient_id, result in zip(report.recipients, results):
        if isinstance(result, BaseException):
            logger.error(
                "Unexpected notification dispatch error",
                exc_info=result,
                extra=build_log_context(user_id=recipient_id, notification_type=event.type.value),
            )
    return report


def _context_failed(db: Session, report: DispatchReport, **ids) -> DispatchReport:
    """Abandon an event whose context could not be loaded. Call from an except block."""
    db.rollback()
    logger.exception(
        "Failed to load notification context",
        extra=build_log_context(notification_type=report.type.value, **ids),
    )
    return report


# =============================================================================
# Entry points
# =============================================================================


async def notify_task_assignment(
    db: Session,
    task: Task,
    assignee_ids: list[UUID],
    actor_id: UUID | None,
    transport: EmailTransport | None = None,
) -> DispatchReport:
    """Auto-enroll new assignees on the task's job, then notify them."""
    report = DispatchReport(type=NotificationType.TASK_ASSIGNED)
    if not assignee_ids:
        return report

    try:
        task_id, task_title, job_id = task.id, task.title, task.job_id
    except SQLAlchemyError:
        return _context_failed(db, report, actor_id=actor_id)

    if job_id:
        try:
            report.enrolled = collaborator_service.ensure_job_collaborators(db, job_id, assignee_ids)
        except SQLAlchemyError:
            db.rollback()
            logger.exception(
                "Failed to auto-enroll task assignees",
                extra=build_log_context(task_id=task_id, job_id=job_id),
            )

    try:
        job: Job | None = db.get(Job, job_id) if job_id else None
        job_title = job.title if job else None
        event = NotificationEvent(
            type=NotificationType.TASK_ASSIGNED,
            actor_id=actor_id,
            task_id=task_id,
            job_id=job_id,
            assignee_ids=tuple(assignee_ids),
        )
        ctx = EmailContext(
            task_title=task_title,
            job_title=job_title,
            job_number=job.job_number if job else None,
            actor_name=_actor_name(db, actor_id),
            target_url=notification_email_service.build_target_url(task_id, job_id),
        )
    except SQLAlchemyError:
        return _context_failed(db, report, actor_id=actor_id, task_id=task_id, job_id=job_id)

    def write(user_id: UUID):
        return notification_service.notify_task_assignment(
            db,
            user_id=user_id,
            task_id=task_id,
            task_title=task_title,
            job_id=job_id,
            job_title=job_title,
            actor_id=actor_id,
        )

    return await _dispatch(db, event, write, ctx, transport, report)


async def notify_job_assignment(
    db: Session,
    job: Job,
    user_ids: list[UUID],
    actor_id: UUID | None,
    transport: EmailTransport | None = None,
) -> DispatchReport:
    """Notify users newly added as collaborators on a job."""
    report = DispatchReport(type=NotificationType.JOB_ASSIGNED)
    if not user_ids:
        return report

    try:
        job_id, job_title = job.id, job.title
        event = NotificationEvent(
            type=NotificationType.JOB_ASSIGNED,
            actor_id=actor_id,
            job_id=job_id,
            assignee_ids=tuple(user_ids),
        )
        ctx = EmailContext(
            task_title=None,
            job_title=job_title,
            job_number=job.job_number,
            actor_name=_actor_name(db, actor_id),
            target_url=notification_email_service.build_target_url(None, job_id),
        )
    except SQLAlchemyError:
        return _context_failed(db, report, actor_id=actor_id)

    def write(user_id: UUID):
        return notification_service.notify_job_assignment(
            db, user_id=user_id, job_id=job_id, job_title=job_title, actor_id=actor_id
        )

    return await _dispatch(db, event, write, ctx, transport, report)


async def notify_task_completion(
    db: Session,
    task: Task,
    actor_id: UUID | None,
    transport: EmailTransport | None = None,
) -> DispatchReport:
    """Notify admin collaborators of the task's job that it was completed."""
    report = DispatchReport(type=NotificationType.TASK_COMPLETED)

    try:
        task_id, task_title, job_id = task.id, task.title, task.job_id
        job: Job | None = db.get(Job, job_id) if job_id else None
        job_title = job.title if job else None
        event = NotificationEvent(
            type=NotificationType.TASK_COMPLETED,
            actor_id=actor_id,
            task_id=task_id,
            job_id=job_id,
        )
        ctx = EmailContext(
            task_title=task_title,
            job_title=job_title,
            job_number=job.job_number if job else None,
            actor_name=_actor_name(db, actor_id),
            target_url=notification_email_service.build_target_url(task_id, job_id),
        )
    except SQLAlchemyError:
        return _context_failed(db, report, actor_id=actor_id)

    def write(user_id: UUID):
        return notification_service.notify_task_completion(
            db,
            user_id=user_id,
            task_id=task_id,
            task_title=task_title,
            job_id=job_id,
            job_title=job_title,
            actor_id=actor_id,
        )

    return await _dispatch(db, event, write, ctx, transport, report)


def _recent_comments(db: Session, comment: Comment) -> tuple[ContextComment, ...]:
    """Up to MENTION_CONTEXT_COMMENTS newest other comments on the same task/job."""
    query = db.query(Comment).filter(Comment.id != comment.id)
    if comment.task_id:
        query = query.filter(Comment.task_id == comment.task_id)
    elif comment.job_id:
        query = query.filter(Comment.job_id == comment.job_id)
    else:
        return ()

    recent = (
        query.order_by(Comment.created_at.desc())
        .limit(notification_email_service.MENTION_CONTEXT_COMMENTS)
        .all()
    )
    return tuple(
        ContextComment(
            author_name=c.author.display_name if c.author else "Someone",
            body=c.body,
            created_at=c.created_at,
        )
        for c in recent
    )


async def notify_comment_mentions(
    db: Session,
    comment: Comment,
    transport: EmailTransport | None = None,
) -> DispatchReport:
    """Notify users @mentioned in a comment (never the author)."""
    report = DispatchReport(type=NotificationType.COMMENT_MENTION)

    try:
        comment_id, author_id, task_id = comment.id, comment.author_id, comment.task_id
        task: Task | None = db.get(Task, task_id) if task_id else None
        task_title = task.title if task else None
        job_id = comment.job_id or (task.job_id if task else None)
        job: Job | None = db.get(Job, job_id) if job_id else None
        job_title = job.title if job else None
        job_number = job.job_number if job else None

        event = NotificationEvent(
            type=NotificationType.COMMENT_MENTION,
            actor_id=author_id,
            task_id=task_id,
            job_id=job_id,
            comment_id=comment_id,
            comment_body=comment.body,
            comment_author_id=author_id,
        )
        actor_name = _actor_name(db, author_id)
    except SQLAlchemyError:
        return _context_failed(db, report)

    try:
        recent_comments = _recent_comments(db, comment)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Failed to load mention context comments",
            extra=build_log_context(comment_id=comment_id),
        )
        recent_comments = ()

    ctx = EmailContext(
        task_title=task_title,
        job_title=job_title,
        job_number=job_number,
        actor_name=actor_name,
        target_url=notification_email_service.build_target_url(task_id, job_id),
        comment_body=event.comment_body,
        recent_comments=recent_comments,
    )

    def write(user_id: UUID):
        return notification_service.notify_comment_mention(
            db,
            user_id=user_id,
            comment_id=comment_id,
            task_id=task_id,
            task_title=task_title,
            job_id=job_id,
            job_title=job_title,
            actor_id=author_id,
            actor_name=actor_name,
        )

    return await _dispatch(
        db, event, write, ctx, transport, report, idempotency_key=f"comment-mention/{comment_id}"
    )
