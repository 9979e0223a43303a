"""
Notification Service - handles in-app notifications.

Provides the notification writer, read/unread management, per-user
preferences and the read-notification cleanup job.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from projecthub.core.structured_logging import build_log_context
from projecthub.db.enums import NotificationChannel, NotificationType
from projecthub.db.models import Notification, UserNotificationPreferences

logger = logging.getLogger(__name__)


# =============================================================================
# Notification Preferences
# =============================================================================

DEFAULT_PREFERENCES = {
    "assignment_in_app": True,
    "assignment_email": True,
    "comment_mention_in_app": True,
    "comment_mention_email": True,
    "task_complete_in_app": True,
    "task_complete_email": True,
}

_PREFERENCE_PREFIX = {
    NotificationType.TASK_ASSIGNED: "assignment",
    NotificationType.JOB_ASSIGNED: "assignment",
    NotificationType.COMMENT_MENTION: "comment_mention",
    NotificationType.TASK_COMPLETED: "task_complete",
}


def _preferences_dict(prefs: UserNotificationPreferences) -> dict:
    return {key: getattr(prefs, key) for key in DEFAULT_PREFERENCES}


def get_preferences(db: Session, user_id: UUID) -> dict:
    """
    Get user notification preferences.

    Returns defaults if no row exists.
    """
    prefs = db.query(UserNotificationPreferences).filter(
        UserNotificationPreferences.user_id == user_id,
    ).first()
    if prefs:
        return _preferences_dict(prefs)
    return dict(DEFAULT_PREFERENCES)


def update_preferences(db: Session, user_id: UUID, updates: dict) -> dict:
    """
    Update user notification preferences.

    Creates the row if it doesn't exist. Unknown keys and None values are ignored.
    """
    prefs = db.query(UserNotificationPreferences).filter(
        UserNotificationPreferences.user_id == user_id,
    ).first()

    if not prefs:
        prefs = UserNotificationPreferences(user_id=user_id, **DEFAULT_PREFERENCES)
        db.add(prefs)

    for key, value in updates.items():
        if key in DEFAULT_PREFERENCES and value is not None:
            setattr(prefs, key, value)

    db.commit()
    db.refresh(prefs)
    return _preferences_dict(prefs)


def should_notify(
    db: Session,
    user_id: UUID,
    type: NotificationType,
    channel: NotificationChannel,
) -> bool:
    """Check if user wants this notification type on this channel."""
    key = f"{_PREFERENCE_PREFIX[type]}_{channel.value}"
    return get_preferences(db, user_id).get(key, True)


# =============================================================================
# Notification Writer
# =============================================================================


def create_notification(
    db: Session,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    task_id: Optional[UUID] = None,
    job_id: Optional[UUID] = None,
    comment_id: Optional[UUID] = None,
    actor_id: Optional[UUID] = None,
) -> Notification:
    """
    Persist exactly one notification row.

    Not idempotent: callers invoke this once per event per recipient. Runs
    after the triggering mutation has committed, so a failure here rolls back
    only this insert; the error is logged and re-raised to the caller.
    """
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title[:255],
        message=message,
        task_id=task_id,
        job_id=job_id,
        comment_id=comment_id,
        actor_id=actor_id,
    )
    try:
        db.add(notification)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Error creating notification",
            extra=build_log_context(
                user_id=user_id,
                actor_id=actor_id,
                task_id=task_id,
                job_id=job_id,
                comment_id=comment_id,
                notification_type=type.value,
            ),
        )
        raise
    db.refresh(notification)
    return notification


def _on_job(job_title: Optional[str]) -> str:
    return f" on {job_title}" if job_title else ""


def notify_task_assignment(
    db: Session,
    user_id: UUID,
    task_id: UUID,
    task_title: str,
    job_id: Optional[UUID] = None,
    job_title: Optional[str] = None,
    actor_id: Optional[UUID] = None,
) -> Notification:
    return create_notification(
        db=db,
        user_id=user_id,
        type=NotificationType.TASK_ASSIGNED,
        title="You've been assigned to a task",
        message=f"{task_title}{_on_job(job_title)}",
        task_id=task_id,
        job_id=job_id,
        actor_id=actor_id,
    )


def notify_job_assignment(
    db: Session,
    user_id: UUID,
    job_id: UUID,
    job_title: str,
    actor_id: Optional[UUID] = None,
) -> Notification:
    return create_notification(
        db=db,
        user_id=user_id,
        type=NotificationType.JOB_ASSIGNED,
        title="You've been added to a job",
        message=job_title,
        job_id=job_id,
        actor_id=actor_id,
    )


def notify_task_completion(
    db: Session,
    user_id: UUID,
    task_id: UUID,
    task_title: str,
    job_id: Optional[UUID] = None,
    job_title: Optional[str] = None,
    actor_id: Optional[UUID] = None,
) -> Notification:
    return create_notification(
        db=db,
        user_id=user_id,
        type=NotificationType.TASK_COMPLETED,
        title="Task completed",
        message=f"{task_title}{_on_job(job_title)}",
        task_id=task_id,
        job_id=job_id,
        actor_id=actor_id,
    )


def notify_comment_mention(
    db: Session,
    user_id: UUID,
    comment_id: UUID,
    task_id: Optional[UUID] = None,
    task_title: Optional[str] = None,
    job_id: Optional[UUID] = None,
    job_title: Optional[str] = None,
    actor_id: Optional[UUID] = None,
    actor_name: Optional[str] = None,
) -> Notification:
    return create_notification(
        db=db,
        user_id=user_id,
        type=NotificationType.COMMENT_MENTION,
        title=f"{actor_name or 'Someone'} mentioned you in a comment",
        message=task_title or job_title or "a task",
        task_id=task_id,
        job_id=job_id,
        comment_id=comment_id,
        actor_id=actor_id,
    )


# =============================================================================
# Read side
# =============================================================================


def get_notifications(
    db: Session,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for user, newest first."""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    return query.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()


def get_unread_count(db: Session, user_id: UUID) -> int:
    """Get count of unread notifications."""
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.read.is_(False),
    ).count()


def mark_read(db: Session, notification_id: UUID, user_id: UUID) -> Optional[Notification]:
    """Mark a notification as read. Users can only mark their own."""
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()

    if notification and not notification.read:
        notification.read = True
        db.commit()
        db.refresh(notification)

    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    count = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.read.is_(False),
    ).update({"read": True}, synchronize_session=False)
    db.commit()
    return count


# =============================================================================
# Maintenance
# =============================================================================


def cleanup_read_notifications(
    db: Session,
    older_than_days: int = 30,
    now: Optional[datetime] = None,
) -> tuple[int, datetime]:
    """
    Delete read notifications older than the retention window.

    Unread notifications are never deleted. Returns (deleted_count, cutoff).
    """
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=older_than_days)
    count = db.query(Notification).filter(
        Notification.read.is_(True),
        Notification.created_at < cutoff,
    ).delete(synchronize_session=False)
    db.commit()
    logger.info("Deleted %s read notifications older than %s", count, cutoff.isoformat())
    return count, cutoff
