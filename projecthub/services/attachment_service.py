"""Attachment records and the attachment-to-comment correlator.

Attachments carry no comment foreign key. When a user posts a comment with
files, the files are uploaded separately, so the owning comment is inferred
at read time: same uploader as the comment author, uploaded within
ATTACHMENT_COMMENT_WINDOW of the comment. This is an approximation; two
comments by the same author inside the window both claim the same file.
"""

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from projecthub.core.config import settings
from projecthub.db.models import Attachment
from projecthub.schemas.attachment import AttachmentCreate

ATTACHMENT_COMMENT_WINDOW = timedelta(seconds=settings.ATTACHMENT_COMMENT_WINDOW_SECONDS)


class CommentLike(Protocol):
    id: UUID
    author_id: UUID
    created_at: datetime


class AttachmentLike(Protocol):
    id: UUID
    uploaded_by_user_id: UUID | None
    uploaded_at: datetime


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def correlate_attachments(
    comment: CommentLike,
    attachments: Sequence[AttachmentLike],
    window: timedelta = ATTACHMENT_COMMENT_WINDOW,
) -> list[AttachmentLike]:
    """Attachments the comment's author uploaded within `window` of the comment."""
    comment_time = _as_utc(comment.created_at)
    return [
        att
        for att in attachments
        if att.uploaded_by_user_id == comment.author_id
        and abs(_as_utc(att.uploaded_at) - comment_time) < window
    ]


def attachments_by_comment(
    comments: Sequence[CommentLike],
    attachments: Sequence[AttachmentLike],
    window: timedelta = ATTACHMENT_COMMENT_WINDOW,
) -> dict[UUID, list[AttachmentLike]]:
    """Map comment id -> correlated attachments (input order preserved)."""
    return {c.id: correlate_attachments(c, attachments, window) for c in comments}


# =============================================================================
# Records
# =============================================================================


def create_attachment(db: Session, user_id: UUID, data: AttachmentCreate) -> Attachment:
    """Record an uploaded file. Storage itself happens upstream."""
    if not data.task_id and not data.job_id:
        raise ValueError("Attachment requires a task_id or job_id")

    attachment = Attachment(
        job_id=data.job_id,
        task_id=data.task_id,
        uploaded_by_user_id=user_id,
        filename=data.filename,
        url=data.url,
        mime_type=data.mime_type,
        file_size=data.file_size,
    )
    db.add(attachment)
    db.commit()
    db.refresh(attachment)
    return attachment


def list_attachments(
    db: Session,
    task_id: UUID | None = None,
    job_id: UUID | None = None,
) -> list[Attachment]:
    query = db.query(Attachment)
    if task_id:
        query = query.filter(Attachment.task_id == task_id)
    if job_id:
        query = query.filter(Attachment.job_id == job_id)
    return query.order_by(Attachment.uploaded_at).all()
