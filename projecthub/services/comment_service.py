"""Comment service - comments on tasks/jobs and @mention notifications."""

from uuid import UUID

from sqlalchemy.orm import Session

from projecthub.db.models import Comment, Job, Task
from projecthub.schemas.attachment import AttachmentRead
from projecthub.schemas.comment import CommentCreate, CommentRead
from projecthub.services import attachment_service, task_events
from projecthub.services.email_transport import EmailTransport


def get_comment(db: Session, comment_id: UUID) -> Comment | None:
    return db.query(Comment).filter(Comment.id == comment_id).first()


async def add_comment(
    db: Session,
    author_id: UUID,
    data: CommentCreate,
    transport: EmailTransport | None = None,
) -> Comment:
    """
    Create a comment, then notify anyone it @mentions.

    Creation errors propagate; mention side effects never do.
    """
    if not data.task_id and not data.job_id:
        raise ValueError("Comment requires a task_id or job_id")
    if data.task_id and not db.get(Task, data.task_id):
        raise LookupError("Task not found")
    if data.job_id and not db.get(Job, data.job_id):
        raise LookupError("Job not found")

    comment = Comment(
        task_id=data.task_id,
        job_id=data.job_id,
        author_id=author_id,
        body=data.body.strip(),
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)

    await task_events.notify_comment_mentions(db, comment, transport=transport)
    return comment


def list_comments(
    db: Session,
    task_id: UUID | None = None,
    job_id: UUID | None = None,
) -> list[Comment]:
    query = db.query(Comment)
    if task_id:
        query = query.filter(Comment.task_id == task_id)
    if job_id:
        query = query.filter(Comment.job_id == job_id)
    return query.order_by(Comment.created_at).all()


def list_comments_with_attachments(
    db: Session,
    task_id: UUID | None = None,
    job_id: UUID | None = None,
) -> list[CommentRead]:
    """Comments, oldest first, each with the attachments correlated to it."""
    comments = list_comments(db, task_id=task_id, job_id=job_id)
    attachments = attachment_service.list_attachments(db, task_id=task_id, job_id=job_id)
    by_comment = attachment_service.attachments_by_comment(comments, attachments)

    return [
        CommentRead(
            id=c.id,
            task_id=c.task_id,
            job_id=c.job_id,
            author_id=c.author_id,
            author_name=c.author.display_name if c.author else None,
            body=c.body,
            created_at=c.created_at,
            attachments=[AttachmentRead.model_validate(a) for a in by_comment[c.id]],
        )
        for c in comments
    ]
