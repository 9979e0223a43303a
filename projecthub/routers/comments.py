"""Comments and attachments router."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from projecthub.core.deps import get_current_user, get_db, get_email_transport
from projecthub.db.models import User
from projecthub.schemas.attachment import AttachmentCreate, AttachmentRead
from projecthub.schemas.comment import CommentCreate, CommentRead
from projecthub.services import attachment_service, comment_service
from projecthub.services.email_transport import EmailTransport

router = APIRouter()


@router.post("/comments", response_model=CommentRead, status_code=201)
async def add_comment(
    data: CommentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    transport: EmailTransport | None = Depends(get_email_transport),
):
    """Post a comment; @mentioned users are notified after it is saved."""
    try:
        comment = await comment_service.add_comment(db, user.id, data, transport=transport)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return CommentRead(
        id=comment.id,
        task_id=comment.task_id,
        job_id=comment.job_id,
        author_id=comment.author_id,
        author_name=user.display_name,
        body=comment.body,
        created_at=comment.created_at,
    )


@router.post("/attachments", response_model=AttachmentRead, status_code=201)
def create_attachment(
    data: AttachmentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Record a file that was stored upstream."""
    try:
        return attachment_service.create_attachment(db, user.id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
