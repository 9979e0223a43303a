"""Jobs router - collaborator management and job comments."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from projecthub.core.deps import get_current_user, get_db, get_email_transport
from projecthub.db.models import Job, User
from projecthub.schemas.comment import CommentRead
from projecthub.schemas.job import CollaboratorAdd, CollaboratorRead, CollaboratorRoleUpdate
from projecthub.services import collaborator_service, comment_service, task_events
from projecthub.services.email_transport import EmailTransport

router = APIRouter()


def _get_job_or_404(db: Session, job_id: UUID) -> Job:
    job = db.get(Job, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.get("/{job_id}/collaborators", response_model=list[CollaboratorRead])
def list_collaborators(
    job_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _get_job_or_404(db, job_id)
    return collaborator_service.list_collaborators(db, job_id)


@router.post("/{job_id}/collaborators", response_model=list[CollaboratorRead], status_code=201)
async def add_collaborator(
    job_id: UUID,
    data: CollaboratorAdd,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    transport: EmailTransport | None = Depends(get_email_transport),
):
    """Add a collaborator; an already-present user keeps their current role."""
    job = _get_job_or_404(db, job_id)
    if not db.get(User, data.user_id):
        raise HTTPException(status_code=400, detail="Unknown user")

    added = collaborator_service.add_collaborator(db, job, data.user_id, data.role)
    if added:
        await task_events.notify_job_assignment(
            db, job, [data.user_id], actor_id=user.id, transport=transport
        )
    return collaborator_service.list_collaborators(db, job_id)


@router.patch("/{job_id}/collaborators/{user_id}", response_model=CollaboratorRead)
def update_collaborator_role(
    job_id: UUID,
    user_id: UUID,
    data: CollaboratorRoleUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    collaborator = collaborator_service.update_collaborator_role(db, job_id, user_id, data.role)
    if not collaborator:
        raise HTTPException(status_code=404, detail="Collaborator not found")
    return collaborator


@router.delete("/{job_id}/collaborators/{user_id}", status_code=204)
def remove_collaborator(
    job_id: UUID,
    user_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _get_job_or_404(db, job_id)
    collaborator_service.remove_collaborator(db, job_id, user_id)


@router.get("/{job_id}/comments", response_model=list[CommentRead])
def list_job_comments(
    job_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _get_job_or_404(db, job_id)
    return comment_service.list_comments_with_attachments(db, job_id=job_id)
