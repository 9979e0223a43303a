"""Tasks router - API endpoints for tasks, assignees and comments on tasks."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from projecthub.core.deps import get_current_user, get_db, get_email_transport
from projecthub.db.enums import TaskStatus
from projecthub.db.models import User
from projecthub.schemas.comment import CommentRead
from projecthub.schemas.task import AssigneesAdd, TaskCreate, TaskRead, TaskUpdate
from projecthub.services import comment_service, task_service
from projecthub.services.email_transport import EmailTransport

router = APIRouter()


def _get_task_or_404(db: Session, task_id: UUID):
    task = task_service.get_task(db, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("", response_model=list[TaskRead])
def list_tasks(
    job_id: UUID | None = None,
    status: TaskStatus | None = None,
    my_tasks: bool = Query(False, description="Only tasks assigned to the current user"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    tasks = task_service.list_tasks(
        db,
        job_id=job_id,
        assignee_id=user.id if my_tasks else None,
        status=status,
    )
    return [task_service.to_read(db, t) for t in tasks]


@router.post("", response_model=TaskRead, status_code=201)
async def create_task(
    data: TaskCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    transport: EmailTransport | None = Depends(get_email_transport),
):
    """Create a task; assignees are notified after it is saved."""
    try:
        task = await task_service.create_task(db, data, actor_id=user.id, transport=transport)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return task_service.to_read(db, task)


@router.get("/{task_id}", response_model=TaskRead)
def get_task(
    task_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return task_service.to_read(db, _get_task_or_404(db, task_id))


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    transport: EmailTransport | None = Depends(get_email_transport),
):
    task = _get_task_or_404(db, task_id)
    task = await task_service.update_task(db, task, data, actor_id=user.id, transport=transport)
    return task_service.to_read(db, task)


@router.post("/{task_id}/complete", response_model=TaskRead)
async def complete_task(
    task_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    transport: EmailTransport | None = Depends(get_email_transport),
):
    task = _get_task_or_404(db, task_id)
    task = await task_service.complete_task(db, task, actor_id=user.id, transport=transport)
    return task_service.to_read(db, task)


@router.delete("/{task_id}", status_code=204)
def delete_task(
    task_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task_service.delete_task(db, _get_task_or_404(db, task_id))


@router.post("/{task_id}/assignees", response_model=TaskRead)
async def add_assignees(
    task_id: UUID,
    data: AssigneesAdd,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    transport: EmailTransport | None = Depends(get_email_transport),
):
    """Assign users; only newly assigned users are notified."""
    task = _get_task_or_404(db, task_id)
    try:
        await task_service.add_assignees(db, task, data.user_ids, actor_id=user.id, transport=transport)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return task_service.to_read(db, task)


@router.delete("/{task_id}/assignees/{user_id}", status_code=204)
def remove_assignee(
    task_id: UUID,
    user_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _get_task_or_404(db, task_id)
    task_service.remove_assignee(db, task_id, user_id)


@router.get("/{task_id}/comments", response_model=list[CommentRead])
def list_task_comments(
    task_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Comments with the attachments uploaded alongside each one."""
    _get_task_or_404(db, task_id)
    return comment_service.list_comments_with_attachments(db, task_id=task_id)
