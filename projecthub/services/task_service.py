"""Task service - business logic for task management."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from projecthub.db.enums import TaskStatus
from projecthub.db.models import Job, Task, TaskAssignee, User
from projecthub.db.upsert import insert_ignore
from projecthub.schemas.task import TaskCreate, TaskRead, TaskUpdate
from projecthub.services import task_events
from projecthub.services.email_transport import EmailTransport

logger = logging.getLogger(__name__)


def get_task(db: Session, task_id: UUID) -> Task | None:
    """Get task by ID."""
    return db.query(Task).filter(Task.id == task_id).first()


def list_tasks(
    db: Session,
    job_id: UUID | None = None,
    assignee_id: UUID | None = None,
    status: TaskStatus | None = None,
) -> list[Task]:
    query = db.query(Task)
    if job_id:
        query = query.filter(Task.job_id == job_id)
    if assignee_id:
        query = query.join(TaskAssignee).filter(TaskAssignee.user_id == assignee_id)
    if status:
        query = query.filter(Task.status == status.value)
    return query.order_by(Task.created_at.desc()).all()


def get_assignee_ids(db: Session, task_id: UUID) -> list[UUID]:
    rows = (
        db.query(TaskAssignee.user_id)
        .filter(TaskAssignee.task_id == task_id)
        .order_by(TaskAssignee.created_at)
        .all()
    )
    return [row.user_id for row in rows]


def to_read(db: Session, task: Task) -> TaskRead:
    read = TaskRead.model_validate(task)
    read.assignee_ids = get_assignee_ids(db, task.id)
    return read


def _validate_users(db: Session, user_ids: list[UUID]) -> None:
    if not user_ids:
        return
    found = {row.id for row in db.query(User.id).filter(User.id.in_(user_ids))}
    missing = [str(u) for u in user_ids if u not in found]
    if missing:
        raise ValueError(f"Unknown user(s): {', '.join(missing)}")


async def create_task(
    db: Session,
    data: TaskCreate,
    actor_id: UUID | None,
    transport: EmailTransport | None = None,
) -> Task:
    """
    Create a task with optional job and assignees.

    The task and its assignee rows commit first; assignment side effects
    (collaborator enrollment, notifications, email) run afterwards and never
    undo the task.
    """
    if data.job_id and not db.get(Job, data.job_id):
        raise LookupError("Job not found")

    assignee_ids = list(dict.fromkeys(data.assignee_ids))
    _validate_users(db, assignee_ids)

    task = Task(
        job_id=data.job_id,
        title=data.title,
        status=TaskStatus.TODO.value,
        priority=data.priority.value,
        due_date=data.due_date,
    )
    task.assignees = [TaskAssignee(user_id=user_id) for user_id in assignee_ids]
    db.add(task)
    db.commit()
    db.refresh(task)

    await task_events.notify_task_assignment(
        db, task, assignee_ids, actor_id=actor_id, transport=transport
    )
    return task


async def add_assignees(
    db: Session,
    task: Task,
    user_ids: Iterable[UUID],
    actor_id: UUID | None,
    transport: EmailTransport | None = None,
) -> list[UUID]:
    """
    Assign users to a task.

    Already-assigned users are skipped (no duplicate rows, no repeat
    notification). Returns the newly assigned user ids.
    """
    candidates = list(dict.fromkeys(user_ids))
    _validate_users(db, candidates)

    existing = set(get_assignee_ids(db, task.id))
    new_user_ids = [user_id for user_id in candidates if user_id not in existing]
    if not new_user_ids:
        return []

    now = datetime.now(timezone.utc)
    insert_ignore(
        db,
        TaskAssignee,
        [
            {"id": uuid.uuid4(), "task_id": task.id, "user_id": user_id, "created_at": now}
            for user_id in new_user_ids
        ],
        index_elements=["task_id", "user_id"],
    )
    db.commit()

    await task_events.notify_task_assignment(
        db, task, new_user_ids, actor_id=actor_id, transport=transport
    )
    return new_user_ids


def remove_assignee(db: Session, task_id: UUID, user_id: UUID) -> int:
    """Unassign a user. Job collaborator membership is left as-is."""
    count = db.query(TaskAssignee).filter(
        TaskAssignee.task_id == task_id,
        TaskAssignee.user_id == user_id,
    ).delete(synchronize_session=False)
    db.commit()
    return count


def _apply_status(task: Task, status: TaskStatus, actor_id: UUID | None) -> bool:
    """Set status; returns True when this is a transition into DONE."""
    was_done = task.status == TaskStatus.DONE.value
    task.status = status.value
    if status == TaskStatus.DONE and not was_done:
        task.completed_at = datetime.now(timezone.utc)
        task.completed_by_user_id = actor_id
        return True
    if status != TaskStatus.DONE:
        task.completed_at = None
        task.completed_by_user_id = None
    return False


async def update_task(
    db: Session,
    task: Task,
    data: TaskUpdate,
    actor_id: UUID | None,
    transport: EmailTransport | None = None,
) -> Task:
    """
    Update task fields.

    Uses exclude_unset=True so only explicitly provided fields are updated;
    an explicit null due_date clears it. Moving the task into DONE notifies
    the job's admin collaborators.
    """
    update_data = data.model_dump(exclude_unset=True)
    completed = False

    for field, value in update_data.items():
        if field == "status":
            if value is not None:
                completed = _apply_status(task, value, actor_id)
            continue
        if value is None and field != "due_date":
            continue
        if field == "priority":
            value = value.value
        setattr(task, field, value)

    db.commit()
    db.refresh(task)

    if completed:
        await task_events.notify_task_completion(db, task, actor_id=actor_id, transport=transport)
    return task


async def complete_task(
    db: Session,
    task: Task,
    actor_id: UUID | None,
    transport: EmailTransport | None = None,
) -> Task:
    """Mark task as DONE. Completing an already-done task is a no-op."""
    if task.status == TaskStatus.DONE.value:
        return task

    _apply_status(task, TaskStatus.DONE, actor_id)
    db.commit()
    db.refresh(task)

    await task_events.notify_task_completion(db, task, actor_id=actor_id, transport=transport)
    return task


def delete_task(db: Session, task: Task) -> None:
    db.delete(task)
    db.commit()
