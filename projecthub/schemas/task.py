"""Pydantic schemas for tasks."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from projecthub.db.enums import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    """Request to create a task (standalone when job_id is omitted)."""
    title: str = Field(..., min_length=1, max_length=255)
    job_id: UUID | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None
    assignee_ids: list[UUID] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Request to update a task (partial)."""
    title: str | None = Field(None, min_length=1, max_length=255)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: date | None = None


class AssigneesAdd(BaseModel):
    user_ids: list[UUID] = Field(..., min_length=1)


class TaskRead(BaseModel):
    """Full task response."""
    id: UUID
    job_id: UUID | None
    title: str
    status: TaskStatus
    priority: TaskPriority
    due_date: date | None
    assignee_ids: list[UUID] = Field(default_factory=list)
    completed_at: datetime | None
    completed_by_user_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
