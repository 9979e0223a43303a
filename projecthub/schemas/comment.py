"""Pydantic schemas for comments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from projecthub.schemas.attachment import AttachmentRead


class CommentCreate(BaseModel):
    task_id: UUID | None = None
    job_id: UUID | None = None
    body: str = Field(..., min_length=1, max_length=10000)


class CommentRead(BaseModel):
    id: UUID
    task_id: UUID | None
    job_id: UUID | None
    author_id: UUID
    author_name: str | None = None
    body: str
    created_at: datetime
    attachments: list[AttachmentRead] = Field(default_factory=list)
