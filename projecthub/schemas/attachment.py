"""Pydantic schemas for attachments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class AttachmentCreate(BaseModel):
    """Record of a file already stored upstream."""
    task_id: UUID | None = None
    job_id: UUID | None = None
    filename: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=1024)
    mime_type: str = Field(..., min_length=1, max_length=100)
    file_size: int | None = Field(None, ge=0)


class AttachmentRead(BaseModel):
    id: UUID
    task_id: UUID | None
    job_id: UUID | None
    uploaded_by_user_id: UUID | None
    filename: str
    url: str
    mime_type: str
    uploaded_at: datetime

    model_config = {"from_attributes": True}
