"""Pydantic schemas for notifications."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from projecthub.db.enums import NotificationType


class NotificationRead(BaseModel):
    """Notification response."""
    id: UUID
    type: NotificationType
    title: str
    message: str
    task_id: UUID | None
    job_id: UUID | None
    comment_id: UUID | None
    actor_id: UUID | None
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    items: list[NotificationRead]
    unread_count: int


class UnreadCountResponse(BaseModel):
    """Unread count only (for polling)."""
    count: int


class MarkAllReadResponse(BaseModel):
    updated: int


class NotificationPreferencesRead(BaseModel):
    assignment_in_app: bool
    assignment_email: bool
    comment_mention_in_app: bool
    comment_mention_email: bool
    task_complete_in_app: bool
    task_complete_email: bool


class NotificationPreferencesUpdate(BaseModel):
    assignment_in_app: bool | None = None
    assignment_email: bool | None = None
    comment_mention_in_app: bool | None = None
    comment_mention_email: bool | None = None
    task_complete_in_app: bool | None = None
    task_complete_email: bool | None = None


class CleanupResponse(BaseModel):
    deleted_count: int
    cutoff: datetime
