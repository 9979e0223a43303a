"""
Notifications Router - /me/notifications endpoints.

Provides notification listing, read status, and preferences.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from projecthub.core.deps import get_current_user, get_db
from projecthub.db.models import User
from projecthub.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationPreferencesRead,
    NotificationPreferencesUpdate,
    NotificationRead,
    UnreadCountResponse,
)
from projecthub.services import notification_service

router = APIRouter()


@router.get("/notifications", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get user's notifications."""
    notifications = notification_service.get_notifications(
        db=db,
        user_id=user.id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )
    unread_count = notification_service.get_unread_count(db=db, user_id=user.id)
    return NotificationListResponse(
        items=[NotificationRead.model_validate(n) for n in notifications],
        unread_count=unread_count,
    )


@router.get("/notifications/count", response_model=UnreadCountResponse)
def get_unread_count(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get unread notification count (for polling)."""
    return UnreadCountResponse(count=notification_service.get_unread_count(db=db, user_id=user.id))


@router.get("/notifications/settings", response_model=NotificationPreferencesRead)
def get_settings(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return notification_service.get_preferences(db, user.id)


@router.patch("/notifications/settings", response_model=NotificationPreferencesRead)
def update_settings(
    data: NotificationPreferencesUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return notification_service.update_preferences(db, user.id, data.model_dump(exclude_unset=True))


@router.patch("/notifications/{notification_id}/read", response_model=NotificationRead)
def mark_read(
    notification_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mark a single notification as read."""
    notification = notification_service.mark_read(db, notification_id, user.id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.post("/notifications/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mark all notifications as read."""
    return MarkAllReadResponse(updated=notification_service.mark_all_read(db, user.id))
