"""Internal scheduled endpoints (called by cron)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from projecthub.core.config import settings
from projecthub.core.deps import get_db, require_cron_secret
from projecthub.schemas.notification import CleanupResponse
from projecthub.services import notification_service

router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.post("/cleanup-read-notifications", response_model=CleanupResponse)
def cleanup_read_notifications(db: Session = Depends(get_db)):
    """Delete read notifications past the retention window."""
    count, cutoff = notification_service.cleanup_read_notifications(
        db, older_than_days=settings.READ_NOTIFICATION_RETENTION_DAYS
    )
    return CleanupResponse(deleted_count=count, cutoff=cutoff)
