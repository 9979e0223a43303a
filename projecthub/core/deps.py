"""FastAPI dependencies for database access and the acting user."""

import hmac
from typing import Generator
from uuid import UUID

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from projecthub.core.config import settings
from projecthub.db.models import User
from projecthub.db.session import SessionLocal
from projecthub.services.email_transport import EmailTransport, get_transport

# Set by the upstream auth layer after it has authenticated the request
USER_ID_HEADER = "X-User-Id"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_email_transport() -> EmailTransport | None:
    """Outbound email transport (None when email is not configured)."""
    return get_transport()


def get_current_user(
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the acting user from the trusted identity header.

    Raises:
        HTTPException 401: Header missing, malformed, or unknown user
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid user id")

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_cron_secret(authorization: str | None = Header(None)) -> None:
    """Guard internal scheduled endpoints when CRON_SECRET is set."""
    if not settings.CRON_SECRET:
        return
    expected = f"Bearer {settings.CRON_SECRET}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")
