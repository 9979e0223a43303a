"""Job collaborator management, including auto-enrollment of task assignees."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from projecthub.db.enums import CollaboratorRole
from projecthub.db.models import Job, JobCollaborator
from projecthub.db.upsert import insert_ignore

logger = logging.getLogger(__name__)


def get_collaborator(db: Session, job_id: UUID, user_id: UUID) -> JobCollaborator | None:
    return db.query(JobCollaborator).filter(
        JobCollaborator.job_id == job_id,
        JobCollaborator.user_id == user_id,
    ).first()


def list_collaborators(db: Session, job_id: UUID) -> list[JobCollaborator]:
    return (
        db.query(JobCollaborator)
        .filter(JobCollaborator.job_id == job_id)
        .order_by(JobCollaborator.created_at)
        .all()
    )


def _enroll(db: Session, job_id: UUID, user_ids: Iterable[UUID], role: CollaboratorRole) -> list[UUID]:
    candidates = list(dict.fromkeys(user_ids))
    if not candidates:
        return []

    existing = {
        row.user_id
        for row in db.query(JobCollaborator.user_id).filter(
            JobCollaborator.job_id == job_id,
            JobCollaborator.user_id.in_(candidates),
        )
    }
    new_user_ids = [user_id for user_id in candidates if user_id not in existing]
    if not new_user_ids:
        return []

    now = datetime.now(timezone.utc)
    # A concurrent insert of the same pair is absorbed by the unique constraint
    insert_ignore(
        db,
        JobCollaborator,
        [
            {
                "id": uuid.uuid4(),
                "job_id": job_id,
                "user_id": user_id,
                "role": role.value,
                "created_at": now,
            }
            for user_id in new_user_ids
        ],
        index_elements=["job_id", "user_id"],
    )
    db.commit()
    return new_user_ids


def ensure_job_collaborators(db: Session, job_id: UUID, user_ids: Iterable[UUID]) -> list[UUID]:
    """
    Enroll task assignees as COLLABORATOR on the task's job.

    Only adds rows: existing collaborators keep their role (an OWNER or VIEWER
    assigned to a task stays OWNER or VIEWER). Returns the newly enrolled ids.
    """
    enrolled = _enroll(db, job_id, user_ids, CollaboratorRole.COLLABORATOR)
    if enrolled:
        logger.info("Auto-enrolled %s collaborator(s) on job %s", len(enrolled), job_id)
    return enrolled


def add_collaborator(
    db: Session,
    job: Job,
    user_id: UUID,
    role: CollaboratorRole = CollaboratorRole.COLLABORATOR,
) -> bool:
    """Add a collaborator with an explicit role. Returns False if already present."""
    return bool(_enroll(db, job.id, [user_id], role))


def remove_collaborator(db: Session, job_id: UUID, user_id: UUID) -> int:
    count = db.query(JobCollaborator).filter(
        JobCollaborator.job_id == job_id,
        JobCollaborator.user_id == user_id,
    ).delete(synchronize_session=False)
    db.commit()
    return count


def update_collaborator_role(
    db: Session,
    job_id: UUID,
    user_id: UUID,
    role: CollaboratorRole,
) -> JobCollaborator | None:
    collaborator = get_collaborator(db, job_id, user_id)
    if not collaborator:
        return None
    collaborator.role = role.value
    db.commit()
    db.refresh(collaborator)
    return collaborator
