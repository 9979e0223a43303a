"""Pydantic schemas for job collaborators."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from projecthub.db.enums import CollaboratorRole


class CollaboratorAdd(BaseModel):
    user_id: UUID
    role: CollaboratorRole = CollaboratorRole.COLLABORATOR


class CollaboratorRoleUpdate(BaseModel):
    role: CollaboratorRole


class CollaboratorRead(BaseModel):
    id: UUID
    job_id: UUID
    user_id: UUID
    role: CollaboratorRole
    created_at: datetime

    model_config = {"from_attributes": True}
