"""Enumerations shared by models, schemas and services."""

from enum import Enum


class Role(str, Enum):
    """Account-level role of a user."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    USER = "USER"


class CollaboratorRole(str, Enum):
    """Role of a user on a specific job."""

    OWNER = "OWNER"
    COLLABORATOR = "COLLABORATOR"
    VIEWER = "VIEWER"


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    BLOCKED = "BLOCKED"
    DONE = "DONE"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class NotificationType(str, Enum):
    """Types of in-app notifications."""

    TASK_ASSIGNED = "TASK_ASSIGNED"
    JOB_ASSIGNED = "JOB_ASSIGNED"
    TASK_COMPLETED = "TASK_COMPLETED"
    COMMENT_MENTION = "COMMENT_MENTION"


class NotificationChannel(str, Enum):
    IN_APP = "in_app"
    EMAIL = "email"
