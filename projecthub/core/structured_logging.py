"""Structured logging helpers (PII-safe)."""

import logging
from typing import Any
from uuid import UUID

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at process start."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_log_context(
    *,
    user_id: UUID | str | None = None,
    actor_id: UUID | str | None = None,
    task_id: UUID | str | None = None,
    job_id: UUID | str | None = None,
    comment_id: UUID | str | None = None,
    notification_type: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict with identifiers only.

    Emails, names and comment bodies never go into log records.
    """
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if actor_id:
        context["actor_id"] = str(actor_id)
    if task_id:
        context["task_id"] = str(task_id)
    if job_id:
        context["job_id"] = str(job_id)
    if comment_id:
        context["comment_id"] = str(comment_id)
    if notification_type:
        context["notification_type"] = notification_type
    return context
