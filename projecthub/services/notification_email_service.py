"""Notification email templates and dispatch.

Builds the HTML + plain-text email for each notification type and hands it to
the outbound transport. Sending is best effort: every failure is logged and
swallowed here so it can never affect the in-app notification or the
mutation that triggered it.
"""

from __future__ import annotations

import asyncio
import html as html_module
import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from projecthub.core.config import settings
from projecthub.core.structured_logging import build_log_context
from projecthub.db.enums import NotificationType
from projecthub.services.email_transport import EmailMessage, EmailTransport

logger = logging.getLogger(__name__)

MENTION_CONTEXT_COMMENTS = 3

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, "
    "'Helvetica Neue', Arial, sans-serif; line-height: 1.6; color: #333; "
    "max-width: 600px; margin: 0 auto; padding: 20px;"
)
_CARD_STYLE = (
    "background-color: #ffffff; border-radius: 8px; padding: 32px; "
    "box-shadow: 0 2px 4px rgba(0,0,0,0.1);"
)
_BUTTON_STYLE = (
    "display: inline-block; background-color: #4299e1; color: #ffffff; "
    "text-decoration: none; padding: 12px 24px; border-radius: 6px; "
    "font-weight: 500; font-size: 16px;"
)
_QUOTE_STYLE = (
    "border-left: 3px solid #cbd5e0; margin: 16px 0; padding: 8px 16px; "
    "color: #4a5568; background-color: #f7fafc; white-space: pre-wrap;"
)


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


@dataclass(frozen=True)
class ContextComment:
    """A recent comment shown under a mention for context."""

    author_name: str
    body: str
    created_at: datetime


@dataclass(frozen=True)
class EmailContext:
    """Fields available to every notification template."""

    task_title: str | None
    job_title: str | None
    job_number: str | None
    actor_name: str
    target_url: str
    comment_body: str | None = None
    recent_comments: tuple[ContextComment, ...] = ()


def build_target_url(task_id: UUID | None, job_id: UUID | None) -> str:
    """Link to the job page when there is a job, else the task list."""
    base_url = settings.FRONTEND_URL.rstrip("/")
    if job_id:
        return f"{base_url}/jobs/{job_id}"
    if task_id:
        return f"{base_url}/tasks"
    return base_url


def job_label(job_title: str | None, job_number: str | None) -> str | None:
    if not job_title:
        return None
    if job_number:
        return f"#{job_number} {job_title}"
    return job_title


def _esc(value: str | None) -> str:
    return html_module.escape(value or "")


def _layout(heading: str, paragraphs: list[str], button_label: str, url: str, extra_html: str = "") -> str:
    body = "".join(
        f'<p style="color: #4a5568; font-size: 16px; margin-bottom: 16px;">{p}</p>'
        for p in paragraphs
    )
    safe_url = _esc(url)
    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
  </head>
  <body style="{_BODY_STYLE}">
    <div style="{_CARD_STYLE}">
      <h1 style="color: #2d3748; margin-top: 0; font-size: 24px; font-weight: 600;">{_esc(heading)}</h1>
      {body}
      {extra_html}
      <div style="text-align: center; margin: 32px 0;">
        <a href="{safe_url}" style="{_BUTTON_STYLE}">{_esc(button_label)}</a>
      </div>
      <p style="color: #718096; font-size: 14px; margin-bottom: 0;">
        Or copy and paste this link into your browser:<br>
        <a href="{safe_url}" style="color: #4299e1; word-break: break-all;">{safe_url}</a>
      </p>
      <p style="color: #a0aec0; font-size: 12px; margin-top: 24px; margin-bottom: 0; border-top: 1px solid #e2e8f0; padding-top: 16px;">
        You are receiving this email because of your notification settings in {_esc(settings.APP_NAME)}.
      </p>
    </div>
  </body>
</html>
"""


def _on_job_text(ctx: EmailContext) -> str:
    label = job_label(ctx.job_title, ctx.job_number)
    return f" on {label}" if label else ""


def render_task_assigned(ctx: EmailContext) -> RenderedEmail:
    task_title = ctx.task_title or "a task"
    on_job = _on_job_text(ctx)
    subject = f"You've been assigned to a task: {task_title}"
    html = _layout(
        "You've been assigned to a task",
        [f"<strong>{_esc(ctx.actor_name)}</strong> assigned you to "
         f"<strong>{_esc(task_title)}</strong>{_esc(on_job)}."],
        "View Task",
        ctx.target_url,
    )
    text = f"""You've been assigned to a task

{ctx.actor_name} assigned you to "{task_title}"{on_job}.

View the task here:
{ctx.target_url}
"""
    return RenderedEmail(subject=subject, html=html, text=text)


def render_job_assigned(ctx: EmailContext) -> RenderedEmail:
    label = job_label(ctx.job_title, ctx.job_number) or "a job"
    subject = f"You've been added to a job: {label}"
    html = _layout(
        "You've been added to a job",
        [f"<strong>{_esc(ctx.actor_name)}</strong> added you as a collaborator on "
         f"<strong>{_esc(label)}</strong>."],
        "View Job",
        ctx.target_url,
    )
    text = f"""You've been added to a job

{ctx.actor_name} added you as a collaborator on "{label}".

View the job here:
{ctx.target_url}
"""
    return RenderedEmail(subject=subject, html=html, text=text)


def render_task_completed(ctx: EmailContext) -> RenderedEmail:
    task_title = ctx.task_title or "A task"
    on_job = _on_job_text(ctx)
    subject = f"Task completed: {task_title}"
    html = _layout(
        "Task completed",
        [f"<strong>{_esc(ctx.actor_name)}</strong> completed "
         f"<strong>{_esc(task_title)}</strong>{_esc(on_job)}."],
        "View Task",
        ctx.target_url,
    )
    text = f"""Task completed

{ctx.actor_name} completed "{task_title}"{on_job}.

View the task here:
{ctx.target_url}
"""
    return RenderedEmail(subject=subject, html=html, text=text)


def _recent_comments_html(comments: tuple[ContextComment, ...]) -> str:
    if not comments:
        return ""
    items = "".join(
        f'<div style="margin-bottom: 12px;"><strong>{_esc(c.author_name)}</strong> '
        f'<span style="color: #a0aec0; font-size: 12px;">{_esc(c.created_at.strftime("%b %d, %Y %H:%M"))}</span>'
        f'<div style="white-space: pre-wrap;">{_esc(c.body)}</div></div>'
        for c in comments
    )
    return (
        '<h2 style="color: #2d3748; font-size: 16px; margin-top: 24px;">Recent comments</h2>'
        f'<div style="color: #4a5568; font-size: 14px;">{items}</div>'
    )


def render_comment_mention(ctx: EmailContext) -> RenderedEmail:
    context_title = ctx.task_title or job_label(ctx.job_title, ctx.job_number) or "a task"
    subject = f"{ctx.actor_name} mentioned you in {context_title}"
    extra_html = (
        f'<blockquote style="{_QUOTE_STYLE}">{_esc(ctx.comment_body)}</blockquote>'
        + _recent_comments_html(ctx.recent_comments)
    )
    html = _layout(
        "You were mentioned in a comment",
        [f"<strong>{_esc(ctx.actor_name)}</strong> mentioned you in a comment on "
         f"<strong>{_esc(context_title)}</strong>:"],
        "View Comment",
        ctx.target_url,
        extra_html=extra_html,
    )

    lines = [
        "You were mentioned in a comment",
        "",
        f'{ctx.actor_name} mentioned you in a comment on "{context_title}":',
        "",
        f"> {ctx.comment_body or ''}",
    ]
    if ctx.recent_comments:
        lines += ["", "Recent comments:"]
        for c in ctx.recent_comments:
            lines.append(f"- {c.author_name}: {c.body}")
    lines += ["", "View the comment here:", ctx.target_url, ""]
    return RenderedEmail(subject=subject, html=html, text="\n".join(lines))


TEMPLATES = {
    NotificationType.TASK_ASSIGNED: render_task_assigned,
    NotificationType.JOB_ASSIGNED: render_job_assigned,
    NotificationType.TASK_COMPLETED: render_task_completed,
    NotificationType.COMMENT_MENTION: render_comment_mention,
}


def render_notification_email(type: NotificationType, ctx: EmailContext) -> RenderedEmail:
    return TEMPLATES[type](ctx)


async def send_notification_email(
    transport: EmailTransport | None,
    *,
    to_email: str,
    recipient_id: UUID,
    type: NotificationType,
    ctx: EmailContext,
    idempotency_key: str | None = None,
    timeout: float | None = None,
) -> bool:
    """
    Render and send one notification email.

    Never raises. Returns True only when the transport reports success.
    """
    log_extra = build_log_context(user_id=recipient_id, notification_type=type.value)
    if transport is None:
        logger.info("Email transport not configured, skipping notification email", extra=log_extra)
        return False

    try:
        rendered = render_notification_email(type, ctx)
        message = EmailMessage(
            to_email=to_email,
            subject=rendered.subject,
            html=rendered.html,
            text=rendered.text,
            idempotency_key=idempotency_key,
        )
        send_timeout = settings.EMAIL_SEND_TIMEOUT_SECONDS if timeout is None else timeout
        result = await asyncio.wait_for(transport.send(message), timeout=send_timeout)
    except asyncio.TimeoutError:
        logger.warning("Notification email timed out", extra=log_extra)
        return False
    except Exception:
        logger.exception("Notification email failed", extra=log_extra)
        return False

    if not result.success:
        logger.warning("Notification email rejected: %s", result.error, extra=log_extra)
        return False

    logger.info("Notification email sent, message_id=%s", result.message_id, extra=log_extra)
    return True
