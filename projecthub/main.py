"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from projecthub.core.config import settings
from projecthub.core.structured_logging import configure_logging
from projecthub.db.session import engine

configure_logging(settings.LOG_LEVEL)

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="ProjectHub API",
    description="Tasks, jobs and comments with assignment and mention notifications",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id"],
)

# ============================================================================
# Routers
# ============================================================================

from projecthub.routers import comments, internal, jobs, notifications, tasks  # noqa: E402

app.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
app.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
app.include_router(comments.router, tags=["comments"])  # /comments and /attachments
app.include_router(notifications.router, prefix="/me", tags=["notifications"])

# Internal scheduled endpoints (cron jobs)
app.include_router(internal.router, prefix="/internal", tags=["internal"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
