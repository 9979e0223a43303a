"""
Test configuration and fixtures.

Provides:
- SQLite in-memory database, fresh schema per test
- User/job factories
- Fake email transport that records what would have been sent
- HTTPX AsyncClient wired to the app with dependency overrides
"""
import os
import uuid
from typing import AsyncGenerator, Generator

# Configure before any projecthub import reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RESEND_API_KEY"] = ""
os.environ["CRON_SECRET"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from projecthub.db.base import Base
from projecthub.db.enums import Role
from projecthub.db.models import Job, User
from projecthub.services.email_transport import EmailMessage, SendResult


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Session on a private in-memory database.

    StaticPool keeps one connection so every session (and the app's
    threadpool) sees the same database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()

    yield session

    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def make_user(db: Session):
    """Factory for users. Returns the committed User."""
    def _make(name: str | None = None, email: str | None = None, role: Role = Role.USER) -> User:
        user = User(
            id=uuid.uuid4(),
            email=email or f"user-{uuid.uuid4().hex[:8]}@test.com",
            name=name,
            role=role.value,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_job(db: Session):
    def _make(title: str = "Kitchen remodel", job_number: str | None = "1001") -> Job:
        job = Job(id=uuid.uuid4(), title=title, job_number=job_number)
        db.add(job)
        db.commit()
        return job

    return _make


# =============================================================================
# Email Fixtures
# =============================================================================

class FakeTransport:
    """
    In-memory email transport.

    fail_for: addresses answered with an unsuccessful SendResult.
    raise_for: addresses whose send raises.
    """

    key = "fake"

    def __init__(self, fail_for=(), raise_for=()):
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.sent: list[EmailMessage] = []
        self.attempted: list[str] = []

    async def send(self, message: EmailMessage) -> SendResult:
        self.attempted.append(message.to_email)
        if message.to_email in self.raise_for:
            raise RuntimeError("provider exploded")
        if message.to_email in self.fail_for:
            return SendResult(success=False, error="Resend API error: 422")
        self.sent.append(message)
        return SendResult(success=True, message_id=f"msg-{len(self.sent)}")

    def sent_to(self) -> list[str]:
        return [m.to_email for m in self.sent]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_transport():
    """Build a FakeTransport with failing addresses."""
    return FakeTransport


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session, transport: FakeTransport) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient against the app, sharing the test session and transport."""
    from projecthub.core.deps import get_db, get_email_transport
    from projecthub.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_transport] = lambda: transport

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
