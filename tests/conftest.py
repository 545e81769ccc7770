"""Shared fixtures and utilities for tests."""

import os
import tempfile

# Settings are read at import time; point them at throwaway values first
_TEST_DIR = tempfile.mkdtemp(prefix="interview-evaluator-tests-")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR}/app.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("EMAIL_NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("JSON_LOGS", "false")

from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

import database.models  # noqa: F401
from api.services.notifications import NotificationService
from core.config import settings
from core.evaluation import ApplicationStatus, QuestionType
from core.security import CallerIdentity, create_access_token
from database.engine import Base
from database.models.applications import Answer, Application
from database.models.positions import Position, Question
from database.models.users import User, UserRole
from database.repository import HiringRepository


MANAGER_ID = "manager-1"
OTHER_MANAGER_ID = "manager-2"


def make_token(user_id: str, email: str, role: str) -> str:
    return create_access_token(
        user_id=user_id,
        email=email,
        role=role,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.access_token_expire_minutes,
    )


def auth_headers(user_id: str, email: str, role: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, email, role)}"}


# ==================== Callers ===================== #

@pytest.fixture
def manager() -> CallerIdentity:
    return CallerIdentity(user_id=MANAGER_ID, email="manager@example.com", role="MANAGER")


@pytest.fixture
def other_manager() -> CallerIdentity:
    return CallerIdentity(user_id=OTHER_MANAGER_ID, email="other@example.com", role="MANAGER")


@pytest.fixture
def applicant() -> CallerIdentity:
    return CallerIdentity(user_id="applicant-1", email="jane@example.com", role="APPLICANT")


@pytest.fixture
def manager_headers() -> dict:
    return auth_headers(MANAGER_ID, "manager@example.com", "MANAGER")


@pytest.fixture
def other_manager_headers() -> dict:
    return auth_headers(OTHER_MANAGER_ID, "other@example.com", "MANAGER")


@pytest.fixture
def applicant_headers() -> dict:
    return auth_headers("applicant-1", "jane@example.com", "APPLICANT")


@pytest.fixture
def stranger_headers() -> dict:
    """An applicant who did not start the application under test."""
    return auth_headers("applicant-2", "john@example.com", "APPLICANT")


@pytest.fixture
def notifier() -> AsyncMock:
    """Notification double; nothing is sent in tests."""
    return AsyncMock(spec=NotificationService)


# ==================== Database ===================== #

@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "test.db"


@pytest.fixture
def sync_engine(db_path):
    """Synchronous engine on the test database, used for schema setup and seeding."""
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sync_engine, db_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def repo(session) -> HiringRepository:
    return HiringRepository(session)


class Seeder:
    """Writes fixture rows through a synchronous session."""

    def __init__(self, engine):
        self.engine = engine

    def _add(self, instance):
        with Session(self.engine, expire_on_commit=False) as session:
            session.add(instance)
            session.commit()
        return instance

    def user(self, user_id: str = MANAGER_ID, email: str = "manager@example.com",
             role: UserRole = UserRole.MANAGER, name: Optional[str] = "Morgan Manager") -> User:
        return self._add(User(id=user_id, email=email, role=role, name=name))

    def position(self, user_id: str = MANAGER_ID, title: str = "Backend Engineer", **fields) -> Position:
        return self._add(Position(user_id=user_id, title=title, **fields))

    def question(self, position: Position, order: int, text: str = "Tell us about yourself",
                 type: QuestionType = QuestionType.TEXT, options=None, weight: float = 1.0) -> Question:
        return self._add(Question(
            position_id=position.id, order=order, text=text, type=type, options=options, weight=weight,
        ))

    def application(self, position: Position, email: str = "jane@example.com", name: str = "Jane Doe",
                    started_at: Optional[datetime] = None, completed_at: Optional[datetime] = None,
                    **fields) -> Application:
        started_at = started_at or datetime.now(timezone.utc)
        if completed_at is not None:
            fields.setdefault("status", ApplicationStatus.COMPLETED)
        return self._add(Application(
            position_id=position.id, email=email, name=name,
            started_at=started_at, completed_at=completed_at, **fields,
        ))

    def answer(self, application: Application, question: Question, response: str = "An answer",
               score: Optional[float] = None) -> Answer:
        return self._add(Answer(
            application_id=application.id, question_id=question.id, response=response, score=score,
        ))

    def hours_ago(self, hours: float) -> datetime:
        return datetime.now(timezone.utc) - timedelta(hours=hours)


@pytest.fixture
def seed(sync_engine) -> Seeder:
    return Seeder(sync_engine)


# ==================== API ===================== #

@pytest.fixture
def client(session_factory, notifier):
    """Test client whose requests use the per-test database."""
    from api.dependencies import get_notifier
    from api.main import app
    from database.engine import get_db

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()
