from __future__ import annotations

import os

os.environ.setdefault("APP_ENV", "test")

import itertools  # noqa: E402
from typing import Callable  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from lightfriend.core.config import settings  # noqa: E402
from lightfriend.core.security import create_access_token  # noqa: E402
from lightfriend.db import session as db_session_module  # noqa: E402
from lightfriend.db.base_class import Base  # noqa: E402
from lightfriend.db.session import SessionLocal  # noqa: E402
from lightfriend.models.models import User  # noqa: E402

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")


test_engine = create_engine(
    TEST_DATABASE_URL,
    future=True,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Ensure application code uses the test engine
settings.DATABASE_URL = TEST_DATABASE_URL  # type: ignore[attr-defined]
db_session_module.engine = test_engine  # type: ignore[assignment]
SessionLocal.configure(bind=test_engine)


@pytest.fixture(autouse=True)
def _reset_database_state():
    """Ensure each test sees a fresh database schema."""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Rate limit counters are process wide; start every test from zero."""
    limiter.reset()
    yield


@pytest.fixture
def db_session():
    """Provide a database session for tests."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


_counter = itertools.count(1)


@pytest.fixture
def make_user(db_session) -> Callable[..., User]:
    """Factory creating committed users with unique email and phone number."""

    def _make(**fields) -> User:
        n = next(_counter)
        fields.setdefault("email", f"user{n}@example.com")
        fields.setdefault("phone_number", f"+1555000{n:04d}")
        user = User(**fields)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


def auth_headers(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def headers_for() -> Callable[[int], dict[str, str]]:
    return auth_headers


# FastAPI TestClient fixture
from fastapi.testclient import TestClient  # noqa: E402

from lightfriend.api.main import app  # noqa: E402
from lightfriend.api.rate_limit import limiter  # noqa: E402


@pytest.fixture
def client():
    """Provide a FastAPI TestClient bound to the application."""
    return TestClient(app)
