"""Database engine setup.

The user store is connection pooled for PostgreSQL. SQLite URLs (dev and test)
get ``check_same_thread`` disabled, and in-memory SQLite shares one connection
through ``StaticPool`` so every session sees the same schema.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lightfriend.core.config import settings

raw_url = settings.DATABASE_URL or "sqlite:///:memory:"

if raw_url.startswith("sqlite"):
    if ":memory:" in raw_url:
        engine = create_engine(
            raw_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(raw_url, future=True, connect_args={"check_same_thread": False})
else:
    engine = create_engine(
        raw_url,
        future=True,
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,
    )
SessionLocal = sessionmaker(bind=engine, class_=Session, expire_on_commit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
