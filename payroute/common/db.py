"""Database bootstrap helpers."""

from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from payroute.common.config import settings


def make_session_factory(dsn: str):
    """Build an engine plus session factory for one DSN."""

    # SQLite serialises writers; wait for the lock instead of failing fast.
    connect_args = {"check_same_thread": False, "timeout": 30} if dsn.startswith("sqlite") else {}
    bound = create_engine(dsn, pool_pre_ping=True, connect_args=connect_args)
    # `expire_on_commit=False` keeps ORM objects readable after commit in handlers.
    return bound, sessionmaker(bind=bound, autoflush=False, autocommit=False, expire_on_commit=False)


# Single SQLAlchemy engine per process.
engine, SessionLocal = make_session_factory(settings.database_dsn)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps read back from backends without tz support."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
