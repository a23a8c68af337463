"""
Async SQLAlchemy engine and session factory.

Uses ``asyncpg`` as the PostgreSQL driver for non-blocking I/O.  Tests
and scripts can build their own engine with ``make_engine`` (e.g. a
file-backed SQLite database through ``aiosqlite``).
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.config import settings


def make_engine(url: str, **kwargs) -> AsyncEngine:
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_size", 20)
        kwargs.setdefault("max_overflow", 10)
    return create_async_engine(url, echo=False, **kwargs)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = make_engine(settings.database_url)

async_session_factory = make_session_factory(engine)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""
