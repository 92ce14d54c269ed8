"""Async SQLAlchemy engine, session factory, and declarative base."""

import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from stayhub.config import settings


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"echo": settings.debug}
    return {"echo": settings.debug, "pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


engine = create_async_engine(settings.async_database_url, **_engine_kwargs(settings.async_database_url))

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def utcnow() -> datetime:
    """Naive UTC timestamp with microsecond precision.

    Set from Python rather than the server so rows created inside one
    transaction still order deterministically (``now()`` is constant per
    transaction in PostgreSQL, and SQLite only keeps seconds).
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)


class UUIDPrimaryKeyMixin:
    """Mixin that adds a UUID primary key column."""

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async database session for FastAPI dependency injection.

    Usage::

        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
