"""
SQLAlchemy models backing the tee time cache.

Each row holds the normalized slots for one (booking system, course, date)
key as a JSON document, together with the moment it stops being valid.
Expired rows may linger until purged; readers must compare expires_at
themselves and treat stale rows as misses.
"""

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class CacheRecord(Base):
    """
    Database model for one cached tee sheet.

    Columns:
        key: Cache key in the form "<booking_system>:<course_id>:<YYYY-MM-DD>".
        value_json: JSON array of normalized tee time slots (camelCase fields).
        expires_at: Naive UTC timestamp after which the row must be ignored.
        created_at: When the row was last written, on the store's clock.
    """

    __tablename__ = "cache_entries"

    key = Column(String(255), primary_key=True)
    value_json = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)


def create_cache_engine(url: str) -> AsyncEngine:
    """Create the async engine, upgrading plain sqlite URLs to the aiosqlite driver."""
    return create_async_engine(
        url.replace("sqlite://", "sqlite+aiosqlite://") if url.startswith("sqlite://") else url,
        echo=False,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
