"""
Cache-aside storage for normalized tee sheets.

Two backends share one interface: SqlCacheStore persists entries through
SQLAlchemy (any async URL, SQLite by default) and MemoryCacheStore keeps
them in process. Both treat an entry whose expires_at has passed as a miss,
even when the backing row has not been purged yet.

Concurrent misses on the same key are not coalesced; each caller fetches
upstream and the last set() wins.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import delete, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from teetimes.exceptions import CacheUnavailable
from teetimes.models.database import CacheRecord, create_cache_engine, create_session_factory, init_db
from teetimes.models.schemas import TeeTimeSlot

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 900
MEMORY_CACHE_URL = "memory://"

_slots_adapter = TypeAdapter(list[TeeTimeSlot])

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(UTC).replace(tzinfo=None)


def encode_slots(slots: list[TeeTimeSlot]) -> str:
    return _slots_adapter.dump_json(slots, by_alias=True).decode("utf-8")


def decode_slots(value_json: str) -> list[TeeTimeSlot]:
    return _slots_adapter.validate_json(value_json)


class CacheStore(ABC):
    """Abstract TTL key/value store for tee sheets."""

    @abstractmethod
    async def get(self, key: str) -> list[TeeTimeSlot] | None:
        """Return the cached slots, or None on a miss or an expired entry."""
        pass

    @abstractmethod
    async def set(
        self, key: str, value: list[TeeTimeSlot], ttl_seconds: int = DEFAULT_TTL_SECONDS
    ) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def purge_expired(self) -> int:
        """Physically remove expired entries and return how many were dropped."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        pass

    async def close(self) -> None:
        pass


class SqlCacheStore(CacheStore):
    """
    Cache store backed by the cache_entries table.

    All SQLAlchemy errors are re-raised as CacheUnavailable so callers can
    degrade to a direct upstream fetch.
    """

    def __init__(self, engine: AsyncEngine, clock: Clock = utcnow) -> None:
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self._clock = clock

    @classmethod
    async def connect(cls, url: str, clock: Clock = utcnow) -> "SqlCacheStore":
        """Create the engine, make sure the table exists and return a ready store."""
        try:
            engine = create_cache_engine(url)
        except (SQLAlchemyError, ImportError) as e:
            raise CacheUnavailable(f"Invalid cache URL {url}: {e}") from e
        try:
            await init_db(engine)
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            raise CacheUnavailable(f"Could not initialize cache at {url}: {e}") from e
        logger.info("Cache store connected")
        return cls(engine, clock)

    async def get(self, key: str) -> list[TeeTimeSlot] | None:
        try:
            async with self._session_factory() as db:
                record = await db.get(CacheRecord, key)
        except SQLAlchemyError as e:
            raise CacheUnavailable(f"Cache read failed for {key}: {e}") from e

        if record is None:
            return None
        if record.expires_at <= self._clock():
            logger.debug(f"Cache entry {key} expired at {record.expires_at}")
            return None

        try:
            return decode_slots(record.value_json)  # type: ignore[arg-type]
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None

    async def set(
        self, key: str, value: list[TeeTimeSlot], ttl_seconds: int = DEFAULT_TTL_SECONDS
    ) -> None:
        now = self._clock()
        record = CacheRecord(
            key=key,
            value_json=encode_slots(value),
            expires_at=now + timedelta(seconds=ttl_seconds),
            created_at=now,
        )
        try:
            async with self._session_factory() as db:
                await db.merge(record)
                await db.commit()
        except SQLAlchemyError as e:
            raise CacheUnavailable(f"Cache write failed for {key}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            async with self._session_factory() as db:
                await db.execute(delete(CacheRecord).where(CacheRecord.key == key))
                await db.commit()
        except SQLAlchemyError as e:
            raise CacheUnavailable(f"Cache delete failed for {key}: {e}") from e

    async def purge_expired(self) -> int:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    delete(CacheRecord).where(CacheRecord.expires_at <= self._clock())
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise CacheUnavailable(f"Cache purge failed: {e}") from e
        return result.rowcount or 0

    async def ping(self) -> bool:
        try:
            async with self._session_factory() as db:
                await db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Cache ping failed: {e}")
            return False

    async def close(self) -> None:
        await self._engine.dispose()


class MemoryCacheStore(CacheStore):
    """In-process cache store; entries live as long as the process."""

    def __init__(self, clock: Clock = utcnow) -> None:
        self._entries: dict[str, tuple[list[TeeTimeSlot], datetime]] = {}
        self._clock = clock

    async def get(self, key: str) -> list[TeeTimeSlot] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            return None
        return list(value)

    async def set(
        self, key: str, value: list[TeeTimeSlot], ttl_seconds: int = DEFAULT_TTL_SECONDS
    ) -> None:
        self._entries[key] = (list(value), self._clock() + timedelta(seconds=ttl_seconds))

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def ping(self) -> bool:
        return True


async def create_cache_store(url: str, clock: Clock = utcnow) -> CacheStore:
    """Build the cache store selected by the configured cache URL."""
    if url == MEMORY_CACHE_URL:
        logger.info("Using in-memory cache store")
        return MemoryCacheStore(clock)
    return await SqlCacheStore.connect(url, clock)
