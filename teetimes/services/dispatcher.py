"""
Cache-aside resolution of one course's tee sheet.

The dispatcher is the single place where upstream failures are decided:
strategies report them as failed FetchResults, and the dispatcher logs them
and answers with an empty sheet that is NOT cached, so the next call retries
upstream. Cache outages degrade to direct fetches.
"""

import logging
from datetime import date

from teetimes.exceptions import CacheUnavailable
from teetimes.models.schemas import Course, TeeTimeSlot
from teetimes.providers.factory import StrategyFactory
from teetimes.services.cache_service import DEFAULT_TTL_SECONDS, CacheStore

logger = logging.getLogger(__name__)


def cache_key(course: Course, target_date: date) -> str:
    return f"{course.booking_system.value}:{course.id}:{target_date.isoformat()}"


class TeeTimeDispatcher:
    def __init__(
        self,
        cache: CacheStore,
        strategies: StrategyFactory,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self._cache = cache
        self._strategies = strategies
        self._ttl_seconds = ttl_seconds

    async def resolve(self, course: Course, target_date: date) -> list[TeeTimeSlot]:
        """Return the course's slots for a date, from cache when fresh, else from upstream."""
        key = cache_key(course, target_date)
        try:
            cached = await self._cache.get(key)
        except CacheUnavailable as e:
            logger.warning(f"Cache read failed, fetching {key} directly: {e}")
            cached = None

        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return cached

        logger.debug(f"Cache miss for {key}")
        return await self._fetch_and_store(course, target_date, key)

    async def refresh(self, course: Course, target_date: date) -> list[TeeTimeSlot]:
        """Drop the cached entry and fetch fresh slots from upstream unconditionally."""
        key = cache_key(course, target_date)
        try:
            await self._cache.delete(key)
        except CacheUnavailable as e:
            logger.warning(f"Cache delete failed for {key}: {e}")
        return await self._fetch_and_store(course, target_date, key)

    async def _fetch_and_store(
        self, course: Course, target_date: date, key: str
    ) -> list[TeeTimeSlot]:
        slots = await self._fetch(course, target_date)
        if slots is None:
            return []

        try:
            await self._cache.set(key, slots, self._ttl_seconds)
        except CacheUnavailable as e:
            logger.warning(f"Cache write failed for {key}: {e}")
        return slots

    async def _fetch(self, course: Course, target_date: date) -> list[TeeTimeSlot] | None:
        """Fetch and parse upstream; None marks a failure that must not be cached."""
        strategy = self._strategies.get_strategy(course.booking_system)
        try:
            result = await strategy.fetch_raw(course, target_date)
            if not result.success:
                logger.warning(
                    f"{course.booking_system.value} scraper failed for {course.name} "
                    f"on {target_date}: [{result.failure.value if result.failure else 'unknown'}] "
                    f"{result.error_message}"
                )
                return None
            slots = strategy.parse(result.payload)
        except Exception as e:
            logger.exception(
                f"{course.booking_system.value} scraper error for {course.name} on {target_date}: {e}"
            )
            return None

        logger.info(f"Fetched {len(slots)} tee time(s) for {course.name} on {target_date}")
        return slots
