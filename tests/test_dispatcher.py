"""
Tests for cache-aside resolution in teetimes/services/dispatcher.py.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from teetimes.exceptions import CacheUnavailable
from teetimes.models.schemas import BookingSystem, TeeTimeSlot
from teetimes.providers.base import FailureKind
from teetimes.services.cache_service import MemoryCacheStore
from teetimes.services.dispatcher import TeeTimeDispatcher, cache_key
from tests.fakes import FakeClock, RecordingStrategy, StubStrategyFactory, make_course

TARGET_DATE = date(2026, 5, 2)

SLOTS = [
    TeeTimeSlot(time="7:00 AM", price=Decimal("45"), available_slots=4),
    TeeTimeSlot(time="7:30 AM", price=Decimal("45"), available_slots=2),
]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> MemoryCacheStore:
    return MemoryCacheStore(clock)


@pytest.fixture
def strategy() -> RecordingStrategy:
    return RecordingStrategy(SLOTS)


@pytest.fixture
def dispatcher(cache: MemoryCacheStore, strategy: RecordingStrategy) -> TeeTimeDispatcher:
    factory = StubStrategyFactory({BookingSystem.FOREUP: strategy})
    return TeeTimeDispatcher(cache, factory, ttl_seconds=900)


class TestCacheKey:
    def test_key_format(self) -> None:
        course = make_course("bonneville", BookingSystem.FOREUP)
        assert cache_key(course, TARGET_DATE) == "foreup:bonneville:2026-05-02"

    def test_keys_differ_by_date(self) -> None:
        course = make_course()
        assert cache_key(course, date(2026, 5, 2)) != cache_key(course, date(2026, 5, 3))


class TestResolve:
    """Tests for TeeTimeDispatcher.resolve."""

    @pytest.mark.asyncio
    async def test_miss_fetches_and_caches(
        self, dispatcher: TeeTimeDispatcher, strategy: RecordingStrategy, cache: MemoryCacheStore
    ) -> None:
        course = make_course()

        slots = await dispatcher.resolve(course, TARGET_DATE)

        assert slots == SLOTS
        assert strategy.calls == [("bonneville", TARGET_DATE)]
        assert await cache.get("foreup:bonneville:2026-05-02") == SLOTS

    @pytest.mark.asyncio
    async def test_hit_skips_upstream(
        self, dispatcher: TeeTimeDispatcher, strategy: RecordingStrategy
    ) -> None:
        course = make_course()

        first = await dispatcher.resolve(course, TARGET_DATE)
        second = await dispatcher.resolve(course, TARGET_DATE)

        assert first == second
        assert len(strategy.calls) == 1

    @pytest.mark.asyncio
    async def test_cached_empty_sheet_is_a_hit(
        self, cache: MemoryCacheStore, dispatcher: TeeTimeDispatcher, strategy: RecordingStrategy
    ) -> None:
        course = make_course()
        await cache.set(cache_key(course, TARGET_DATE), [])

        assert await dispatcher.resolve(course, TARGET_DATE) == []
        assert strategy.calls == []

    @pytest.mark.asyncio
    async def test_expired_entry_is_refetched(
        self, dispatcher: TeeTimeDispatcher, strategy: RecordingStrategy, clock: FakeClock
    ) -> None:
        course = make_course()

        await dispatcher.resolve(course, TARGET_DATE)
        clock.advance(901)
        await dispatcher.resolve(course, TARGET_DATE)

        assert len(strategy.calls) == 2

    @pytest.mark.asyncio
    async def test_failed_fetch_returns_empty_and_is_not_cached(
        self, cache: MemoryCacheStore
    ) -> None:
        strategy = RecordingStrategy(failure=FailureKind.RENDER_TIMEOUT)
        dispatcher = TeeTimeDispatcher(cache, StubStrategyFactory({BookingSystem.FOREUP: strategy}))
        course = make_course()

        assert await dispatcher.resolve(course, TARGET_DATE) == []
        assert await cache.get(cache_key(course, TARGET_DATE)) is None

        await dispatcher.resolve(course, TARGET_DATE)
        assert len(strategy.calls) == 2

    @pytest.mark.asyncio
    async def test_strategy_exception_returns_empty(self, cache: MemoryCacheStore) -> None:
        strategy = RecordingStrategy(error=RuntimeError("selector exploded"))
        dispatcher = TeeTimeDispatcher(cache, StubStrategyFactory({BookingSystem.FOREUP: strategy}))
        course = make_course()

        assert await dispatcher.resolve(course, TARGET_DATE) == []
        assert await cache.get(cache_key(course, TARGET_DATE)) is None

    @pytest.mark.asyncio
    async def test_unknown_booking_system_uses_fallback(self, cache: MemoryCacheStore) -> None:
        fallback = RecordingStrategy([TeeTimeSlot(time="7:00 AM")])
        factory = StubStrategyFactory({}, fallback=fallback)
        dispatcher = TeeTimeDispatcher(cache, factory)
        course = make_course("mystery", BookingSystem.UNKNOWN, "https://example.com")

        slots = await dispatcher.resolve(course, TARGET_DATE)

        assert [slot.time for slot in slots] == ["7:00 AM"]
        assert fallback.calls == [("mystery", TARGET_DATE)]

    @pytest.mark.asyncio
    async def test_cache_outage_degrades_to_direct_fetch(self, strategy: RecordingStrategy) -> None:
        broken = AsyncMock(spec=MemoryCacheStore)
        broken.get.side_effect = CacheUnavailable("database is locked")
        broken.set.side_effect = CacheUnavailable("database is locked")
        dispatcher = TeeTimeDispatcher(broken, StubStrategyFactory({BookingSystem.FOREUP: strategy}))

        slots = await dispatcher.resolve(make_course(), TARGET_DATE)

        assert slots == SLOTS
        broken.set.assert_awaited_once()


class TestRefresh:
    """Tests for TeeTimeDispatcher.refresh."""

    @pytest.mark.asyncio
    async def test_refresh_bypasses_fresh_cache(
        self, dispatcher: TeeTimeDispatcher, strategy: RecordingStrategy, cache: MemoryCacheStore
    ) -> None:
        course = make_course()
        await dispatcher.resolve(course, TARGET_DATE)

        updated = [TeeTimeSlot(time="6:52 AM", price=Decimal("30"))]
        strategy.slots = updated
        refreshed = await dispatcher.refresh(course, TARGET_DATE)

        assert refreshed == updated
        assert len(strategy.calls) == 2
        assert await dispatcher.resolve(course, TARGET_DATE) == updated
        assert len(strategy.calls) == 2

    @pytest.mark.asyncio
    async def test_failed_refresh_leaves_key_empty(self, cache: MemoryCacheStore) -> None:
        course = make_course()
        await cache.set(cache_key(course, TARGET_DATE), SLOTS)
        strategy = RecordingStrategy(failure=FailureKind.UPSTREAM_UNAVAILABLE)
        dispatcher = TeeTimeDispatcher(cache, StubStrategyFactory({BookingSystem.FOREUP: strategy}))

        assert await dispatcher.refresh(course, TARGET_DATE) == []
        assert await cache.get(cache_key(course, TARGET_DATE)) is None
