"""
Test doubles shared by the service tests.

These stand in for the scraper strategies, the strategy factory and the
wall clock so dispatcher, aggregator and scheduler behavior can be verified
without network or browser access.
"""

import asyncio
from datetime import date, datetime, timedelta
from typing import Any

from teetimes.models.schemas import BookingSystem, Course, TeeTimeSlot
from teetimes.providers.base import FailureKind, FetchResult, ScraperStrategy


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 5, 1, 12, 0)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class RecordingStrategy(ScraperStrategy):
    """Strategy returning canned slots (or failures) and counting upstream fetches."""

    def __init__(
        self,
        slots: list[TeeTimeSlot] | None = None,
        failure: FailureKind | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.slots = slots or []
        self.failure = failure
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, date]] = []

    async def fetch_raw(self, course: Course, target_date: date) -> FetchResult:
        self.calls.append((course.id, target_date))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.failure is not None:
            return FetchResult.failed(self.failure, "simulated failure")
        return FetchResult.ok(list(self.slots))

    def parse(self, payload: Any) -> list[TeeTimeSlot]:
        return list(payload)


class StubStrategyFactory:
    def __init__(
        self,
        strategies: dict[BookingSystem, ScraperStrategy],
        fallback: ScraperStrategy | None = None,
    ) -> None:
        self.strategies = strategies
        self.fallback = fallback or RecordingStrategy()

    def get_strategy(self, booking_system: BookingSystem) -> ScraperStrategy:
        return self.strategies.get(booking_system, self.fallback)


def make_course(
    course_id: str = "bonneville",
    booking_system: BookingSystem = BookingSystem.FOREUP,
    booking_url: str = "https://foreupsoftware.com/index.php/booking/20287/5495",
) -> Course:
    return Course(
        id=course_id,
        name=f"{course_id.title()} Golf Course",
        booking_system=booking_system,
        booking_url=booking_url,
        city="Salt Lake City",
    )
