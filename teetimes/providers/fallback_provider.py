import logging
from datetime import date
from decimal import Decimal
from typing import Any

from teetimes.config import FallbackPolicy
from teetimes.models.schemas import BookingSystem, Course, TeeTimeSlot
from teetimes.providers.base import FetchResult, ScraperStrategy

logger = logging.getLogger(__name__)

SAMPLE_TEE_TIMES = (
    TeeTimeSlot(time="7:00 AM", price=Decimal("45"), available_slots=4, holes=18),
    TeeTimeSlot(time="7:30 AM", price=Decimal("45"), available_slots=2, holes=18),
)


class FallbackProvider(ScraperStrategy):
    """
    Strategy for courses whose booking system has no scraper.

    With FallbackPolicy.EMPTY (the default) such courses report no tee
    times. FallbackPolicy.SAMPLE returns a fixed two-slot sheet, which is
    only meant for demos and local development.
    """

    booking_system = BookingSystem.UNKNOWN

    def __init__(self, policy: FallbackPolicy = FallbackPolicy.EMPTY) -> None:
        self.policy = policy
        logger.info(f"Fallback scraper policy: {policy.value}")

    async def fetch_raw(self, course: Course, target_date: date) -> FetchResult:
        logger.debug(f"Using fallback scraper ({self.policy.value}) for {course.name}")
        if self.policy == FallbackPolicy.SAMPLE:
            return FetchResult.ok(list(SAMPLE_TEE_TIMES))
        return FetchResult.ok([])

    def parse(self, payload: Any) -> list[TeeTimeSlot]:
        if not isinstance(payload, list):
            return []
        return [slot for slot in payload if isinstance(slot, TeeTimeSlot)]
