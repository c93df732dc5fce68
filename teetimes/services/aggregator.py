import asyncio
import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from teetimes.models.schemas import Course, CourseTeeTimes, TeeTimeSlot
from teetimes.services.course_registry import CourseRegistry
from teetimes.services.dispatcher import TeeTimeDispatcher

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 5


def matches_filters(slot: TeeTimeSlot, max_price: Decimal | None, min_slots: int) -> bool:
    """A slot with an unknown price never satisfies a price ceiling."""
    if max_price is not None and (slot.price is None or slot.price > max_price):
        return False
    return slot.available_slots >= min_slots


class TeeTimeAggregator:
    """
    Fans dispatcher calls out over many courses.

    Each course resolves independently behind a shared semaphore; a course
    that fails is reported as having no tee times and never fails the whole
    request. Results keep the order of the requested course ids.
    """

    def __init__(
        self,
        dispatcher: TeeTimeDispatcher,
        registry: CourseRegistry,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self._dispatcher = dispatcher
        self._registry = registry
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def search(
        self,
        course_ids: Iterable[str] | None,
        target_date: date,
        max_price: Decimal | None = None,
        min_slots: int = 1,
    ) -> list[CourseTeeTimes]:
        """Resolve and filter; courses left with no matching slots are dropped."""
        results = await self.batch(course_ids, target_date)
        filtered = [
            CourseTeeTimes(
                course=result.course,
                tee_times=[
                    slot
                    for slot in result.tee_times
                    if matches_filters(slot, max_price, min_slots)
                ],
            )
            for result in results
        ]
        return [result for result in filtered if result.tee_times]

    async def batch(
        self, course_ids: Iterable[str] | None, target_date: date
    ) -> list[CourseTeeTimes]:
        """Resolve every course without filtering; empty sheets are kept."""
        courses = self._select_courses(course_ids)
        sheets = await asyncio.gather(
            *(self._resolve_isolated(course, target_date) for course in courses)
        )
        return [
            CourseTeeTimes(course=course, tee_times=slots)
            for course, slots in zip(courses, sheets, strict=True)
        ]

    def _select_courses(self, course_ids: Iterable[str] | None) -> list[Course]:
        if course_ids is None:
            return self._registry.all()

        courses: list[Course] = []
        for course_id in course_ids:
            course = self._registry.find(course_id)
            if course is None:
                logger.warning(f"Skipping unknown course id {course_id!r}")
                continue
            courses.append(course)
        return courses

    async def _resolve_isolated(self, course: Course, target_date: date) -> list[TeeTimeSlot]:
        async with self._semaphore:
            try:
                return await self._dispatcher.resolve(course, target_date)
            except Exception as e:
                logger.exception(f"Failed to resolve tee times for {course.name}: {e}")
                return []
