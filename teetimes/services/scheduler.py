"""
Periodic cache warming.

Every warm_interval the scheduler resolves today's and tomorrow's tee
sheets for every registered course, so interactive requests mostly hit a
warm cache. The same run can be triggered externally through
POST /jobs/warm-cache.

The interval trigger is an APScheduler AsyncIOScheduler job. Overlap
policy: a trigger that fires while a previous run is still in flight is
skipped, both for the interval job (max_instances=1) and for external
triggers (the in-flight flag). At most one run exists at a time, which also
bounds how long shutdown has to wait.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Any

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from teetimes.exceptions import CacheUnavailable
from teetimes.models.schemas import Course, WarmRunResult
from teetimes.services.cache_service import CacheStore
from teetimes.services.course_registry import CourseRegistry
from teetimes.services.dispatcher import TeeTimeDispatcher

logger = logging.getLogger(__name__)

WARM_JOB_ID = "warm_cache"


def warm_dates(now: datetime) -> tuple[date, date]:
    today = now.date()
    return today, today + timedelta(days=1)


class CacheWarmScheduler:
    def __init__(
        self,
        dispatcher: TeeTimeDispatcher,
        registry: CourseRegistry,
        cache: CacheStore | None = None,
        interval_minutes: float = 15,
        timezone: str = "America/Denver",
        max_concurrency: int = 5,
    ) -> None:
        self._dispatcher = dispatcher
        self._registry = registry
        self._cache = cache
        self.interval_minutes = interval_minutes
        self._tz = pytz.timezone(timezone)
        self._max_concurrency = max(1, max_concurrency)
        self._in_flight = False
        self._current_run: asyncio.Task[WarmRunResult | None] | None = None
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def is_running(self) -> bool:
        """True while a warm run is in flight."""
        return self._in_flight

    def now(self) -> datetime:
        return datetime.now(self._tz)

    async def run_once(self) -> WarmRunResult | None:
        """
        Warm the cache for every course for today and tomorrow.

        Returns None without doing anything if a run is already in flight.
        Per-course failures are logged and counted, never raised.
        """
        if self._in_flight:
            logger.warning("Cache warming already in progress, skipping this trigger")
            return None

        self._in_flight = True
        try:
            return await self._warm_all()
        finally:
            self._in_flight = False

    async def _warm_all(self) -> WarmRunResult:
        started_at = self.now()
        dates = warm_dates(started_at)
        logger.info(
            f"Running scheduled cache warming for {len(self._registry)} course(s) "
            f"on {', '.join(d.isoformat() for d in dates)}"
        )

        semaphore = asyncio.Semaphore(self._max_concurrency)
        jobs = [(course, day) for course in self._registry.all() for day in dates]
        outcomes = await asyncio.gather(
            *(self._warm_one(semaphore, course, day) for course, day in jobs)
        )

        result = WarmRunResult(
            started_at=started_at,
            total=len(jobs),
            succeeded=sum(outcomes),
            failed=len(jobs) - sum(outcomes),
        )
        await self._purge_expired()
        logger.info(
            f"Cache warming finished: {result.succeeded}/{result.total} succeeded, "
            f"{result.failed} failed"
        )
        return result

    async def _warm_one(self, semaphore: asyncio.Semaphore, course: Course, day: date) -> bool:
        async with semaphore:
            try:
                await self._dispatcher.resolve(course, day)
                return True
            except Exception as e:
                logger.exception(f"Cache warming failed for {course.name} on {day}: {e}")
                return False

    async def _purge_expired(self) -> None:
        if self._cache is None:
            return
        try:
            purged = await self._cache.purge_expired()
        except CacheUnavailable as e:
            logger.warning(f"Could not purge expired cache entries: {e}")
            return
        if purged:
            logger.info(f"Purged {purged} expired cache entr{'y' if purged == 1 else 'ies'}")

    def start(self, run_immediately: bool = False) -> None:
        """Schedule the periodic warm job on the running event loop."""
        if self._scheduler is not None and self._scheduler.running:
            return

        job_options: dict[str, Any] = {}
        if run_immediately:
            job_options["next_run_time"] = datetime.now(self._tz)

        self._scheduler = AsyncIOScheduler(timezone=self._tz)
        self._scheduler.add_job(
            self._scheduled_run,
            "interval",
            minutes=self.interval_minutes,
            id=WARM_JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
            **job_options,
        )
        self._scheduler.start()
        logger.info(f"Cache warming scheduled every {self.interval_minutes:g} minute(s)")

    async def _scheduled_run(self) -> None:
        self._current_run = asyncio.create_task(self.run_once())
        try:
            # Shielded so scheduler shutdown cancels the job, not the run
            await asyncio.shield(self._current_run)
        except Exception as e:
            logger.exception(f"Cache warming run crashed: {e}")

    async def stop(self) -> None:
        """Stop scheduling and wait for the in-flight run, if any, to finish."""
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None

        if self._current_run is not None and not self._current_run.done():
            logger.info("Waiting for in-flight cache warming run to finish")
            try:
                await self._current_run
            except Exception as e:
                logger.warning(f"In-flight cache warming run ended with error: {e}")
        self._current_run = None
