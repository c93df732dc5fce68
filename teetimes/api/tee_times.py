from datetime import date, datetime
from decimal import Decimal

import pytz
from fastapi import APIRouter, Depends, Query

from teetimes.api.courses import lookup_course
from teetimes.models.schemas import (
    BatchResponse,
    Course,
    RefreshRequest,
    RefreshResponse,
    SearchFilters,
    SearchResponse,
    TeeTimesResponse,
)
from teetimes.services.context import ServiceContext, get_context

router = APIRouter(tags=["tee-times"])


def local_today(ctx: ServiceContext) -> date:
    """Today's date in the configured course timezone."""
    return datetime.now(pytz.timezone(ctx.settings.timezone)).date()


@router.get("/tee-times/{course_id}", response_model=TeeTimesResponse)
async def get_tee_times(
    course: Course = Depends(lookup_course),
    target_date: date | None = Query(None, alias="date", description="ISO date, default today"),
    ctx: ServiceContext = Depends(get_context),
) -> TeeTimesResponse:
    target_date = target_date or local_today(ctx)
    tee_times = await ctx.dispatcher.resolve(course, target_date)
    return TeeTimesResponse(course=course, target_date=target_date, tee_times=tee_times)


@router.get("/search/tee-times", response_model=SearchResponse)
async def search_tee_times(
    target_date: date | None = Query(None, alias="date"),
    max_price: Decimal | None = Query(None, alias="maxPrice", ge=0),
    min_slots: int = Query(1, alias="minSlots", ge=0),
    course_ids: list[str] | None = Query(
        None, alias="courseId", description="Restrict the search; default all courses"
    ),
    ctx: ServiceContext = Depends(get_context),
) -> SearchResponse:
    """Search every course (or the given ones) for tee times matching the filters."""
    target_date = target_date or local_today(ctx)
    results = await ctx.aggregator.search(
        course_ids, target_date, max_price=max_price, min_slots=min_slots
    )
    return SearchResponse(
        target_date=target_date,
        filters=SearchFilters(max_price=max_price, min_slots=min_slots),
        results=results,
    )


@router.get("/batch/tee-times", response_model=BatchResponse)
async def batch_tee_times(
    target_date: date | None = Query(None, alias="date"),
    course_ids: list[str] | None = Query(None, alias="courseId"),
    ctx: ServiceContext = Depends(get_context),
) -> BatchResponse:
    """Unfiltered tee sheets for many courses; courses without tee times are included."""
    target_date = target_date or local_today(ctx)
    results = await ctx.aggregator.batch(course_ids, target_date)
    return BatchResponse(target_date=target_date, results=results)


@router.post("/refresh/{course_id}", response_model=RefreshResponse)
async def refresh_tee_times(
    body: RefreshRequest | None = None,
    course: Course = Depends(lookup_course),
    ctx: ServiceContext = Depends(get_context),
) -> RefreshResponse:
    """Bypass the cache: drop the cached sheet and fetch it again from upstream."""
    target_date = (body.target_date if body else None) or local_today(ctx)
    tee_times = await ctx.dispatcher.refresh(course, target_date)
    return RefreshResponse(course=course, target_date=target_date, tee_times=tee_times)
