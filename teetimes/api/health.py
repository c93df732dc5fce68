from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from teetimes.services.context import ServiceContext, get_context

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(ctx: ServiceContext = Depends(get_context)) -> dict[str, str]:
    if ctx.renderer is None:
        renderer = "disabled"
    else:
        renderer = "initialized" if ctx.renderer.is_running else "not initialized"
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "cache": "connected" if await ctx.cache.ping() else "disconnected",
        "renderer": renderer,
    }


@router.get("/")
async def root() -> dict[str, str | dict[str, str]]:
    return {
        "service": "TeeTimes - Golf Tee Time Aggregator",
        "version": "0.1.0",
        "endpoints": {
            "health": "/health",
            "courses": "/courses",
            "tee_times": "/tee-times/{course_id}",
            "search": "/search/tee-times",
            "batch": "/batch/tee-times",
            "refresh": "/refresh/{course_id}",
        },
    }
