import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from teetimes.api import courses, health, jobs, tee_times
from teetimes.config import settings
from teetimes.services.context import ServiceContext

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Cache or browser failures propagate and abort startup
    context = await ServiceContext.create(settings)
    app.state.context = context

    if not settings.scheduler_service_account or not settings.oidc_audience:
        logger.info(
            "SCHEDULER_SERVICE_ACCOUNT or OIDC_AUDIENCE is not configured. "
            "The /jobs/warm-cache endpoint refuses OIDC tokens."
        )
    if not settings.scheduler_api_key and not (
        settings.scheduler_service_account and settings.oidc_audience
    ):
        logger.warning(
            "No scheduler credentials configured. "
            "The /jobs/warm-cache endpoint rejects every request."
        )

    if settings.scheduler_enabled:
        context.scheduler.start(run_immediately=settings.warm_on_startup)
    else:
        logger.info("In-process cache warming disabled (SCHEDULER_ENABLED=false)")

    try:
        yield
    finally:
        await context.close()


app = FastAPI(
    title="TeeTimes",
    description="Real-time golf tee time aggregator across booking platforms",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"errors": jsonable_encoder(exc.errors())})


app.include_router(health.router)
app.include_router(courses.router)
app.include_router(tee_times.router)
app.include_router(jobs.router)


def run() -> None:
    """
    Serve the application with uvicorn.

    Exits 0 after a signal-driven graceful shutdown and 1 when startup
    failed (cache or headless browser could not be initialized).
    """
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    server = uvicorn.Server(
        uvicorn.Config(app, host=settings.host, port=settings.port, lifespan="on")
    )
    server.run()
    if not server.started:
        logger.error("Failed to start server")
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    run()
