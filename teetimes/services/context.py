"""
Long-lived service context.

ServiceContext owns every shared resource (headless browser, cache store,
HTTP client) and the services built on top of them. It is created once in
the application lifespan, stored on app.state, and handed to routes through
the get_context dependency.
"""

import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass

import httpx
from fastapi import Request

from teetimes.config import Settings
from teetimes.providers.factory import StrategyFactory
from teetimes.providers.renderer import BrowserRenderer
from teetimes.services.aggregator import TeeTimeAggregator
from teetimes.services.cache_service import CacheStore, create_cache_store
from teetimes.services.course_registry import CourseRegistry, load_registry
from teetimes.services.dispatcher import TeeTimeDispatcher
from teetimes.services.scheduler import CacheWarmScheduler

logger = logging.getLogger(__name__)

HTTP_CONNECTION_LIMITS = httpx.Limits(max_connections=20, max_keepalive_connections=10)


@dataclass
class ServiceContext:
    settings: Settings
    registry: CourseRegistry
    cache: CacheStore
    http_client: httpx.AsyncClient
    renderer: BrowserRenderer | None
    dispatcher: TeeTimeDispatcher
    aggregator: TeeTimeAggregator
    scheduler: CacheWarmScheduler

    @classmethod
    def build(
        cls,
        settings: Settings,
        registry: CourseRegistry,
        cache: CacheStore,
        http_client: httpx.AsyncClient,
        renderer: BrowserRenderer | None,
    ) -> "ServiceContext":
        """Wire the services around already-initialized resources."""
        strategies = StrategyFactory(
            http_client,
            renderer,
            fallback_policy=settings.fallback_policy,
            upstream_timeout=settings.upstream_timeout_seconds,
        )
        dispatcher = TeeTimeDispatcher(cache, strategies, ttl_seconds=settings.cache_ttl_seconds)
        return cls(
            settings=settings,
            registry=registry,
            cache=cache,
            http_client=http_client,
            renderer=renderer,
            dispatcher=dispatcher,
            aggregator=TeeTimeAggregator(
                dispatcher, registry, max_concurrency=settings.max_concurrent_fetches
            ),
            scheduler=CacheWarmScheduler(
                dispatcher,
                registry,
                cache=cache,
                interval_minutes=settings.warm_interval_minutes,
                timezone=settings.timezone,
                max_concurrency=settings.max_concurrent_fetches,
            ),
        )

    @classmethod
    async def create(cls, settings: Settings) -> "ServiceContext":
        """
        Initialize all resources. Raises CacheUnavailable or RendererUnavailable
        if the cache or the headless browser cannot be started; anything already
        opened is released before the error propagates.
        """
        registry = load_registry(settings.courses_file)
        logger.info(f"Course registry loaded with {len(registry)} course(s)")

        cache = await create_cache_store(settings.cache_url)
        http_client = httpx.AsyncClient(
            timeout=settings.upstream_timeout_seconds, limits=HTTP_CONNECTION_LIMITS
        )
        renderer: BrowserRenderer | None = None
        try:
            if settings.renderer_enabled:
                renderer = BrowserRenderer(
                    contexts=settings.renderer_contexts,
                    page_load_timeout=settings.page_load_timeout_seconds,
                    settle_seconds=settings.render_settle_seconds,
                    chrome_binary_path=settings.chrome_binary_path,
                    chromedriver_path=settings.chromedriver_path,
                )
                await renderer.start()
            else:
                logger.warning(
                    "Headless browser disabled (RENDERER_ENABLED=false). "
                    "Browser-rendered booking systems will return no tee times."
                )
        except BaseException:
            await http_client.aclose()
            await cache.close()
            raise

        return cls.build(settings, registry, cache, http_client, renderer)

    async def close(self) -> None:
        """Release resources: drain the scheduler first, then close the handles."""
        async with AsyncExitStack() as stack:
            stack.push_async_callback(self.cache.close)
            if self.renderer is not None:
                stack.push_async_callback(self.renderer.close)
            stack.push_async_callback(self.http_client.aclose)
            await self.scheduler.stop()
        logger.info("Service context closed")


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context
