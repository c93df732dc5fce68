import httpx

from teetimes.config import FallbackPolicy
from teetimes.models.schemas import BookingSystem
from teetimes.providers.base import ScraperStrategy
from teetimes.providers.chronogolf_provider import ChronogolfProvider
from teetimes.providers.fallback_provider import FallbackProvider
from teetimes.providers.foreup_provider import ForeUpProvider
from teetimes.providers.golfnow_provider import GolfNowProvider
from teetimes.providers.http_provider import DEFAULT_TIMEOUT_SECONDS
from teetimes.providers.renderer import BrowserRenderer


class StrategyFactory:
    """
    Builds one scraper per booking system around the shared resources.

    Booking systems without a scraper, including BookingSystem.UNKNOWN, get
    the fallback strategy; lookup never fails.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        renderer: BrowserRenderer | None,
        fallback_policy: FallbackPolicy = FallbackPolicy.EMPTY,
        upstream_timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._fallback = FallbackProvider(fallback_policy)
        self._strategies: dict[BookingSystem, ScraperStrategy] = {
            BookingSystem.GOLFNOW: GolfNowProvider(renderer),
            BookingSystem.FOREUP: ForeUpProvider(client, upstream_timeout),
            BookingSystem.CHRONOGOLF: ChronogolfProvider(client, upstream_timeout),
            BookingSystem.UNKNOWN: self._fallback,
        }

    def get_strategy(self, booking_system: BookingSystem) -> ScraperStrategy:
        return self._strategies.get(booking_system, self._fallback)
