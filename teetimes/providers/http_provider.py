"""
Shared plumbing for booking systems that expose a JSON endpoint.

Subclasses describe how to read the course locator, which URL and query to
call, and where the records sit in the response body; fetching, error
conversion and normalization live here.
"""

import logging
import re
from abc import abstractmethod
from datetime import date
from typing import Any

import httpx

from teetimes.exceptions import LocatorParseError
from teetimes.models.schemas import Course, TeeTimeSlot
from teetimes.providers.base import FailureKind, FetchResult, ScraperStrategy
from teetimes.services.normalizer import FieldMap, normalize_records

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

API_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
    "X-Requested-With": "XMLHttpRequest",
}


class DirectApiProvider(ScraperStrategy):
    """Base class for scrapers that call a booking system's JSON API directly."""

    locator_pattern: re.Pattern[str]
    field_map: FieldMap

    def __init__(
        self, client: httpx.AsyncClient, timeout: float = DEFAULT_TIMEOUT_SECONDS
    ) -> None:
        self._client = client
        self._timeout = timeout

    def parse_locator(self, booking_url: str) -> tuple[str, ...]:
        """Extract the identifiers encoded in a course's booking URL."""
        match = self.locator_pattern.search(booking_url)
        if not match:
            raise LocatorParseError(
                f"{self.booking_system.value} locator not recognized: {booking_url!r}"
            )
        return match.groups()

    @abstractmethod
    def build_request(
        self, identifiers: tuple[str, ...], target_date: date
    ) -> tuple[str, dict[str, Any]]:
        """Return the endpoint URL and query parameters for a tee sheet request."""
        pass

    @abstractmethod
    def extract_records(self, payload: Any) -> list[Any]:
        pass

    async def fetch_raw(self, course: Course, target_date: date) -> FetchResult:
        try:
            identifiers = self.parse_locator(course.booking_url)
        except LocatorParseError as e:
            return FetchResult.failed(FailureKind.LOCATOR_PARSE_ERROR, str(e))

        url, params = self.build_request(identifiers, target_date)
        try:
            response = await self._client.get(
                url, params=params, headers=API_HEADERS, timeout=self._timeout
            )
            response.raise_for_status()
            return FetchResult.ok(response.json())
        except httpx.TimeoutException as e:
            return FetchResult.failed(
                FailureKind.UPSTREAM_UNAVAILABLE,
                f"{self.booking_system.value} request timed out after {self._timeout:.0f}s: {e!r}",
            )
        except httpx.HTTPStatusError as e:
            return FetchResult.failed(
                FailureKind.UPSTREAM_UNAVAILABLE,
                f"{self.booking_system.value} returned HTTP {e.response.status_code}",
            )
        except httpx.HTTPError as e:
            return FetchResult.failed(
                FailureKind.UPSTREAM_UNAVAILABLE,
                f"{self.booking_system.value} request failed: {e!r}",
            )
        except ValueError as e:
            return FetchResult.failed(
                FailureKind.UPSTREAM_UNAVAILABLE,
                f"{self.booking_system.value} returned invalid JSON: {e}",
            )

    def parse(self, payload: Any) -> list[TeeTimeSlot]:
        return normalize_records(self.extract_records(payload), self.field_map)
