from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from teetimes.models.schemas import BookingSystem, Course, TeeTimeSlot


class FailureKind(str, Enum):
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    RENDER_TIMEOUT = "render_timeout"
    LOCATOR_PARSE_ERROR = "locator_parse_error"
    RENDERER_UNAVAILABLE = "renderer_unavailable"


@dataclass
class FetchResult:
    success: bool
    payload: Any = None
    failure: FailureKind | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, payload: Any) -> "FetchResult":
        return cls(success=True, payload=payload)

    @classmethod
    def failed(cls, failure: FailureKind, error_message: str) -> "FetchResult":
        return cls(success=False, failure=failure, error_message=error_message)


class ScraperStrategy(ABC):
    """Abstract base class for per-booking-system tee time scrapers."""

    booking_system: BookingSystem = BookingSystem.UNKNOWN

    @abstractmethod
    async def fetch_raw(self, course: Course, target_date: date) -> FetchResult:
        """
        Fetch the raw tee sheet for a course and date.

        Must not raise: transport errors, timeouts and malformed locators are
        reported as a failed FetchResult.
        """
        pass

    @abstractmethod
    def parse(self, payload: Any) -> list[TeeTimeSlot]:
        """Normalize a raw payload, dropping records without a time."""
        pass
