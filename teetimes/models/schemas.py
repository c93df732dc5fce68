from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class BookingSystem(str, Enum):
    GOLFNOW = "golfnow"
    FOREUP = "foreup"
    CHRONOGOLF = "chronogolf"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "BookingSystem":
        return cls.UNKNOWN


class CamelModel(BaseModel):
    """Base model that reads snake_case or camelCase and emits camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Course(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    booking_system: BookingSystem = BookingSystem.UNKNOWN
    booking_url: str = Field("", description="Opaque locator of the course on its booking system")
    city: str = ""


class TeeTimeSlot(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    time: str = Field(..., min_length=1, description="Display label, e.g. '7:30 AM'")
    price: Decimal | None = Field(default=None, ge=0)
    available_slots: int = Field(default=4, ge=0)
    holes: Literal[9, 18] = 18
    is_hot_deal: bool = False

    @field_serializer("price", when_used="json")
    def _price_as_number(self, price: Decimal | None) -> float | None:
        return float(price) if price is not None else None


class CourseTeeTimes(CamelModel):
    course: Course
    tee_times: list[TeeTimeSlot] = Field(default_factory=list)


class TeeTimesResponse(CamelModel):
    course: Course
    target_date: date = Field(..., alias="date")
    tee_times: list[TeeTimeSlot]


class RefreshRequest(CamelModel):
    target_date: date | None = Field(None, alias="date")


class RefreshResponse(TeeTimesResponse):
    message: str = "Cache refreshed"


class SearchFilters(CamelModel):
    max_price: Decimal | None = None
    min_slots: int = 1

    @field_serializer("max_price", when_used="json")
    def _max_price_as_number(self, max_price: Decimal | None) -> float | None:
        return float(max_price) if max_price is not None else None


class SearchResponse(CamelModel):
    target_date: date = Field(..., alias="date")
    filters: SearchFilters
    results: list[CourseTeeTimes]


class BatchResponse(CamelModel):
    target_date: date = Field(..., alias="date")
    results: list[CourseTeeTimes]


class WarmRunResult(CamelModel):
    started_at: datetime
    total: int = 0
    succeeded: int = 0
    failed: int = 0
