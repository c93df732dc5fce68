import re
from datetime import date
from typing import Any

from teetimes.models.schemas import BookingSystem
from teetimes.providers.http_provider import DirectApiProvider
from teetimes.services.normalizer import FieldMap

FOREUP_FIELDS = FieldMap(
    time=("time", "start_time"),
    price=("green_fee", "price"),
    available_slots=("available_spots", "max_players"),
    holes=("holes",),
    hot_deal_flags=("special", "is_special"),
)


class ForeUpProvider(DirectApiProvider):
    """
    Scraper for ForeUP booking widgets.

    Booking URLs look like .../index.php/booking/<booking_class>/<schedule_id>;
    both ids are passed to the public times endpoint, which answers with a
    JSON array of slots.
    """

    booking_system = BookingSystem.FOREUP
    API_URL = "https://foreupsoftware.com/index.php/api/booking/times"

    locator_pattern = re.compile(r"booking/(\d+)/(\d+)")
    field_map = FOREUP_FIELDS

    def build_request(
        self, identifiers: tuple[str, ...], target_date: date
    ) -> tuple[str, dict[str, Any]]:
        booking_class, schedule_id = identifiers
        params = {
            "time": "all",
            "date": target_date.isoformat(),
            "holes": "all",
            "players": "0",
            "booking_class": booking_class,
            "schedule_id": schedule_id,
            "schedule_ids[]": schedule_id,
            "specials_only": "0",
            "api_key": "no_limits",
        }
        return self.API_URL, params

    def extract_records(self, payload: Any) -> list[Any]:
        return payload if isinstance(payload, list) else []
