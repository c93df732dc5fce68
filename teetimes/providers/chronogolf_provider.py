import re
from datetime import date
from typing import Any

from teetimes.models.schemas import BookingSystem
from teetimes.providers.http_provider import DirectApiProvider
from teetimes.services.normalizer import FieldMap

CHRONOGOLF_FIELDS = FieldMap(
    time=("start_time",),
    price=("green_fee",),
    available_slots=("nb_bookable_slots",),
    holes=("nb_holes",),
    hot_deal_flags=("is_deal",),
)


class ChronogolfProvider(DirectApiProvider):
    """Scraper for Chronogolf marketplace clubs, addressed by the slug in /course/<slug>."""

    booking_system = BookingSystem.CHRONOGOLF
    API_URL_TEMPLATE = "https://www.chronogolf.com/marketplace/clubs/{slug}/tee-times"

    locator_pattern = re.compile(r"course/([^/?#]+)")
    field_map = CHRONOGOLF_FIELDS

    def build_request(
        self, identifiers: tuple[str, ...], target_date: date
    ) -> tuple[str, dict[str, Any]]:
        (slug,) = identifiers
        params = {"date": target_date.isoformat(), "nb_holes": 18}
        return self.API_URL_TEMPLATE.format(slug=slug), params

    def extract_records(self, payload: Any) -> list[Any]:
        if not isinstance(payload, dict):
            return []
        tee_times = payload.get("tee_times")
        return tee_times if isinstance(tee_times, list) else []
