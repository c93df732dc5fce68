import logging
from datetime import date
from typing import Any

from bs4 import BeautifulSoup, Tag

from teetimes.exceptions import RendererUnavailable, RenderTimeout, UpstreamUnavailable
from teetimes.models.schemas import BookingSystem, Course, TeeTimeSlot
from teetimes.providers.base import FailureKind, FetchResult, ScraperStrategy
from teetimes.providers.golfnow_dom_schema import DOM, selector_group
from teetimes.providers.renderer import BrowserRenderer
from teetimes.services.normalizer import FieldMap, normalize_records

logger = logging.getLogger(__name__)

GOLFNOW_FIELDS = FieldMap(
    time=("time",),
    price=("price",),
    available_slots=("slots",),
    hot_deal_text=("text",),
    hot_deal_keywords=DOM.HOT_DEAL.keywords,
    classes_field="classes",
    hot_deal_markers=DOM.HOT_DEAL.classes,
)


class GolfNowProvider(ScraperStrategy):
    """
    Browser-rendered scraper for GolfNow facility pages.

    GolfNow renders its tee sheet client side, so the page is loaded through
    the shared headless browser and the resulting DOM is parsed with
    BeautifulSoup against the selectors in golfnow_dom_schema.
    """

    booking_system = BookingSystem.GOLFNOW

    def __init__(self, renderer: BrowserRenderer | None) -> None:
        self._renderer = renderer

    def build_url(self, course: Course, target_date: date) -> str:
        separator = "&" if "?" in course.booking_url else "?"
        return f"{course.booking_url}{separator}date={target_date.isoformat()}"

    async def fetch_raw(self, course: Course, target_date: date) -> FetchResult:
        if self._renderer is None:
            return FetchResult.failed(
                FailureKind.RENDERER_UNAVAILABLE, "Headless browser is not running"
            )

        url = self.build_url(course, target_date)
        try:
            html = await self._renderer.render(
                url, wait_for=selector_group(DOM.SLOT.containers)
            )
        except RenderTimeout as e:
            return FetchResult.failed(FailureKind.RENDER_TIMEOUT, str(e))
        except RendererUnavailable as e:
            return FetchResult.failed(FailureKind.RENDERER_UNAVAILABLE, str(e))
        except UpstreamUnavailable as e:
            return FetchResult.failed(FailureKind.UPSTREAM_UNAVAILABLE, str(e))
        return FetchResult.ok(html)

    def parse(self, payload: Any) -> list[TeeTimeSlot]:
        if not isinstance(payload, str) or not payload:
            return []
        soup = BeautifulSoup(payload, "html.parser")
        return normalize_records(self.extract_records(soup), GOLFNOW_FIELDS)

    def extract_records(self, soup: BeautifulSoup) -> list[dict[str, Any]]:
        """
        Turn every slot-like node into a raw record of text fields.

        Layouts sometimes nest one matching container inside another (a
        [data-teetime-id] row inside a .tee-time-card); only the outermost
        match is kept so a slot is not reported twice.
        """
        nodes = soup.select(selector_group(DOM.SLOT.containers))
        matched = {id(node) for node in nodes}

        records: list[dict[str, Any]] = []
        for node in nodes:
            if any(id(parent) in matched for parent in node.parents):
                continue
            records.append(
                {
                    "time": self._field_text(node, DOM.SLOT.time),
                    "price": self._field_text(node, DOM.SLOT.price),
                    "slots": self._field_text(node, DOM.SLOT.available),
                    "classes": list(node.get("class") or []),
                    "text": node.get_text(" ", strip=True),
                }
            )
        return records

    def _field_text(self, node: Tag, selectors: tuple[str, ...]) -> str | None:
        element = node.select_one(selector_group(selectors))
        if element is None:
            return None
        return element.get_text(strip=True) or None
