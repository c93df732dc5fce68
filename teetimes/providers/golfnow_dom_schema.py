"""
Centralized DOM schema for GolfNow facility search pages.

All CSS selectors used by GolfNowProvider are defined here as named
constants. GolfNow ships several layouts of the same tee sheet, so each
element is matched by a tuple of equivalent selectors; they are joined into
one CSS selector group when queried.

When GolfNow changes its markup, update selectors ONLY in this file.
"""

from dataclasses import dataclass


def selector_group(selectors: tuple[str, ...]) -> str:
    """Join equivalent selectors into a single CSS selector group."""
    return ", ".join(selectors)


@dataclass(frozen=True)
class SlotSelectors:
    """Selectors identifying one tee time slot and its fields."""

    # Slot containers (card layout, table layout, data-attribute layout)
    containers: tuple[str, ...] = (
        ".tee-time-card",
        ".teetime-row",
        "[data-teetime-id]",
    )
    time: tuple[str, ...] = (".time", ".teetime-time")
    price: tuple[str, ...] = (".price", ".rate")
    available: tuple[str, ...] = (".slots", ".available")


@dataclass(frozen=True)
class HotDealMarkers:
    """Markers flagging a discounted slot."""

    classes: tuple[str, ...] = ("hot-deal",)
    keywords: tuple[str, ...] = ("hot",)


@dataclass(frozen=True)
class GolfNowDOMSchema:
    """Top-level container grouping all selector categories."""

    SLOT: SlotSelectors = SlotSelectors()
    HOT_DEAL: HotDealMarkers = HotDealMarkers()


# Single import point: `from teetimes.providers.golfnow_dom_schema import DOM`
DOM = GolfNowDOMSchema()
