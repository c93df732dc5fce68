"""
Normalization of raw upstream tee time records into TeeTimeSlot.

Every booking platform names its fields differently, and most of them omit
fields at random. A FieldMap lists, per canonical field, the source names to
try in order; the first one that is present and not None wins. Optional
fields fall back to fixed defaults and a record is only dropped when it has
no usable time label.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError

from teetimes.models.schemas import TeeTimeSlot

logger = logging.getLogger(__name__)

DEFAULT_AVAILABLE_SLOTS = 4
DEFAULT_HOLES = 18
VALID_HOLES = (9, 18)

_INTEGER = re.compile(r"-?\d+")
_PRICE_CHARS = re.compile(r"[^\d.]")


@dataclass(frozen=True)
class FieldMap:
    """Ordered candidate source-field names for each canonical slot field."""

    time: tuple[str, ...] = ("time",)
    price: tuple[str, ...] = ("price",)
    available_slots: tuple[str, ...] = ("available_slots",)
    holes: tuple[str, ...] = ("holes",)
    # Boolean source fields, a hot deal when any is exactly True
    hot_deal_flags: tuple[str, ...] = ()
    # Free-text source fields searched for hot_deal_keywords
    hot_deal_text: tuple[str, ...] = ()
    hot_deal_keywords: tuple[str, ...] = ()
    # Source field holding a list of CSS classes, checked for hot_deal_markers
    classes_field: str = "classes"
    hot_deal_markers: tuple[str, ...] = ()


def first_present(record: Mapping[str, Any], candidates: Iterable[str]) -> Any:
    """Return the value of the first candidate present in the record and not None."""
    for name in candidates:
        value = record.get(name)
        if value is not None:
            return value
    return None


def parse_price(value: Any) -> Decimal | None:
    """
    Coerce a raw price to a non-negative Decimal.

    Numbers are used as-is. Strings use their first whitespace-separated token
    that contains a digit, stripped of everything but digits and the decimal
    point ("$1,200.50" -> 1200.50). Anything unparseable yields None, never 0.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            price = Decimal(str(value))
        except InvalidOperation:
            return None
        return price if price.is_finite() and price >= 0 else None

    token = next((t for t in str(value).split() if any(c.isdigit() for c in t)), None)
    if token is None:
        return None
    try:
        price = Decimal(_PRICE_CHARS.sub("", token))
    except InvalidOperation:
        return None
    return price if price.is_finite() else None


def parse_int(value: Any, default: int) -> int:
    """Coerce a raw count to a non-negative int, falling back to default."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value >= 0 else default
    if isinstance(value, (float, Decimal)):
        try:
            number = int(value)
        except (ValueError, OverflowError):
            return default
        return number if number >= 0 else default

    match = _INTEGER.search(str(value))
    if match is None:
        return default
    number = int(match.group())
    return number if number >= 0 else default


def parse_holes(value: Any) -> int:
    holes = parse_int(value, DEFAULT_HOLES)
    return holes if holes in VALID_HOLES else DEFAULT_HOLES


def is_hot_deal(record: Mapping[str, Any], field_map: FieldMap) -> bool:
    if any(record.get(name) is True for name in field_map.hot_deal_flags):
        return True

    classes = record.get(field_map.classes_field) or ()
    if isinstance(classes, str):
        classes = classes.split()
    if any(marker in classes for marker in field_map.hot_deal_markers):
        return True

    text = first_present(record, field_map.hot_deal_text)
    if text is not None and field_map.hot_deal_keywords:
        lowered = str(text).lower()
        for keyword in field_map.hot_deal_keywords:
            if re.search(rf"\b{re.escape(keyword.lower())}\b", lowered):
                return True
    return False


def normalize_record(record: Mapping[str, Any], field_map: FieldMap) -> TeeTimeSlot | None:
    """Map one raw record to a TeeTimeSlot, or None when it has no time label."""
    raw_time = first_present(record, field_map.time)
    time_label = str(raw_time).strip() if raw_time is not None else ""
    if not time_label:
        return None

    return TeeTimeSlot(
        time=time_label,
        price=parse_price(first_present(record, field_map.price)),
        available_slots=parse_int(
            first_present(record, field_map.available_slots), DEFAULT_AVAILABLE_SLOTS
        ),
        holes=parse_holes(first_present(record, field_map.holes)),
        is_hot_deal=is_hot_deal(record, field_map),
    )


def normalize_records(records: Iterable[Any], field_map: FieldMap) -> list[TeeTimeSlot]:
    """
    Normalize a batch of raw records, preserving their order.

    Records that are not mappings, lack a time label, or still fail model
    validation are skipped; the rest of the batch is always processed.
    """
    slots: list[TeeTimeSlot] = []
    skipped = 0
    for record in records:
        if not isinstance(record, Mapping):
            skipped += 1
            continue
        try:
            slot = normalize_record(record, field_map)
        except ValidationError as e:
            logger.debug(f"Skipping invalid tee time record {record!r}: {e}")
            slot = None
        if slot is None:
            skipped += 1
            continue
        slots.append(slot)

    if skipped:
        logger.debug(f"Skipped {skipped} tee time record(s) without a usable time")
    return slots
