# src/core/normalize/listing_text.py


"""
Deterministic text heuristics for Japanese listing pages (visible text → field values).

Each finder is independent and returns None when its pattern does not match.
TEXT_RULES fixes the order; listing_html runs them after the title and image passes.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime
from typing import Any

from src.schemas.labels import (
    ACCESS_LABEL_RE,
    FREEHOLD_TERM,
    LEASEHOLD_TERM,
    PARKING_AVAILABILITY_TERMS,
    RENOVATION_TERMS,
    WALK_RE,
    contains_any,
)
from src.schemas.models import FEE_KEYS, ExtractedFields

from .numbers import parse_japanese_number

logger = logging.getLogger(__name__)

# ---------- Regex tables ----------

_YEN_AMOUNT = r"(?:[0-9,]+億)?[0-9,]+万円|[0-9,]+億円"
_PRICE_LABELED_RE = re.compile(rf"価格.*?({_YEN_AMOUNT})")
_PRICE_RE = re.compile(rf"({_YEN_AMOUNT})")
_MONTHLY_RE = re.compile(r"月々*.*?([0-9,]+円)")

_TITLE_STATION_RE = re.compile(rf"([^\s|｜,、]+?駅)\s*{WALK_RE}\s*([0-9]+)分")
_WALK_MINUTES_RE = re.compile(r"徒歩\s*([0-9]+)分")
_WALK_MINUTES_SHORT_RE = re.compile(r"歩\s*([0-9]+)分")
_STATION_LOOKBACK = 50
_TRAILING_PARTIAL_RE = re.compile(r"徒$")

_YEAR_LABELED_RE = re.compile(r"(?:築年月|竣工|建築).*?([0-9]{4})")
_YEAR_TOKEN_RE = re.compile(r"([0-9]{4})年")
_AGE_RE = re.compile(r"築([0-9]+)年")

_AREA_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)\s*(?:m²|㎡|平米|m2)")
_UNITS_RE = re.compile(r"総戸数.*?([0-9]+)戸")

_FEE_RES: dict[str, re.Pattern[str]] = {
    "management": re.compile(r"管理費.*?([0-9,万.]+)円"),
    "repair": re.compile(r"修繕.*?([0-9,万.]+)円"),
    "parking": re.compile(r"駐車場.*?([0-9,万.]+)円"),
}
_PARKING_STATUS_RE = re.compile(
    r"駐車場[:：\s]*([^。\n]*?(?:" + "|".join(PARKING_AVAILABILITY_TERMS) + r")[^。\n]*)"
)

# ---------- Finders ----------


def find_price(text: str) -> str | None:
    m = _PRICE_LABELED_RE.search(text) or _PRICE_RE.search(text)
    return m.group(1) if m else None


def find_monthly_payment(text: str) -> str | None:
    m = _MONTHLY_RE.search(text)
    return m.group(1) if m else None


def find_station_in_title(title: str) -> tuple[str, int] | None:
    m = _TITLE_STATION_RE.search(title or "")
    if not m:
        return None
    return m.group(1).strip(), int(m.group(2))


def find_station_in_body(text: str) -> tuple[str | None, int | None]:
    """
    Walk minutes from the body, plus the access line right before them.

    The station candidate is the last non-empty line of the 50 characters that
    precede the match, minus access labels and a dangling '徒'.
    """
    m = _WALK_MINUTES_RE.search(text) or _WALK_MINUTES_SHORT_RE.search(text)
    if m is None:
        return None, None

    minute = int(m.group(1))
    station: str | None = None
    if m.start() > _STATION_LOOKBACK:
        prefix = text[m.start() - _STATION_LOOKBACK : m.start()].strip()
        lines = [ln for ln in prefix.split("\n") if ln.strip()]
        if lines:
            candidate = ACCESS_LABEL_RE.sub("", lines[-1].strip()).strip()
            candidate = _TRAILING_PARTIAL_RE.sub("", candidate).strip()
            if len(candidate) > 2:
                station = candidate
    return station, minute


def find_year_built(text: str, *, current_year: int | None = None) -> int | None:
    """
    Construction year, in order of preference:
      1) a year next to 築年月/竣工/建築
      2) the earliest NNNN年 token in (1900, current year]
      3) current year - N for 築N年
    Renovation and inspection years also appear on pages; the earliest one is
    taken as the original construction year.
    """
    this_year = current_year or datetime.now().year

    labeled = _YEAR_LABELED_RE.search(text)
    if labeled:
        year = int(labeled.group(1))
        if 1900 < year <= this_year:
            return year

    years = [int(y) for y in _YEAR_TOKEN_RE.findall(text)]
    valid = [y for y in years if 1900 < y <= this_year]
    if valid:
        return min(valid)

    age = _AGE_RE.search(text)
    if age:
        return this_year - int(age.group(1))
    return None


def find_area(text: str) -> float | None:
    m = _AREA_RE.search(text)
    return float(m.group(1)) if m else None


def is_freehold(text: str) -> bool:
    # A leasehold mention next to a freehold one is usually a legal disclaimer.
    return not (LEASEHOLD_TERM in text and FREEHOLD_TERM not in text)


def find_units(text: str) -> int | None:
    m = _UNITS_RE.search(text)
    return int(m.group(1)) if m else None


def find_fees(text: str) -> dict[str, float]:
    fees: dict[str, float] = {}
    for key in FEE_KEYS:
        m = _FEE_RES[key].search(text)
        if m:
            fees[key] = parse_japanese_number(m.group(1))
    return fees


def find_parking_status(text: str) -> str | None:
    m = _PARKING_STATUS_RE.search(text)
    return m.group(1).strip() if m else None


def is_renovated(text: str) -> bool:
    return contains_any(text, RENOVATION_TERMS)


# ---------- Labeled rules ----------
#
# A rule reads the visible text (and the resolved title) and writes whatever it
# determined into `found`. Rules run in order; a rule that raises is skipped.

Found = dict[str, Any]
TextRule = Callable[[str, str, Found], None]


def _rule_price(text: str, title: str, found: Found) -> None:
    # left unset when absent; the model default is the placeholder
    price = find_price(text)
    if price:
        found["price"] = price


def _rule_monthly_payment(text: str, title: str, found: Found) -> None:
    monthly = find_monthly_payment(text)
    if monthly:
        found["monthly_payment"] = monthly


def _rule_station(text: str, title: str, found: Found) -> None:
    from_title = find_station_in_title(title)
    if from_title:
        found["station"], found["station_minute"] = from_title
        return
    station, minute = find_station_in_body(text)
    if minute is not None:
        found["station_minute"] = minute
    if station:
        found["station"] = station


def _rule_year_built(text: str, title: str, found: Found) -> None:
    year = find_year_built(text)
    if year is not None:
        found["year_built"] = year


def _rule_area(text: str, title: str, found: Found) -> None:
    area = find_area(text)
    if area is not None:
        found["area"] = area


def _rule_tenure(text: str, title: str, found: Found) -> None:
    if LEASEHOLD_TERM in text or FREEHOLD_TERM in text:
        found["is_freehold"] = is_freehold(text)


def _rule_units(text: str, title: str, found: Found) -> None:
    units = find_units(text)
    if units is not None:
        found["units"] = units


def _rule_fees(text: str, title: str, found: Found) -> None:
    fees = find_fees(text)
    if fees:
        found["fees"] = fees


def _rule_parking_status(text: str, title: str, found: Found) -> None:
    status = find_parking_status(text)
    if status:
        found["parking_status"] = status


def _rule_renovated(text: str, title: str, found: Found) -> None:
    if is_renovated(text):
        found["renovated"] = True


TEXT_RULES: tuple[tuple[str, TextRule], ...] = (
    ("price", _rule_price),
    ("monthly_payment", _rule_monthly_payment),
    ("station", _rule_station),
    ("year_built", _rule_year_built),
    ("area", _rule_area),
    ("tenure", _rule_tenure),
    ("units", _rule_units),
    ("fees", _rule_fees),
    ("parking_status", _rule_parking_status),
    ("renovated", _rule_renovated),
)


def run_text_rules(text: str, title: str, found: Found) -> None:
    for name, rule in TEXT_RULES:
        try:
            rule(text, title, found)
        except Exception as exc:  # noqa: BLE001 - one bad field must not sink the rest
            logger.debug("text rule %s failed: %s", name, exc)


# ---------- Public API ----------


def parse_listing_from_text(text: str, *, url: str = "", title: str = "") -> ExtractedFields:
    """
    Text-only extraction (no images, no site tables) → ExtractedFields.
    Useful for pasted listing text; HTML goes through listing_html.parse_listing_from_tree.
    """
    found: Found = {"url": url, "title": title}
    run_text_rules(text, title, found)
    return ExtractedFields.model_validate(found)
