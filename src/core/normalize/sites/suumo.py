# src/core/normalize/sites/suumo.py
from __future__ import annotations

import logging
import re

from src.core.normalize.dom import ParsedPage, lookup
from src.core.normalize.numbers import first_int, parse_japanese_number
from src.schemas.labels import (
    LABEL_ACCESS,
    LABEL_MANAGEMENT,
    LABEL_PARKING,
    LABEL_PRICE,
    LABEL_REPAIR,
    LABEL_UNITS,
    LEASEHOLD_HINT,
    RIGHTS_LABELS,
    WALK_RE,
)
from src.schemas.models import PRICE_PLACEHOLDER, ExtractedFields

from .base import Patch, SiteExtractor, price_from_cell, register

logger = logging.getLogger(__name__)

_ACCESS_LINE_RE = re.compile(rf"([^\s|｜]+?)\s*{WALK_RE}\s*([0-9]+)分")
_STATION_FALLBACK_LEN = 30


class SuumoExtractor(SiteExtractor):
    """SUUMO detail tables: every `<th>` label is followed by its `<td>` value."""

    name = "suumo"
    hosts = ("suumo.jp",)

    def refine(self, page: ParsedPage, base: ExtractedFields) -> Patch:
        table = page.sibling_pairs("th", "td")
        patch: Patch = {}
        fees: dict[str, float] = {}

        access = lookup(table, LABEL_ACCESS)
        if access:
            walk_lines = [ln for ln in access.split("\n") if "歩" in ln and "分" in ln]
            if walk_lines:
                m = _ACCESS_LINE_RE.search(walk_lines[0])
                if m:
                    patch["station"] = m.group(1).strip()
                    patch["station_minute"] = int(m.group(2))
                else:
                    patch["station"] = walk_lines[0].strip()[:_STATION_FALLBACK_LEN]

        price = lookup(table, LABEL_PRICE)
        if price and base.price == PRICE_PLACEHOLDER:
            patch["price"] = price_from_cell(price)

        rights = lookup(table, *RIGHTS_LABELS)
        if rights:
            patch["is_freehold"] = LEASEHOLD_HINT not in rights

        units = lookup(table, LABEL_UNITS)
        if units:
            patch["units"] = first_int(units)

        management = lookup(table, LABEL_MANAGEMENT)
        if management:
            fees["management"] = parse_japanese_number(management)
        repair = lookup(table, LABEL_REPAIR)
        if repair:
            fees["repair"] = parse_japanese_number(repair)
        parking = lookup(table, LABEL_PARKING)
        if parking:
            fees["parking"] = parse_japanese_number(parking)
            patch["parking_status"] = parking.strip()

        if fees:
            patch["fees"] = fees
        logger.debug("suumo table keys=%s patch=%s", sorted(table), patch)
        return patch


register(SuumoExtractor())
