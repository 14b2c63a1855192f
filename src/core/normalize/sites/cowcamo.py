# src/core/normalize/sites/cowcamo.py
"""
cowcamo article pages.

The article URL shows a story page; the numbers live on its ".../detail" page.
Details come from `<tr>` rows and `<dl>` lists, and fee labels that are laid
out as loose `<div>`/`<span>` pairs are recovered by a label heuristic: find the
shortest element whose text is just the label, take the next sibling's text
(or the parent's next sibling).
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin

from bs4.element import NavigableString, Tag

from src.core.normalize.dom import ParsedPage, lookup, visible_text
from src.core.normalize.numbers import first_int, parse_japanese_number
from src.schemas.labels import LABEL_MANAGEMENT, LABEL_PARKING, LABEL_REPAIR, LABEL_UNITS
from src.schemas.models import ExtractedFields

from .base import Patch, SiteExtractor, area_from_cell, register, year_from_cell

logger = logging.getLogger(__name__)

_DETAIL_SUFFIX = "/detail"
_SHORT_LINK_PATH = "/c/"
_DETAIL_LINK_TEXTS = ("間取り", "概要")
_LOOSE_LABELS = (LABEL_MANAGEMENT, LABEL_REPAIR, LABEL_PARKING)
_LABEL_TAGS = frozenset({"div", "span", "p", "dt", "th", "li", "label", "b"})
_WALK_MINUTES_RE = re.compile(r"徒歩(\d+)分")


def _is_label_text(text: str, label: str) -> bool:
    if not text:
        return False
    if text in (label, f"{label}：", f"{label}:"):
        return True
    return label in text and len(text) < len(label) + 3


def _loose_label_value(page: ParsedPage, label: str) -> str | None:
    for node in page.soup.find_all(string=re.compile(re.escape(label))):
        if not isinstance(node, NavigableString):
            continue
        # outermost ancestor first, matching document order
        candidates = [p for p in node.parents if isinstance(p, Tag) and p.name in _LABEL_TAGS]
        for el in reversed(candidates):
            if not _is_label_text(visible_text(el).strip(), label):
                continue
            nxt = el.find_next_sibling()
            if nxt is None and isinstance(el.parent, Tag):
                nxt = el.parent.find_next_sibling()
            return visible_text(nxt).strip() if isinstance(nxt, Tag) else None
    return None


class CowcamoExtractor(SiteExtractor):
    name = "cowcamo"
    hosts = ("cowcamo.jp",)

    def detail_url(self, page: ParsedPage) -> str | None:
        current = page.url
        if current.endswith(_DETAIL_SUFFIX):
            return None

        link = page.soup.select_one(f'a[href$="{_DETAIL_SUFFIX}"]')
        if isinstance(link, Tag) and link.get("href"):
            return urljoin(current, str(link["href"]))

        for a in page.soup.find_all("a", href=True):
            text = visible_text(a)
            if any(t in text for t in _DETAIL_LINK_TEXTS):
                return urljoin(current, str(a["href"]))

        if _SHORT_LINK_PATH not in current and _DETAIL_SUFFIX not in current:
            return current + ("detail" if current.endswith("/") else _DETAIL_SUFFIX)

        logger.warning("cowcamo: no detail link on %s and the URL shape is unknown", current)
        return None

    def detail_map(self, page: ParsedPage) -> dict[str, str]:
        table = {**page.row_pairs(), **page.definition_pairs()}
        for label in _LOOSE_LABELS:
            if label in table:
                continue
            value = _loose_label_value(page, label)
            if value is not None:
                table[label] = value
        return table

    def refine(self, page: ParsedPage, base: ExtractedFields) -> Patch:
        table = self.detail_map(page)
        patch: Patch = {}
        fees: dict[str, float] = {}

        management = lookup(table, LABEL_MANAGEMENT)
        if management:
            fees["management"] = parse_japanese_number(management)
        repair = lookup(table, LABEL_REPAIR)
        if repair:
            fees["repair"] = parse_japanese_number(repair)
        parking = lookup(table, LABEL_PARKING)
        if parking:
            fees["parking"] = parse_japanese_number(parking)
            patch["parking_status"] = parking

        units = lookup(table, LABEL_UNITS)
        if units:
            patch["units"] = first_int(units)

        built = lookup(table, "築年月", "竣工")
        if built:
            patch["year_built"] = year_from_cell(built)

        area = lookup(table, "専有面積", "面積")
        if area:
            patch["area"] = area_from_cell(area, require_unit=False)

        if base.station is None or base.station_minute is None:
            access = lookup(table, "交通", "最寄り駅", "アクセス")
            if access:
                patch["station"] = " ".join(access.split())
                m = _WALK_MINUTES_RE.search(access)
                if m:
                    patch["station_minute"] = int(m.group(1))

        if fees:
            patch["fees"] = fees
        logger.debug("cowcamo map keys=%s", sorted(table))
        logger.info(
            "cowcamo extraction: management=%s repair=%s station=%s",
            fees.get("management"),
            fees.get("repair"),
            patch.get("station", base.station),
        )
        return patch


register(CowcamoExtractor())
