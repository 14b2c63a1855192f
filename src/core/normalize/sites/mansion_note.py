# src/core/normalize/sites/mansion_note.py
from __future__ import annotations

import logging
from urllib.parse import urljoin

from bs4.element import Tag

from src.core.normalize.dom import ParsedPage, lookup
from src.core.normalize.numbers import first_int, parse_japanese_number
from src.schemas.labels import LABEL_AREA, LABEL_BUILT, LABEL_PARKING, LABEL_REPAIR, LABEL_UNITS
from src.schemas.models import ExtractedFields

from .base import Patch, SiteExtractor, area_from_cell, register, year_from_cell

logger = logging.getLogger(__name__)

_HOUSE_PATH = "/house"


class MansionNoteExtractor(SiteExtractor):
    """Mansion Note building pages; unit details sit behind the building's "/house" tab."""

    name = "mansion_note"
    hosts = ("mansion-note.com",)

    def detail_url(self, page: ParsedPage) -> str | None:
        if _HOUSE_PATH in page.url:
            return None
        link = page.soup.select_one(f'a[href*="{_HOUSE_PATH}"]')
        if isinstance(link, Tag) and link.get("href"):
            return urljoin(page.url, str(link["href"]))
        return None

    def refine(self, page: ParsedPage, base: ExtractedFields) -> Patch:
        table = page.row_pairs()
        patch: Patch = {}
        fees: dict[str, float] = {}

        management = lookup(table, "管理費等", "管理費")
        if management:
            fees["management"] = parse_japanese_number(management)
        repair = lookup(table, LABEL_REPAIR, "修繕")
        if repair:
            fees["repair"] = parse_japanese_number(repair)
        parking = lookup(table, LABEL_PARKING)
        if parking:
            fees["parking"] = parse_japanese_number(parking)
            patch["parking_status"] = parking.strip()

        units = lookup(table, LABEL_UNITS)
        if units:
            patch["units"] = first_int(units)

        area = lookup(table, LABEL_AREA)
        if area:
            patch["area"] = area_from_cell(area)

        built = lookup(table, LABEL_BUILT, "完成時期")
        if built:
            patch["year_built"] = year_from_cell(built)

        if fees:
            patch["fees"] = fees
        logger.info(
            "mansion note extraction: management=%s repair=%s area=%s",
            fees.get("management"),
            fees.get("repair"),
            patch.get("area"),
        )
        return patch


register(MansionNoteExtractor())
