# src/core/normalize/sites/homes.py
from __future__ import annotations

import logging
import re

from src.core.normalize.dom import ParsedPage, lookup
from src.schemas.labels import LABEL_ACCESS, LABEL_AREA, LABEL_BUILT, LABEL_PRICE, WALK_RE
from src.schemas.models import PRICE_PLACEHOLDER, ExtractedFields

from .base import Patch, SiteExtractor, area_from_cell, price_from_cell, register, year_from_cell

logger = logging.getLogger(__name__)

_ACCESS_RE = re.compile(rf"([^\s]+?)\s*{WALK_RE}\s*([0-9]+)分")


class HomesExtractor(SiteExtractor):
    """
    LIFULL HOME'S: details live in both `<dl>` lists and `<table>` rows.
    Only fills station/minute/price/area gaps; the construction year always wins.
    """

    name = "homes"
    hosts = ("homes.co.jp",)

    def refine(self, page: ParsedPage, base: ExtractedFields) -> Patch:
        table = {**page.definition_pairs(), **page.row_pairs()}
        patch: Patch = {}

        access = lookup(table, LABEL_ACCESS)
        if access and (base.station is None or base.station_minute is None):
            m = _ACCESS_RE.search(access)
            if m:
                if base.station is None:
                    patch["station"] = m.group(1).strip()
                if base.station_minute is None:
                    patch["station_minute"] = int(m.group(2))
            elif base.station is None:
                patch["station"] = access.split("\n")[0].strip()

        price = lookup(table, LABEL_PRICE)
        if price and base.price == PRICE_PLACEHOLDER:
            patch["price"] = price_from_cell(price)

        area = lookup(table, LABEL_AREA)
        if area and base.area is None:
            patch["area"] = area_from_cell(area)

        built = lookup(table, LABEL_BUILT)
        if built:
            patch["year_built"] = year_from_cell(built)

        logger.debug("homes table keys=%s patch=%s", sorted(table), patch)
        return patch


register(HomesExtractor())
