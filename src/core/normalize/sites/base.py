# src/core/normalize/sites/base.py
"""
Site extractor contract and registry.

A site extractor refines the generic result for one listing site:

    class SiteExtractor:
        hosts: tuple[str, ...]
        def matches(url) -> bool
        def detail_url(page) -> str | None      # optional follow-up page
        def refine(page, base) -> Patch          # partial field values

Invariants
----------
- The generic result is always the base; a patch only refines it.
- Patch values win over generic values, but a missing/None patch value never
  erases a generic one. Fees merge key by key.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse

from pydantic import ValidationError

from src.core.normalize.dom import ParsedPage
from src.core.normalize.listing_text import find_area, find_price
from src.schemas.models import ExtractedFields

logger = logging.getLogger(__name__)

Patch = dict[str, Any]

_CELL_YEN_RE = re.compile(r"[0-9,万.]+円")
_CELL_YEAR_RE = re.compile(r"([0-9]{4})年")
_CELL_NUMBER_RE = re.compile(r"[0-9]+(?:\.[0-9]+)?")


# -----------------------
# Cell parsers shared by sites
# -----------------------


def price_from_cell(value: str) -> str | None:
    price = find_price(value)
    if price:
        return price
    m = _CELL_YEN_RE.search(value)
    return m.group(0) if m else None


def year_from_cell(value: str) -> int | None:
    m = _CELL_YEAR_RE.search(value)
    return int(m.group(1)) if m else None


def area_from_cell(value: str, *, require_unit: bool = True) -> float | None:
    if require_unit:
        return find_area(value)
    m = _CELL_NUMBER_RE.search(value)
    return float(m.group(0)) if m else None


# -----------------------
# Contract
# -----------------------


class SiteExtractor(ABC):
    """Refines ExtractedFields from a site's own label/value structures."""

    name: str = "site"
    hosts: tuple[str, ...] = ()

    def matches(self, url: str) -> bool:
        host = (urlparse(url).hostname or "").lower()
        return any(host == h or host.endswith("." + h) for h in self.hosts)

    def detail_url(self, page: ParsedPage) -> str | None:
        """URL of a more detailed page to refine from, when `page` is only an overview."""
        return None

    @abstractmethod
    def refine(self, page: ParsedPage, base: ExtractedFields) -> Patch: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(hosts={self.hosts!r})"


# -----------------------
# Registry
# -----------------------

_REGISTRY: list[SiteExtractor] = []


def register(extractor: SiteExtractor) -> SiteExtractor:
    """Add an extractor; later registrations for the same name replace earlier ones."""
    _REGISTRY[:] = [e for e in _REGISTRY if e.name != extractor.name]
    _REGISTRY.append(extractor)
    return extractor


def registered_sites() -> tuple[SiteExtractor, ...]:
    return tuple(_REGISTRY)


def find_site_extractor(url: str) -> SiteExtractor | None:
    return next((e for e in _REGISTRY if e.matches(url)), None)


# -----------------------
# Patch application
# -----------------------


def apply_patch(base: ExtractedFields, patch: Mapping[str, Any]) -> ExtractedFields:
    """Overlay non-None patch values on the determined fields of `base`."""
    data = base.model_dump(exclude_unset=True, exclude_none=True)
    for key, value in patch.items():
        if value is None:
            continue
        if key == "fees":
            fees = dict(data.get("fees") or {})
            fees.update({k: v for k, v in dict(value).items() if v is not None})
            data["fees"] = fees
        else:
            data[key] = value

    try:
        return ExtractedFields.model_validate(data)
    except ValidationError as e:
        logger.warning("discarding site patch that failed validation: %s", e.errors())
        return base
