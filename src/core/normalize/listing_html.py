"""
Generic listing extractor (HTML page → ExtractedFields).

Site-agnostic and best-effort:
  - title from <title>, falling back to <h1> for placeholder titles
  - up to 12 gallery images (og:image first, then known gallery selectors)
  - price, walk minutes/station, construction year, area, tenure, units, fees,
    parking status and renovation flags from the visible text (listing_text)
Fields it cannot determine stay unset; site extractors refine the result later.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from src.schemas.labels import (
    GALLERY_SELECTORS,
    IMAGE_URL_ATTRS,
    IMAGE_URL_BLOCKLIST,
    contains_any,
    is_placeholder_title,
)
from src.schemas.models import MAX_IMAGES, ExtractedFields, ListingDocument

from .dom import ParsedPage
from .listing_text import Found, run_text_rules

logger = logging.getLogger(__name__)

# ---------- Helpers ----------


def _attr_text(value: Any) -> str:
    # bs4 returns multi-valued attributes (rel on some tags) as lists
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return str(value) if value else ""


def resolve_title(page: ParsedPage) -> str:
    if is_placeholder_title(page.title):
        return page.heading() or page.title
    return page.title


def collect_images(page: ParsedPage) -> list[str]:
    images: list[str] = []

    def _add(src: str) -> None:
        if src.startswith("http") and src not in images and not contains_any(src, IMAGE_URL_BLOCKLIST):
            images.append(src)

    og = page.soup.find("meta", attrs={"property": "og:image"})
    if og is not None:
        _add(_attr_text(og.get("content")).strip())

    for selector in GALLERY_SELECTORS:
        if len(images) >= MAX_IMAGES:
            break
        for img in page.select(selector):
            src = next((_attr_text(img.get(a)).strip() for a in IMAGE_URL_ATTRS if img.get(a)), "")
            if src:
                _add(src)
            if len(images) >= MAX_IMAGES:
                break
    return images[:MAX_IMAGES]


# ---------- Page rules (need the DOM) ----------

PageRule = Callable[[ParsedPage, Found], None]


def _rule_title(page: ParsedPage, found: Found) -> None:
    title = resolve_title(page)
    if title:
        found["title"] = title


def _rule_images(page: ParsedPage, found: Found) -> None:
    images = collect_images(page)
    if images:
        found["images"] = images


PAGE_RULES: tuple[tuple[str, PageRule], ...] = (
    ("title", _rule_title),
    ("images", _rule_images),
)


def _validate(found: Found) -> ExtractedFields:
    try:
        return ExtractedFields.model_validate(found)
    except ValidationError as e:
        bad = {str(err["loc"][0]) for err in e.errors() if err.get("loc")}
        logger.debug("dropping invalid extracted fields %s", sorted(bad))
        return ExtractedFields.model_validate({k: v for k, v in found.items() if k not in bad or k == "url"})


# ---------- Public API ----------


def extract_generic(page: ParsedPage) -> ExtractedFields:
    """Run the page rules, then the text rules, on one parsed page."""
    found: Found = {"url": page.document.url}
    for name, rule in PAGE_RULES:
        try:
            rule(page, found)
        except Exception as exc:  # noqa: BLE001 - one bad field must not sink the rest
            logger.debug("page rule %s failed: %s", name, exc)

    run_text_rules(page.text, str(found.get("title", "")), found)
    return _validate(found)


def parse_listing_from_tree(document: ListingDocument | ParsedPage) -> ExtractedFields:
    """Convenience wrapper accepting either a raw document or an already parsed page."""
    page = document if isinstance(document, ParsedPage) else ParsedPage(document)
    return extract_generic(page)
