# src/core/normalize/__init__.py
from __future__ import annotations

from pathlib import Path

from src.schemas.models import ExtractedFields, ListingDocument

from .dom import ParsedPage, visible_text
from .listing_html import extract_generic, parse_listing_from_tree
from .listing_text import parse_listing_from_text
from .numbers import parse_japanese_number

PathLike = str | Path

__all__ = [
    "ParsedPage",
    "extract_generic",
    "parse_any_to_fields",
    "parse_japanese_number",
    "parse_listing_from_text",
    "parse_listing_from_tree",
    "visible_text",
]


def parse_any_to_fields(doc: PathLike, *, url: str = "") -> ExtractedFields:
    """
    Convenience facade for saved pages:
      - .html/.htm → parse_listing_from_tree
      - else       → parse_listing_from_text
    """
    p = Path(doc)
    source_url = url or p.resolve().as_uri()
    raw = p.read_text(encoding="utf-8", errors="ignore")
    if p.suffix.lower() in {".html", ".htm"}:
        return parse_listing_from_tree(ListingDocument(url=source_url, html=raw))
    return parse_listing_from_text(raw, url=source_url)
