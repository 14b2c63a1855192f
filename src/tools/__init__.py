"""
Listing tracker: tools package

Exports only modules that live under `src/tools`:
  - extract_listing / run_listing_extract_tool   (from .listing_extract)
  - PropertyService                              (from .property_service)

Anything outside `src/tools` (e.g., the store or the reconciliation merges)
should be imported directly from its own package, not re-exported here.
"""

from __future__ import annotations

from .listing_extract import extract_listing, run_listing_extract_tool
from .property_service import PropertyService

__all__ = ["extract_listing", "run_listing_extract_tool", "PropertyService"]
