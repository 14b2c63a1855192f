# src/core/normalize/sites/__init__.py
from __future__ import annotations

from . import cowcamo, homes, mansion_note, suumo  # noqa: F401  (registers the extractors)
from .base import (
    Patch,
    SiteExtractor,
    apply_patch,
    find_site_extractor,
    register,
    registered_sites,
)

__all__ = [
    "Patch",
    "SiteExtractor",
    "apply_patch",
    "find_site_extractor",
    "register",
    "registered_sites",
]
