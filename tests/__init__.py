# tests/__init__.py
"""
Expose common test utilities so tests can import directly:
    from tests import make_document, make_stored_property
"""

from .utils import FakeFetcher, legacy_collection, make_document, make_stored_property

__all__ = ["FakeFetcher", "legacy_collection", "make_document", "make_stored_property"]
