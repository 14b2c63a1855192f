# src/core/storage/errors.py
"""Typed errors for the JSON collection store."""

from __future__ import annotations


class StoreError(RuntimeError):
    """Base class for collection store failures."""


class StoreWriteError(StoreError):
    """The collection could not be written (disk full, permissions, ...)."""


class CollectionCorruptError(StoreError):
    """The persisted collection cannot be decoded or migrated."""


__all__ = ["StoreError", "StoreWriteError", "CollectionCorruptError"]
