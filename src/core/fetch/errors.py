# src/core/fetch/errors.py
"""
Typed errors + utilities for the listing page fetcher.

Exports
-------
- HtmlFetcherError, NetworkError, RenderError
- FETCHER_ERRORS
- classify_fetcher_error(exc)
- fetcher_error_guard()
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import requests

# =========================
# Exception types
# =========================


class HtmlFetcherError(RuntimeError):
    """Base class for page retrieval failures."""


class NetworkError(HtmlFetcherError):
    """HTTP/transport failure while attempting to fetch a page."""


class RenderError(HtmlFetcherError):
    """Headless browser could not be started or could not render the page."""


# Selector tuple for grouped exception handling
FETCHER_ERRORS = (
    NetworkError,
    RenderError,
)

# =========================
# Classification helpers
# =========================


def classify_fetcher_error(exc: Exception) -> HtmlFetcherError:
    """
    Map arbitrary exceptions raised inside the fetcher to a typed HtmlFetcherError subclass.

    Heuristics:
      - any HtmlFetcherError subclass → passed through
      - requests.* errors → NetworkError
      - Playwright errors (and a missing playwright install) → RenderError
      - fallback → HtmlFetcherError
    """
    if isinstance(exc, HtmlFetcherError):
        return exc

    if isinstance(exc, requests.RequestException):
        return NetworkError(str(exc))

    msg = f"{type(exc).__name__}: {exc}"
    module = type(exc).__module__ or ""
    if module.startswith("playwright") or "playwright" in msg.lower():
        return RenderError(msg)

    return HtmlFetcherError(msg)


@contextmanager
def fetcher_error_guard() -> Iterator[None]:
    """Context manager to normalize unexpected exceptions from fetcher internals."""
    try:
        yield
    except FETCHER_ERRORS:
        raise
    except Exception as exc:  # noqa: BLE001
        raise classify_fetcher_error(exc) from exc


__all__ = [
    "HtmlFetcherError",
    "NetworkError",
    "RenderError",
    "FETCHER_ERRORS",
    "classify_fetcher_error",
    "fetcher_error_guard",
]
