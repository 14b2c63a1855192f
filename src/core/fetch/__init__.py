# src/core/fetch/__init__.py
from .errors import (
    FETCHER_ERRORS,
    HtmlFetcherError,
    NetworkError,
    RenderError,
    classify_fetcher_error,
    fetcher_error_guard,
)
from .html_fetcher import challenge_cleared, fetch_document, wait_for_challenge

__all__ = [
    "HtmlFetcherError",
    "NetworkError",
    "RenderError",
    "FETCHER_ERRORS",
    "classify_fetcher_error",
    "fetcher_error_guard",
    "challenge_cleared",
    "fetch_document",
    "wait_for_challenge",
]
