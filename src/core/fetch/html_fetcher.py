# src/core/fetch/html_fetcher.py
"""
Listing page fetcher: plain GET or Playwright render, with a bounded wait for
human-verification interstitials.

The fetcher never raises past `fetch_document`: a failed retrieval is logged and
turned into an empty ListingDocument, and a challenge that does not clear in time
yields the partial page flagged with `challenge_suspected=True`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests
from bs4 import BeautifulSoup

from src.core.normalize.dom import visible_text
from src.schemas.labels import is_challenge_text
from src.schemas.models import FetchPolicy, ListingDocument

from .errors import HtmlFetcherError, NetworkError, RenderError, fetcher_error_guard

logger = logging.getLogger(__name__)

# (html, visible text) of the page as it currently stands
PageSnapshot = Callable[[], tuple[str, str]]

# -------------------------
# Challenge wait
# -------------------------


def challenge_cleared(text: str, min_body_text: int) -> bool:
    return not is_challenge_text(text) and len(text) > min_body_text


def wait_for_challenge(
    snapshot: PageSnapshot,
    policy: FetchPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> tuple[str, str, bool]:
    """
    Read the page; if it shows a challenge, read it again every `challenge_poll_s`
    until it clears or `challenge_wait_s` elapses.

    Returns (html, text, challenge_suspected).
    """
    html, text = snapshot()
    if not is_challenge_text(html):
        return html, text, False

    logger.warning("verification challenge detected; waiting up to %.0fs for it to clear", policy.challenge_wait_s)
    deadline = clock() + policy.challenge_wait_s
    while clock() < deadline:
        sleep(policy.challenge_poll_s)
        try:
            html, text = snapshot()
        except HtmlFetcherError as e:
            # keep the last page we saw; the challenge may be mid-reload
            logger.warning("page re-read during challenge wait failed: %s", e)
            continue
        if challenge_cleared(text, policy.min_body_text):
            logger.info("verification challenge cleared")
            return html, text, False

    logger.error("verification challenge did not clear in time; proceeding with partial content")
    return html, text, True


# -------------------------
# Internal HTTP helpers
# -------------------------


def _http_get(url: str, pol: FetchPolicy) -> tuple[int, str, str]:
    headers = {"User-Agent": pol.user_agent, "Accept-Language": pol.accept_language}
    try:
        resp = requests.get(url, headers=headers, timeout=pol.timeout_s)
    except requests.RequestException as e:
        raise NetworkError(str(e)) from e
    # Japanese portals often omit the charset; requests then assumes latin-1
    if not resp.encoding or resp.encoding.lower() == "iso-8859-1":
        resp.encoding = resp.apparent_encoding
    return resp.status_code, resp.text, resp.url or url


def _html_title(soup: BeautifulSoup) -> str | None:
    return soup.title.get_text(strip=True) if soup.title is not None else None


def _http_document(url: str, pol: FetchPolicy) -> ListingDocument:
    final_url = url

    def _snapshot() -> tuple[str, str]:
        nonlocal final_url
        status, html, final_url = _http_get(url, pol)
        text = visible_text(BeautifulSoup(html, "lxml").body)
        if status >= 400 and not pol.allow_non_200 and not is_challenge_text(html):
            raise NetworkError(f"HTTP {status} for {url}")
        return html, text

    html, text, suspected = wait_for_challenge(_snapshot, pol)
    return ListingDocument(
        url=url,
        html=html,
        title=_html_title(BeautifulSoup(html, "lxml")),
        body_text=text,
        final_url=final_url if final_url != url else None,
        challenge_suspected=suspected,
    )


# -------------------------
# Playwright rendering
# -------------------------


def _render_document(url: str, pol: FetchPolicy) -> ListingDocument:
    try:
        from playwright.sync_api import sync_playwright
    except ImportError as e:
        raise RenderError("playwright not installed (install the 'render' extra)") from e

    with sync_playwright() as pw:
        browser = pw.chromium.launch(headless=pol.render_headless)
        try:
            ctx = browser.new_context(
                user_agent=pol.user_agent,
                locale="ja-JP",
                viewport={"width": 1280, "height": 800},
            )
            page = ctx.new_page()
            page.set_default_timeout(int(pol.timeout_s * 1000))
            page.goto(url, wait_until=pol.render_wait_until)

            def _snapshot() -> tuple[str, str]:
                with fetcher_error_guard():
                    return page.content(), page.inner_text("body")

            html, text, suspected = wait_for_challenge(_snapshot, pol, sleep=lambda s: page.wait_for_timeout(s * 1000))
            return ListingDocument(
                url=url,
                html=html,
                title=page.title(),
                body_text=text,
                final_url=page.url if page.url != url else None,
                challenge_suspected=suspected,
            )
        finally:
            browser.close()


# -------------------------
# Public API
# -------------------------


def fetch_document(url: str, *, policy: FetchPolicy | None = None) -> ListingDocument:
    """
    Retrieve one listing page. Never raises for retrieval problems: failures are
    logged and an empty ListingDocument(url=url) is returned.
    """
    pol = policy or FetchPolicy()
    mode = "rendered" if pol.render_js else "raw"
    logger.info("fetching %s (%s)", url, mode)
    try:
        with fetcher_error_guard():
            if pol.render_js:
                return _render_document(url, pol)
            return _http_document(url, pol)
    except HtmlFetcherError as e:
        logger.warning("retrieval failed for %s: %s", url, e)
        return ListingDocument(url=url)


# -------------------------
# Optional CLI (dev aid)
# -------------------------

if __name__ == "__main__":  # pragma: no cover
    import argparse

    p = argparse.ArgumentParser(description="Fetch one listing page and print its visible text.")
    p.add_argument("--url", required=True)
    p.add_argument("--render", type=int, default=0)
    p.add_argument("--headful", type=int, default=0)
    p.add_argument("--timeout", type=float, default=60.0)
    p.add_argument("--challenge-wait", type=float, default=60.0)
    args = p.parse_args()

    policy = FetchPolicy(
        render_js=bool(args.render),
        render_headless=not bool(args.headful),
        timeout_s=float(args.timeout),
        challenge_wait_s=float(args.challenge_wait),
    )
    doc = fetch_document(args.url, policy=policy)
    print(doc.title or "")
    print(doc.body_text or "")
