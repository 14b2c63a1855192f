# src/tools/listing_extract.py
"""
Listing extraction tool (URL or ready document) → ExtractedFields.

Pipeline:
  1) core.fetch.fetch_document(url, policy) → ListingDocument
     (or a caller-supplied document / fetcher)
  2) core.normalize.extract_generic(page) → generic ExtractedFields
  3) site override for the URL's host, if one is registered:
       - optional detail page follow-up through the same fetcher
       - refine(page, base) → patch, applied with override-wins / never-erase

Best-effort throughout: retrieval failures, rule failures and site failures are
logged and the best available result is returned. Nothing here raises for a
missing field.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import partial
from typing import Any

from src.core.fetch import fetch_document
from src.core.normalize import ParsedPage, extract_generic
from src.core.normalize.sites import SiteExtractor, apply_patch, find_site_extractor
from src.schemas.models import ExtractedFields, FetchPolicy, ListingDocument

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], ListingDocument]


def _refine_with_site(
    site: SiteExtractor,
    page: ParsedPage,
    base: ExtractedFields,
    fetch: Fetcher | None,
) -> ExtractedFields:
    target = page
    follow = site.detail_url(page)
    if follow and follow != page.url:
        if fetch is None:
            logger.debug("%s: no fetcher to follow %s; refining from the given page", site.name, follow)
        else:
            logger.info("%s: following detail page %s", site.name, follow)
            detail = fetch(follow)
            if detail.is_empty:
                logger.info("%s: detail page empty; refining from the original page", site.name)
            else:
                target = ParsedPage(detail)

    patch = site.refine(target, base)
    return apply_patch(base, patch)


def extract_listing(
    url: str | None = None,
    *,
    document: ListingDocument | None = None,
    fetcher: Fetcher | None = None,
    policy: FetchPolicy | None = None,
) -> ExtractedFields:
    """
    Extract listing fields for `url` (fetched) or for a ready `document`.

    `fetcher` replaces the network retriever (tests, alternative backends). When only
    a document is given, detail pages are followed only if a fetcher is given too.
    """
    if not url and document is None:
        raise ValueError("Either `url` or `document` must be provided.")

    fetch: Fetcher | None = fetcher
    if fetch is None and document is None:
        fetch = partial(fetch_document, policy=policy)

    if document is None:
        assert fetch is not None and url is not None
        document = fetch(url)
    if document.is_empty:
        logger.warning("no content retrieved for %s; extraction will be mostly empty", document.url)
    if document.challenge_suspected:
        logger.warning("extracting %s from a page that may still show a verification challenge", document.url)

    page = ParsedPage(document)
    fields = extract_generic(page)

    site = find_site_extractor(document.url) or find_site_extractor(page.url)
    if site is None:
        return fields

    try:
        refined = _refine_with_site(site, page, fields, fetch)
    except Exception as exc:  # noqa: BLE001 - the generic result stands
        logger.warning("site extractor %s failed for %s: %s", site.name, document.url, exc)
        return fields

    logger.info("extracted %s: %s", document.url, refined.summary())
    return refined


# ---------------------------
# Agent-facing wrapper
# ---------------------------


def _policy_from_dict(d: dict[str, Any] | FetchPolicy | None) -> FetchPolicy:
    """
    Normalize an incoming policy that may be:
      - a FetchPolicy instance,
      - a plain dict of policy fields,
      - or None (use defaults).
    """
    if isinstance(d, FetchPolicy):
        return d
    if not d:
        return FetchPolicy()
    return FetchPolicy.model_validate(d)


def run_listing_extract_tool(
    *,
    url: str,
    fetch_policy: dict[str, Any] | FetchPolicy | None = None,
) -> dict[str, Any]:
    """
    Tool-callable extraction entrypoint.
    Returns the determined fields only, JSON-ready with camelCase keys.
    """
    fields = extract_listing(url, policy=_policy_from_dict(fetch_policy))
    return fields.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude_none=True)
