# src/schemas/labels.py
"""
Label and keyword tables for Japanese listing pages.

Centralized so the generic extractor, the site extractors and the fetcher agree
on the same vocabulary.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

# =========================
# Retrieval
# =========================

# Text shown by bot-verification interstitials.
CHALLENGE_MARKERS: tuple[str, ...] = (
    "人間であることを確認してください",
    "Verify you are human",
    "ロボットではありません",
    "アクセスがブロックされました",
)

# Declared titles that never describe the listing itself.
TITLE_PLACEHOLDERS: tuple[str, ...] = (
    "LIFULL HOME'S",
    "Human Verification",
)

# =========================
# Images
# =========================

GALLERY_SELECTORS: tuple[str, ...] = (
    ".p-article-pc-hero__image",
    ".p-timeline__photoImage img",
    ".p-article-pc-info-summary__layout img",
    ".property_view_main-item-img img",
    ".property_view_object-img img",
    ".bh-detailSummary_image img",
    ".mod-packData img",
    ".img_box img",
    ".lazyloader img",
)

# Lazy-loading galleries keep the real URL in data attributes; `src` is often a spacer.
IMAGE_URL_ATTRS: tuple[str, ...] = ("rel", "data-src", "data-original", "src")
IMAGE_URL_BLOCKLIST: tuple[str, ...] = ("spacer.gif",)

# =========================
# Body text vocabulary
# =========================

ACCESS_LABEL_RE = re.compile(r"^(?:交通|アクセス)[:：]*")
WALK_RE = r"(?:徒歩|歩)"

LEASEHOLD_TERM = "借地権"
FREEHOLD_TERM = "所有権"
LEASEHOLD_HINT = "借地"

RENOVATION_TERMS: tuple[str, ...] = ("リフォーム", "リノベ")

PARKING_AVAILABILITY_TERMS: tuple[str, ...] = ("空有", "空きあり", "空無", "空きなし", "なし", "近隣", "要確認")

# Site table headers (matched by "label contains")
LABEL_ACCESS = "交通"
LABEL_PRICE = "価格"
LABEL_AREA = "専有面積"
LABEL_UNITS = "総戸数"
LABEL_MANAGEMENT = "管理費"
LABEL_REPAIR = "修繕積立金"
LABEL_PARKING = "駐車場"
LABEL_BUILT = "築年月"
RIGHTS_LABELS: tuple[str, ...] = ("権利形態", "土地権利", "権利")


def contains_any(text: str, terms: Iterable[str]) -> bool:
    return any(t in text for t in terms)


def is_challenge_text(text: str) -> bool:
    return contains_any(text, CHALLENGE_MARKERS)


def is_placeholder_title(title: str | None) -> bool:
    return not title or contains_any(title, TITLE_PLACEHOLDERS)
