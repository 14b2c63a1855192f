# src/core/normalize/numbers.py
"""
Japanese money/number normalizer.

    "1万3740円" → 13740.0
    "3,080円"   → 3080.0
    "不明"      → 0.0

0 doubles as "could not parse"; callers cannot tell it apart from a genuinely
free service.
"""

from __future__ import annotations

import re
import unicodedata

_NUM = r"\d+(?:\.\d+)?"
_MAN_OR_BARE_RE = re.compile(rf"({_NUM})\s*万\s*({_NUM})?|({_NUM})")


def parse_japanese_number(val: str | None) -> float:
    """Return the first 万-expression or bare numeral in `val`; 0.0 when nothing parses."""
    if not val:
        return 0.0
    # NFKC folds full-width digits (１万) into ASCII
    text = unicodedata.normalize("NFKC", val).replace(",", "")
    m = _MAN_OR_BARE_RE.search(text)
    if not m:
        return 0.0
    if m.group(1):
        remainder = float(m.group(2)) if m.group(2) else 0.0
        return float(m.group(1)) * 10000 + remainder
    return float(m.group(3))


def first_int(val: str | None) -> int | None:
    """Leading-or-embedded integer (e.g. '総戸数 120戸' → 120), or None."""
    if not val:
        return None
    m = re.search(r"\d+", unicodedata.normalize("NFKC", val).replace(",", ""))
    return int(m.group(0)) if m else None
