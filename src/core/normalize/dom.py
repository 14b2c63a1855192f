# src/core/normalize/dom.py
"""
Parsed view of a ListingDocument shared by the generic and site extractors.

`visible_text` approximates a browser's innerText: block elements start new
lines and table/definition cells sit tab-separated on their row's line, so a
row like <tr><th>管理費</th><td>1万円</td></tr> reads "管理費\t1万円". The
line-oriented regexes in listing_text rely on that.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

from src.schemas.models import ListingDocument

logger = logging.getLogger(__name__)

_SKIP_TAGS = frozenset({"script", "style", "noscript", "template", "head", "title"})
_BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "br", "caption", "div", "dl", "dt",
        "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5",
        "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section", "table",
        "tbody", "tfoot", "thead", "tr", "ul",
    }
)  # fmt: skip
_CELL_TAGS = frozenset({"td", "th", "dd"})
_WS_RE = re.compile(r"\s+")


def visible_text(root: Tag | BeautifulSoup | None) -> str:
    """Line-structured visible text under `root` (root's own tag is not a break)."""
    if root is None:
        return ""
    parts: list[str] = []
    for node in root.descendants:
        if isinstance(node, Tag):
            if node.name in _BLOCK_TAGS:
                parts.append("\n")
            elif node.name in _CELL_TAGS:
                parts.append("\t")
        elif isinstance(node, NavigableString) and not isinstance(node, PreformattedString):
            if node.parent is not None and node.parent.name in _SKIP_TAGS:
                continue
            parts.append(_WS_RE.sub(" ", str(node)))

    lines: list[str] = []
    for raw in "".join(parts).split("\n"):
        cells = [c.strip() for c in raw.split("\t")]
        line = "\t".join(c for c in cells if c)
        if line:
            lines.append(line)
    return "\n".join(lines)


def _label(tag: Tag) -> str:
    return " ".join(visible_text(tag).split())


def lookup(table: Mapping[str, str], *labels: str) -> str | None:
    """First non-empty value whose key contains one of `labels`, tried in order."""
    for label in labels:
        for key, value in table.items():
            if label in key and value:
                return value
    return None


class ParsedPage:
    """BeautifulSoup tree, visible text and declared title of one document."""

    def __init__(self, document: ListingDocument) -> None:
        self.document = document
        self.soup = BeautifulSoup(document.html or "", "lxml")
        body = self.soup.body or self.soup
        self.text: str = document.body_text if document.body_text is not None else visible_text(body)

        if document.title is not None:
            self.title = document.title.strip()
        elif self.soup.title is not None:
            self.title = self.soup.title.get_text(strip=True)
        else:
            self.title = ""

    @property
    def url(self) -> str:
        return self.document.final_url or self.document.url

    def heading(self) -> str:
        h1 = self.soup.find("h1")
        return visible_text(h1).replace("\n", " ").strip() if isinstance(h1, Tag) else ""

    def select(self, selector: str) -> list[Tag]:
        try:
            return list(self.soup.select(selector))
        except Exception as exc:  # noqa: BLE001 - soupsieve raises on unsupported selectors
            logger.debug("selector %r failed: %s", selector, exc)
            return []

    # ---------- label/value structures ----------

    def sibling_pairs(self, label_tag: str = "th", value_tag: str = "td") -> dict[str, str]:
        """`<th>` immediately followed by a `<td>` sibling (SUUMO-style detail tables)."""
        out: dict[str, str] = {}
        for label in self.soup.find_all(label_tag):
            key = _label(label)
            if not key:
                continue
            nxt = label.find_next_sibling()
            if isinstance(nxt, Tag) and nxt.name == value_tag:
                out[key] = visible_text(nxt)
        return out

    def row_pairs(self) -> dict[str, str]:
        """First `<th>` and `<td>` of every `<tr>`."""
        out: dict[str, str] = {}
        for tr in self.soup.find_all("tr"):
            th = tr.find("th")
            td = tr.find("td")
            if isinstance(th, Tag) and isinstance(td, Tag):
                key = _label(th)
                if key:
                    out[key] = visible_text(td)
        return out

    def definition_pairs(self) -> dict[str, str]:
        return self.sibling_pairs("dt", "dd")
