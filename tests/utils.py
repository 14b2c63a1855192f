# tests/utils.py
"""
Single source of truth for test data, factories, and canonical payloads.
Update values here to cascade across the test suite.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

# Project models
from src.schemas.models import ListingDocument, StoredProperty

# -----------------------------
# Global defaults (edit once)
# -----------------------------

DEFAULT_URL = "https://example.com/listing/1"
DEFAULT_CREATED_AT = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

SUUMO_URL = "https://suumo.jp/ms/chuko/tokyo/sc_shinjuku/nc_100/"
HOMES_URL = "https://www.homes.co.jp/mansion/b-1234567/"
MANSION_NOTE_URL = "https://www.mansion-note.com/mansion/12345"
MANSION_NOTE_HOUSE_URL = "https://www.mansion-note.com/mansion/12345/house"
COWCAMO_URL = "https://cowcamo.jp/nakameguro-sunny"
COWCAMO_DETAIL_URL = "https://cowcamo.jp/nakameguro-sunny/detail"

# -----------------------------
# Canonical pages
# -----------------------------

GENERIC_LISTING_HTML = """
<html>
  <head>
    <title>パークハウス新宿 | 新宿駅 徒歩7分</title>
    <meta property="og:image" content="https://img.example.com/main.jpg">
  </head>
  <body>
    <h1>パークハウス新宿</h1>
    <div class="img_box">
      <img src="https://img.example.com/1.jpg">
      <img data-src="https://img.example.com/2.jpg" src="/spacer.gif">
      <img src="/relative.jpg">
    </div>
    <table>
      <tr><th>価格</th><td>3,980万円</td></tr>
      <tr><th>月々の支払い</th><td>月々 98,000円</td></tr>
      <tr><th>専有面積</th><td>65.5m²</td></tr>
      <tr><th>築年月</th><td>2005年3月</td></tr>
      <tr><th>総戸数</th><td>120戸</td></tr>
      <tr><th>管理費</th><td>1万3740円</td></tr>
      <tr><th>修繕積立金</th><td>8,000円</td></tr>
      <tr><th>駐車場</th><td>空有 20,000円</td></tr>
      <tr><th>権利</th><td>所有権</td></tr>
    </table>
    <p>2020年リフォーム済み</p>
    <script>var price = "1億円";</script>
  </body>
</html>
"""

SUUMO_HTML = """
<html>
  <head><title>【SUUMO】中古マンション</title></head>
  <body>
    <table>
      <tr>
        <th>価格</th><td>2,980万円</td>
        <th>交通</th><td>東京メトロ丸ノ内線「四谷三丁目」歩6分<br>都営新宿線「曙橋」歩9分</td>
      </tr>
      <tr><th>権利形態</th><td>定期借地</td></tr>
      <tr><th>総戸数</th><td>48戸</td></tr>
      <tr><th>管理費</th><td>1万2000円／月（委託(通勤)）</td></tr>
      <tr><th>修繕積立金</th><td>9800円／月</td></tr>
      <tr><th>駐車場</th><td>空無</td></tr>
    </table>
  </body>
</html>
"""

HOMES_HTML = """
<html>
  <head><title>LIFULL HOME'S</title></head>
  <body>
    <h1>ライオンズマンション中野</h1>
    <dl>
      <dt>交通</dt><dd>JR中央線 中野駅 徒歩8分</dd>
      <dt>専有面積</dt><dd>55.2m²（壁芯）</dd>
    </dl>
    <table>
      <tr><th>築年月</th><td>1999年3月</td></tr>
      <tr><th>価格</th><td>4,480万円</td></tr>
    </table>
  </body>
</html>
"""

MANSION_NOTE_TOP_HTML = """
<html>
  <head><title>グランドメゾン目白 | マンションノート</title></head>
  <body>
    <nav><a href="/mansion/12345">概要</a><a href="/mansion/12345/house">物件</a></nav>
    <p>口コミ 12件</p>
  </body>
</html>
"""

MANSION_NOTE_HOUSE_HTML = """
<html>
  <head><title>グランドメゾン目白の物件 | マンションノート</title></head>
  <body>
    <table>
      <tr><th>管理費等</th><td>1万5000円</td></tr>
      <tr><th>修繕積立金</th><td>1万1000円</td></tr>
      <tr><th>駐車場</th><td>有（2万円／月）</td></tr>
      <tr><th>総戸数</th><td>86戸</td></tr>
      <tr><th>専有面積</th><td>72.3㎡</td></tr>
      <tr><th>完成時期</th><td>2008年2月</td></tr>
    </table>
  </body>
</html>
"""

COWCAMO_ARTICLE_HTML = """
<html>
  <head><title>陽だまりのリビング | cowcamo</title></head>
  <body>
    <article><p>中目黒の高台に建つヴィンテージマンション。</p></article>
    <a href="/nakameguro-sunny/detail">物件概要</a>
  </body>
</html>
"""

COWCAMO_DETAIL_HTML = """
<html>
  <head><title>物件概要 | cowcamo</title></head>
  <body>
    <dl>
      <dt>専有面積</dt><dd>48.12m²</dd>
      <dt>竣工</dt><dd>1978年9月</dd>
      <dt>総戸数</dt><dd>30戸</dd>
      <dt>交通</dt><dd>東急東横線「中目黒」駅 徒歩6分</dd>
    </dl>
    <div class="fee">
      <div><span>管理費</span><span>12,300円</span></div>
      <div><span>修繕積立金：</span><span>8,500円</span></div>
    </div>
  </body>
</html>
"""

CHALLENGE_HTML = "<html><head><title>Human Verification</title></head><body><p>Verify you are human</p></body></html>"

# -----------------------------
# Legacy collection payloads
# -----------------------------

LEGACY_COLLECTION: dict[str, Any] = {
    "properties": [
        {
            "id": "p1",
            "url": "https://suumo.jp/a",
            "title": "A",
            "price": "3,000万円",
            "createdAt": "2024-01-02T03:04:05.000Z",
            "ratings": {
                "partnerA": {"score": "good", "comment": "広い"},
                "partnerB": {"score": None, "comment": ""},
            },
            "manuallyEditedFields": ["price", "yearBuilt", "fees.management"],
        },
        {
            "id": "p2",
            "url": "https://suumo.jp/b",
            "createdAt": "2024-02-01T00:00:00.000Z",
            "ratings": [{"userId": "user-b", "score": "bad", "comment": "", "updatedAt": "2024-02-02T00:00:00.000Z"}],
        },
        {
            "id": "p3",
            "url": "https://suumo.jp/c",
            "createdAt": "2024-03-01T00:00:00.000Z",
        },
    ],
    "settings": {
        "partnerA": {"name": "太郎", "icon": "🐶"},
        "partnerB": {"name": ""},
    },
}


# -----------------------------
# Factories
# -----------------------------


def make_document(
    url: str = DEFAULT_URL,
    html: str = GENERIC_LISTING_HTML,
    **overrides: Any,
) -> ListingDocument:
    return ListingDocument(url=url, html=html, **overrides)


def make_stored_property(**overrides: Any) -> StoredProperty:
    data: dict[str, Any] = {
        "id": "prop-1",
        "url": DEFAULT_URL,
        "title": "パークハウス新宿",
        "price": "3,000万円",
        "area": 50.0,
        "year_built": 2005,
        "station": "新宿駅",
        "station_minute": 7,
        "fees": {"management": 12000.0, "repair": 8000.0},
        "created_at": DEFAULT_CREATED_AT,
    }
    data.update(overrides)
    return StoredProperty.model_validate(data)


class FakeFetcher:
    """URL → ListingDocument map standing in for the network retriever."""

    def __init__(self, pages: dict[str, str] | None = None) -> None:
        self.pages: dict[str, str] = dict(pages or {})
        self.calls: list[str] = []

    def __call__(self, url: str) -> ListingDocument:
        self.calls.append(url)
        html = self.pages.get(url)
        if html is None:
            return ListingDocument(url=url)
        return ListingDocument(url=url, html=html)


# -----------------------------
# Convenience getters for tests
# -----------------------------


def legacy_collection() -> dict[str, Any]:
    """Fresh deep copy so tests can mutate it."""
    import copy

    return copy.deepcopy(LEGACY_COLLECTION)
