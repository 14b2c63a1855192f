# tests/listing/test_site_overrides.py
from __future__ import annotations

import pytest

from src.core.normalize import ParsedPage, parse_listing_from_tree
from src.core.normalize.sites import (
    SiteExtractor,
    apply_patch,
    find_site_extractor,
    registered_sites,
)
from src.core.normalize.sites import base as sites_base
from src.core.normalize.sites.cowcamo import CowcamoExtractor
from src.core.normalize.sites.mansion_note import MansionNoteExtractor
from src.schemas.models import ExtractedFields, ListingDocument
from src.tools.listing_extract import extract_listing
from tests.utils import (
    COWCAMO_ARTICLE_HTML,
    COWCAMO_DETAIL_URL,
    COWCAMO_URL,
    DEFAULT_URL,
    HOMES_HTML,
    HOMES_URL,
    MANSION_NOTE_HOUSE_HTML,
    MANSION_NOTE_HOUSE_URL,
    MANSION_NOTE_TOP_HTML,
    MANSION_NOTE_URL,
    SUUMO_HTML,
    SUUMO_URL,
    FakeFetcher,
    make_document,
)

# -----------------------
# Registry
# -----------------------


def test_registry_has_the_four_sites():
    assert {s.name for s in registered_sites()} == {"suumo", "homes", "mansion_note", "cowcamo"}


@pytest.mark.parametrize(
    "url, expected",
    [
        (SUUMO_URL, "suumo"),
        ("https://www.suumo.jp/ms/chuko/", "suumo"),
        (HOMES_URL, "homes"),
        (MANSION_NOTE_URL, "mansion_note"),
        (COWCAMO_URL, "cowcamo"),
    ],
)
def test_find_site_extractor_by_host(url: str, expected: str):
    site = find_site_extractor(url)
    assert site is not None and site.name == expected


def test_unknown_or_lookalike_hosts_have_no_extractor():
    assert find_site_extractor(DEFAULT_URL) is None
    assert find_site_extractor("https://notsuumo.jp/ms/") is None
    assert find_site_extractor("not a url") is None


# -----------------------
# Patch application
# -----------------------


def test_apply_patch_override_wins_and_none_never_erases():
    base = parse_listing_from_tree(make_document())
    refined = apply_patch(base, {"price": None, "station": "西新宿駅", "fees": {"repair": 9000.0, "parking": None}})

    assert refined.price == "3,980万円"
    assert refined.station == "西新宿駅"
    assert refined.fees.management == 13740.0
    assert refined.fees.repair == 9000.0
    assert refined.fees.parking == 20000.0


def test_apply_patch_marks_new_fields_determined():
    base = ExtractedFields(url=DEFAULT_URL)
    refined = apply_patch(base, {"area": 40.0, "fees": {"management": 1000.0}})
    assert refined.determined() == {"url": DEFAULT_URL, "area": 40.0, "fees": {"management": 1000.0}}


def test_invalid_patch_is_discarded():
    base = parse_listing_from_tree(make_document())
    assert apply_patch(base, {"station_minute": -3, "area": 1.0}) is base


# -----------------------
# Sites
# -----------------------


def test_suumo_table_override():
    fields = extract_listing(document=make_document(SUUMO_URL, SUUMO_HTML))

    assert fields.station == "東京メトロ丸ノ内線「四谷三丁目」"
    assert fields.station_minute == 6
    assert fields.is_freehold is False
    assert fields.units == 48
    assert fields.fees.management == 12000.0
    assert fields.fees.repair == 9800.0
    assert fields.fees.parking == 0.0
    assert fields.parking_status == "空無"
    assert fields.price == "2,980万円"


def test_suumo_price_only_fills_placeholder():
    no_price = make_document(SUUMO_URL, SUUMO_HTML, body_text="物件概要\n交通 四谷三丁目 歩6分")
    assert extract_listing(document=no_price).price == "2,980万円"

    body_price = make_document(SUUMO_URL, SUUMO_HTML, body_text="販売価格 3,100万円")
    assert extract_listing(document=body_price).price == "3,100万円"


def test_homes_fills_gaps_from_dl_and_table():
    fields = extract_listing(document=make_document(HOMES_URL, HOMES_HTML))

    assert fields.title == "ライオンズマンション中野"
    assert fields.station == "中野駅"
    assert fields.station_minute == 8
    assert fields.area == 55.2
    assert fields.year_built == 1999
    assert fields.price == "4,480万円"


def test_mansion_note_follows_house_page():
    fetcher = FakeFetcher({MANSION_NOTE_HOUSE_URL: MANSION_NOTE_HOUSE_HTML})
    fields = extract_listing(document=make_document(MANSION_NOTE_URL, MANSION_NOTE_TOP_HTML), fetcher=fetcher)

    assert fetcher.calls == [MANSION_NOTE_HOUSE_URL]
    assert fields.fees.management == 15000.0
    assert fields.fees.repair == 11000.0
    assert fields.fees.parking == 20000.0
    assert fields.parking_status == "有（2万円／月）"
    assert fields.units == 86
    assert fields.area == 72.3
    assert fields.year_built == 2008


def test_mansion_note_detail_url():
    extractor = MansionNoteExtractor()
    top = ParsedPage(make_document(MANSION_NOTE_URL, MANSION_NOTE_TOP_HTML))
    house = ParsedPage(make_document(MANSION_NOTE_HOUSE_URL, MANSION_NOTE_TOP_HTML))
    bare = ParsedPage(make_document(MANSION_NOTE_URL, "<html><body><p>x</p></body></html>"))

    assert extractor.detail_url(top) == MANSION_NOTE_HOUSE_URL
    assert extractor.detail_url(house) is None
    assert extractor.detail_url(bare) is None


def test_cowcamo_detail_page_with_loose_fee_labels(fake_fetcher):
    fields = extract_listing(document=make_document(COWCAMO_URL, COWCAMO_ARTICLE_HTML), fetcher=fake_fetcher)

    assert fake_fetcher.calls == [COWCAMO_DETAIL_URL]
    assert fields.fees.management == 12300.0
    assert fields.fees.repair == 8500.0
    assert fields.units == 30
    assert fields.year_built == 1978
    assert fields.area == 48.12
    assert fields.station == "東急東横線「中目黒」駅 徒歩6分"
    assert fields.station_minute == 6


def _page(url: str, body: str = "<p>x</p>") -> ParsedPage:
    return ParsedPage(make_document(url, f"<html><body>{body}</body></html>"))


def test_cowcamo_detail_url_variants():
    extractor = CowcamoExtractor()

    assert extractor.detail_url(_page(COWCAMO_DETAIL_URL)) is None
    assert extractor.detail_url(_page(COWCAMO_URL, COWCAMO_ARTICLE_HTML)) == COWCAMO_DETAIL_URL
    assert (
        extractor.detail_url(_page(COWCAMO_URL, '<a href="/nakameguro-sunny/plan">間取りを見る</a>'))
        == "https://cowcamo.jp/nakameguro-sunny/plan"
    )
    assert extractor.detail_url(_page(COWCAMO_URL)) == COWCAMO_DETAIL_URL
    assert extractor.detail_url(_page(COWCAMO_URL + "/")) == COWCAMO_DETAIL_URL
    assert extractor.detail_url(_page("https://cowcamo.jp/c/abc123")) is None


def test_empty_detail_page_falls_back_to_original():
    fetcher = FakeFetcher({})
    doc = make_document(COWCAMO_URL, COWCAMO_ARTICLE_HTML)
    fields = extract_listing(document=doc, fetcher=fetcher)

    assert fetcher.calls == [COWCAMO_DETAIL_URL]
    assert fields.determined() == parse_listing_from_tree(doc).determined()


def test_detail_page_not_followed_without_fetcher():
    fields = extract_listing(document=make_document(MANSION_NOTE_URL, MANSION_NOTE_TOP_HTML))
    assert fields.fees.management is None


class _BrokenSite(SiteExtractor):
    name = "broken"
    hosts = ("example.com",)

    def refine(self, page, base):
        raise RuntimeError("layout changed")


def test_failing_site_extractor_keeps_generic_result(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(sites_base, "_REGISTRY", [_BrokenSite()])
    fields = extract_listing(document=make_document())
    assert fields.price == "3,980万円"
    assert fields.station == "新宿駅"


def test_extract_listing_requires_url_or_document():
    with pytest.raises(ValueError):
        extract_listing()


def test_site_lookup_falls_back_to_final_url():
    doc = ListingDocument(url="https://short.example/abc", html=SUUMO_HTML, final_url=SUUMO_URL)
    fields = extract_listing(document=doc)
    assert fields.is_freehold is False
    assert fields.station == "東京メトロ丸ノ内線「四谷三丁目」"
