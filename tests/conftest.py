# tests/conftest.py
from __future__ import annotations

from pathlib import Path

import pytest

from src.core.storage import JsonCollectionStore
from src.tools.property_service import PropertyService
from tests.utils import (
    COWCAMO_ARTICLE_HTML,
    COWCAMO_DETAIL_HTML,
    COWCAMO_DETAIL_URL,
    COWCAMO_URL,
    DEFAULT_URL,
    GENERIC_LISTING_HTML,
    HOMES_HTML,
    HOMES_URL,
    MANSION_NOTE_HOUSE_HTML,
    MANSION_NOTE_HOUSE_URL,
    MANSION_NOTE_TOP_HTML,
    MANSION_NOTE_URL,
    SUUMO_HTML,
    SUUMO_URL,
    FakeFetcher,
)


# -------- Environment isolation --------
@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in ("BUKKEN_DB_PATH", "BUKKEN_LOG_DIR", "BUKKEN_RENDER", "BUKKEN_TIMEOUT_S", "BUKKEN_CHALLENGE_WAIT_S", "BUKKEN_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    yield


# -------- Retrieval --------
@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher(
        {
            DEFAULT_URL: GENERIC_LISTING_HTML,
            SUUMO_URL: SUUMO_HTML,
            HOMES_URL: HOMES_HTML,
            MANSION_NOTE_URL: MANSION_NOTE_TOP_HTML,
            MANSION_NOTE_HOUSE_URL: MANSION_NOTE_HOUSE_HTML,
            COWCAMO_URL: COWCAMO_ARTICLE_HTML,
            COWCAMO_DETAIL_URL: COWCAMO_DETAIL_HTML,
        }
    )


# -------- Storage & service --------
@pytest.fixture
def tmp_store(tmp_path: Path) -> JsonCollectionStore:
    return JsonCollectionStore(tmp_path / "db.json")


@pytest.fixture
def service(tmp_store: JsonCollectionStore, fake_fetcher: FakeFetcher) -> PropertyService:
    return PropertyService(tmp_store, fetcher=fake_fetcher)
