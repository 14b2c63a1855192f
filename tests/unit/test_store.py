# tests/unit/test_store.py
from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from src.core.storage import JsonCollectionStore, StoreWriteError
from src.core.storage import store as store_module
from tests.utils import legacy_collection, make_stored_property


def test_missing_file_is_created_with_defaults(tmp_store: JsonCollectionStore):
    collection = tmp_store.load()

    assert collection.properties == []
    assert [u.id for u in collection.settings.users] == ["u1"]
    assert tmp_store.path.exists()
    assert not tmp_store.tmp_path.exists()
    saved = json.loads(tmp_store.path.read_text(encoding="utf-8"))
    assert saved["settings"]["loan"]["termYears"] == 35


def test_save_is_json_with_readable_japanese(tmp_store: JsonCollectionStore):
    collection = tmp_store.load()
    collection.properties.append(make_stored_property())
    tmp_store.save(collection)

    text = tmp_store.path.read_text(encoding="utf-8")
    assert "パークハウス新宿" in text
    assert '"manuallyEditedFields"' in text
    assert tmp_store.load().properties[0].id == "prop-1"


def test_corrupt_file_falls_back_and_is_kept_aside(tmp_store: JsonCollectionStore, caplog):
    tmp_store.path.write_text("{not json", encoding="utf-8")

    with caplog.at_level("ERROR"):
        collection = tmp_store.load()

    assert collection.properties == []
    assert "falling back to default collection" in caplog.text
    backups = list(tmp_store.path.parent.glob("db.json.corrupt-*"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "{not json"
    assert tmp_store.path.read_text(encoding="utf-8") == "{not json"


def test_migrated_collection_is_persisted(tmp_store: JsonCollectionStore):
    tmp_store.path.write_text(json.dumps(legacy_collection(), ensure_ascii=False), encoding="utf-8")

    tmp_store.load()

    saved = json.loads(tmp_store.path.read_text(encoding="utf-8"))
    assert "partnerA" not in saved["settings"]
    assert [u["id"] for u in saved["settings"]["users"]] == ["u1", "u2"]
    assert saved["properties"][0]["ratings"][0]["userId"] == "u1"


def test_assigned_created_at_is_stable_across_loads(tmp_store: JsonCollectionStore):
    raw = {"properties": [{"id": "p1", "url": "https://suumo.jp/x", "ratings": []}]}
    tmp_store.path.write_text(json.dumps(raw), encoding="utf-8")

    first = tmp_store.load().properties[0].created_at
    second = tmp_store.load().properties[0].created_at

    assert first == second
    assert "createdAt" in json.loads(tmp_store.path.read_text(encoding="utf-8"))["properties"][0]


def test_transaction_saves_on_success(tmp_store: JsonCollectionStore):
    with tmp_store.transaction() as collection:
        collection.properties.append(make_stored_property())
    assert len(tmp_store.load().properties) == 1


def test_transaction_discards_changes_on_error(tmp_store: JsonCollectionStore):
    with tmp_store.transaction() as collection:
        collection.properties.append(make_stored_property())

    with pytest.raises(RuntimeError):
        with tmp_store.transaction() as collection:
            collection.properties.clear()
            raise RuntimeError("boom")

    assert len(tmp_store.load().properties) == 1


def test_failed_write_leaves_previous_file(tmp_store: JsonCollectionStore, monkeypatch: pytest.MonkeyPatch):
    tmp_store.load()
    before = tmp_store.path.read_text(encoding="utf-8")

    def broken_fsync(fd):
        raise OSError("disk full")

    monkeypatch.setattr(store_module.os, "fsync", broken_fsync)
    collection = tmp_store.load()
    collection.properties.append(make_stored_property())

    with pytest.raises(StoreWriteError):
        tmp_store.save(collection)
    assert tmp_store.path.read_text(encoding="utf-8") == before
    assert not tmp_store.tmp_path.exists()


def test_stores_on_the_same_path_share_a_lock(tmp_path: Path):
    path = tmp_path / "db.json"
    assert store_module._lock_for(path) is store_module._lock_for(tmp_path / "." / "db.json")


def test_concurrent_transactions_do_not_lose_updates(tmp_path: Path):
    path = tmp_path / "db.json"
    errors: list[BaseException] = []

    def add(i: int) -> None:
        try:
            store = JsonCollectionStore(path)
            with store.transaction() as collection:
                collection.properties.append(
                    make_stored_property(id=f"p{i}", url=f"https://suumo.jp/{i}")
                )
        except BaseException as e:  # noqa: BLE001 - surfaced by the assertion below
            errors.append(e)

    threads = [threading.Thread(target=add, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    ids = {p.id for p in JsonCollectionStore(path).load().properties}
    assert ids == {f"p{i}" for i in range(8)}
