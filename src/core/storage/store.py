# src/core/storage/store.py
"""
JSON collection store: one file holds the whole PropertyCollection.

- Every load migrates the document first and persists the result when a
  migration step changed something.
- Saves are atomic: `<file>.tmp` is written, fsynced and renamed over the target,
  so readers see either the old or the new collection.
- One re-entrant lock per resolved path serializes read-modify-write cycles in
  this process (`transaction()`); there is no cross-process coordination.
- A corrupt file is logged, copied aside and replaced in memory by a fresh
  default collection.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from src.schemas.models import PropertyCollection

from .errors import CollectionCorruptError, StoreWriteError
from .migrate import migrate_collection

logger = logging.getLogger(__name__)

_LOCKS: dict[Path, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = path.resolve()
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.RLock()
        return lock


class JsonCollectionStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = _lock_for(self.path)

    def __repr__(self) -> str:
        return f"JsonCollectionStore(path={str(self.path)!r})"

    @property
    def tmp_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    # ---------- reads ----------

    def load(self) -> PropertyCollection:
        """Current collection (migrated). Creates the file with defaults when missing."""
        with self._lock:
            if not self.path.exists():
                collection = PropertyCollection()
                self.save(collection)
                return collection

            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                collection, report = migrate_collection(raw)
            except (OSError, ValueError, CollectionCorruptError) as e:
                logger.error("failed to read %s, falling back to default collection: %s", self.path, e)
                self._keep_corrupt_copy()
                return PropertyCollection()

            if report.changed:
                self.save(collection)
            return collection

    def _keep_corrupt_copy(self) -> None:
        stamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            shutil.copy2(self.path, backup)
            logger.error("corrupt collection copied to %s", backup)
        except OSError as e:
            logger.error("could not copy corrupt collection %s: %s", self.path, e)

    # ---------- writes ----------

    def save(self, collection: PropertyCollection) -> bool:
        """
        Atomically replace the file with `collection`.

        Raises:
            StoreWriteError: the temporary file could not be written or renamed.
        """
        payload = json.dumps(collection.to_json_dict(), ensure_ascii=False, indent=2)
        with self._lock:
            tmp = self.tmp_path
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with tmp.open("w", encoding="utf-8") as fh:
                    fh.write(payload)
                    fh.flush()
                    os.fsync(fh.fileno())
                tmp.replace(self.path)
            except OSError as e:
                tmp.unlink(missing_ok=True)
                raise StoreWriteError(f"could not write {self.path}: {e}") from e
        return True

    @contextmanager
    def transaction(self) -> Iterator[PropertyCollection]:
        """
        Hold the lock across load → mutate → save.

        The yielded collection is saved when the block exits normally; an
        exception inside the block discards the changes.
        """
        with self._lock:
            collection = self.load()
            yield collection
            self.save(collection)
