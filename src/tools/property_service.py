# src/tools/property_service.py
"""
Property service: every mutation of the tracked collection goes through here.

Each mutation is one store transaction (load → change → atomic save) under the
store's lock. Extraction (network I/O) runs before the transaction, never inside
it. Unknown ids are reported as None (False for delete) and logged; invalid
values raise ValueError before anything is written.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import TypeAdapter, ValidationError

from src.core.reconcile import manual_merge, refresh_merge, unmark_edited_fields
from src.core.storage import JsonCollectionStore
from src.schemas.models import (
    ExtractedFields,
    FetchPolicy,
    PropertyStatus,
    Rating,
    RatingScore,
    StoredProperty,
    UserSettings,
)

from .listing_extract import Fetcher, extract_listing

logger = logging.getLogger(__name__)

_STATUS = TypeAdapter(PropertyStatus)
_SCORE = TypeAdapter(RatingScore | None)
_SETTINGS_KEYS = {"users", "loan"}


def _validated(adapter: TypeAdapter[Any], value: Any, what: str) -> Any:
    try:
        return adapter.validate_python(value)
    except ValidationError as e:
        raise ValueError(f"invalid {what}: {value!r}") from e


class PropertyService:
    def __init__(
        self,
        store: JsonCollectionStore,
        *,
        fetcher: Fetcher | None = None,
        policy: FetchPolicy | None = None,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.policy = policy

    def _extract(self, url: str) -> ExtractedFields:
        return extract_listing(url, fetcher=self.fetcher, policy=self.policy)

    def _mutate(
        self,
        property_id: str,
        action: str,
        change: Callable[[StoredProperty], StoredProperty],
    ) -> StoredProperty | None:
        with self.store.transaction() as collection:
            index = collection.index_of(property_id)
            if index is None:
                logger.warning("%s: property %s not found", action, property_id)
                return None
            updated = change(collection.properties[index])
            collection.properties[index] = updated
        logger.info("%s: property %s updated", action, property_id)
        return updated

    # ---------- reads ----------

    def list_properties(self) -> list[StoredProperty]:
        return list(self.store.load().properties)

    def get_property(self, property_id: str) -> StoredProperty | None:
        collection = self.store.load()
        index = collection.index_of(property_id)
        return collection.properties[index] if index is not None else None

    def get_settings(self) -> UserSettings:
        return self.store.load().settings

    # ---------- creation ----------

    def add_by_url(self, url: str) -> StoredProperty:
        """
        Track a listing URL. Resubmitting a tracked URL returns the existing record
        unchanged and does not extract again.
        """
        url = url.strip()
        if not url:
            raise ValueError("url must not be empty")

        existing = self.store.load().find_by_url(url)
        if existing is not None:
            logger.info("add: %s already tracked as %s", url, existing.id)
            return existing

        extracted = self._extract(url)

        with self.store.transaction() as collection:
            # added by a concurrent request while extracting
            existing = collection.find_by_url(url)
            if existing is not None:
                logger.info("add: %s was added concurrently as %s", url, existing.id)
                return existing
            record = StoredProperty.model_validate(
                {
                    **extracted.model_dump(),
                    "url": url,
                    "id": str(uuid.uuid4()),
                    "created_at": datetime.now(timezone.utc),
                    "status": "considering",
                    "ratings": [],
                    "manually_edited_fields": [],
                }
            )
            collection.properties.insert(0, record)
        logger.info("add: %s tracked as %s", url, record.id)
        return record

    # ---------- curation ----------

    def update_rating(
        self,
        property_id: str,
        user_id: str,
        *,
        score: str | None,
        comment: str | None = None,
    ) -> StoredProperty | None:
        """Upsert `user_id`'s rating. A `comment` of None keeps the existing comment."""
        checked_score = _validated(_SCORE, score, "rating score")

        def _change(prop: StoredProperty) -> StoredProperty:
            existing = prop.rating_for(user_id)
            if comment is None:
                kept = existing.comment if existing is not None else ""
            else:
                kept = comment
            rating = Rating(user_id=user_id, score=checked_score, comment=kept)
            ratings = [r for r in prop.ratings if r.user_id != user_id]
            position = next((i for i, r in enumerate(prop.ratings) if r.user_id == user_id), len(ratings))
            ratings.insert(position, rating)
            return prop.model_copy(update={"ratings": ratings})

        return self._mutate(property_id, "rating", _change)

    def update_status(self, property_id: str, status: str) -> StoredProperty | None:
        checked = _validated(_STATUS, status, "status")
        return self._mutate(property_id, "status", lambda p: p.model_copy(update={"status": checked}))

    def delete(self, property_id: str) -> bool:
        with self.store.transaction() as collection:
            index = collection.index_of(property_id)
            if index is None:
                logger.warning("delete: property %s not found", property_id)
                return False
            del collection.properties[index]
        logger.info("delete: property %s removed", property_id)
        return True

    # ---------- reconciliation ----------

    def refresh(self, property_id: str) -> StoredProperty | None:
        """Re-extract the listing and merge it, keeping manually edited fields."""
        current = self.get_property(property_id)
        if current is None:
            logger.warning("refresh: property %s not found", property_id)
            return None
        extracted = self._extract(current.url)
        return self._mutate(property_id, "refresh", lambda p: refresh_merge(p, extracted))

    def manual_update(self, property_id: str, updates: Mapping[str, Any]) -> StoredProperty | None:
        return self._mutate(property_id, "manual update", lambda p: manual_merge(p, updates))

    def unmark_fields(self, property_id: str, names: Iterable[str]) -> StoredProperty | None:
        names = list(names)

        def _change(prop: StoredProperty) -> StoredProperty:
            remaining = unmark_edited_fields(prop.manually_edited_fields, names)
            return prop.model_copy(update={"manually_edited_fields": remaining})

        return self._mutate(property_id, "unmark", _change)

    # ---------- settings ----------

    def update_settings(self, updates: Mapping[str, Any]) -> UserSettings:
        """Shallow merge: each given top-level section (users, loan) replaces the stored one."""
        with self.store.transaction() as collection:
            data = collection.settings.model_dump()
            for key, value in updates.items():
                if key not in _SETTINGS_KEYS:
                    logger.debug("settings: ignoring unknown key %s", key)
                    continue
                data[key] = value
            try:
                settings = UserSettings.model_validate(data)
            except ValidationError as e:
                raise ValueError(f"invalid settings update: {e}") from e
            collection.settings = settings
        logger.info("settings updated")
        return settings
