# src/core/storage/migrate.py
"""
Schema migration for persisted property collections.

Earlier versions of the collection stored two fixed "partner" profiles and a
per-partner ratings bundle instead of a user list and rating entries. Every load
runs `migrate_collection` first; the steps are idempotent, so running it on an
already current collection reports `changed=False`.

Steps, in order:
  1. settings.users missing/empty → built from partnerA/partnerB (or one default user)
  2. settings.loan missing → default loan
  3. property ratings as a {partnerA, partnerB} bundle → rating entries
     (missing ratings → [])
  4. rating userIds user-a/user-b → u1/u2; scores other than good/bad → None
  5. settings.users ids user-a/user-b → u1/u2
  6. camelCase names in manuallyEditedFields → snake_case

Properties without an id or createdAt get one assigned once, so a save keeps it.
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, get_args

from pydantic import BaseModel, ConfigDict, ValidationError

from src.core.reconcile.edited_fields import canonical_field_name
from src.schemas.models import LoanSettings, PropertyCollection, RatingScore

from .errors import CollectionCorruptError

logger = logging.getLogger(__name__)

LEGACY_USER_IDS: dict[str, str] = {"user-a": "u1", "user-b": "u2"}
DEFAULT_ICON = "👤"
KNOWN_SCORES = frozenset(get_args(RatingScore))

# ============================================================
# Legacy shapes
# ============================================================


class _LegacyModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PartnerProfile(_LegacyModel):
    name: str | None = None
    icon: str | None = None


class PartnerSettings(_LegacyModel):
    """settings as written before the user list existed."""

    partnerA: PartnerProfile | None = None
    partnerB: PartnerProfile | None = None


class PartnerRating(_LegacyModel):
    score: str | None = None
    comment: str | None = None

    def is_present(self) -> bool:
        return bool(self.score or self.comment)

    def known_score(self) -> str | None:
        return self.score if self.score in KNOWN_SCORES else None


class PartnerRatings(_LegacyModel):
    partnerA: PartnerRating | None = None
    partnerB: PartnerRating | None = None


# (slot, new id, default name)
_PARTNER_SLOTS: tuple[tuple[str, str, str], ...] = (
    ("partnerA", "u1", "ユーザー1"),
    ("partnerB", "u2", "ユーザー2"),
)


@dataclass(frozen=True)
class MigrationReport:
    changed: bool = False
    steps: tuple[str, ...] = field(default_factory=tuple)


# ============================================================
# Steps
# ============================================================


def _migrate_settings(settings: Any, steps: list[str]) -> dict[str, Any]:
    raw: dict[str, Any] = dict(settings) if isinstance(settings, Mapping) else {}

    users = raw.get("users")
    if not isinstance(users, list) or not users:
        legacy = PartnerSettings.model_validate(raw)
        built: list[dict[str, Any]] = []
        for slot, user_id, default_name in _PARTNER_SLOTS:
            profile = getattr(legacy, slot)
            if profile is not None:
                built.append({"id": user_id, "name": profile.name or default_name, "icon": profile.icon or DEFAULT_ICON})
        if built:
            steps.append("settings.users from partner profiles")
        else:
            built.append({"id": "u1", "name": "ユーザー1", "icon": DEFAULT_ICON})
            steps.append("settings.users default")
        raw["users"] = built
        for slot, _, _ in _PARTNER_SLOTS:
            raw.pop(slot, None)

    if not raw.get("loan"):
        raw["loan"] = LoanSettings().model_dump(by_alias=True)
        steps.append("settings.loan default")

    renamed = False
    for user in raw["users"]:
        if isinstance(user, dict) and user.get("id") in LEGACY_USER_IDS:
            user["id"] = LEGACY_USER_IDS[user["id"]]
            renamed = True
    if renamed:
        steps.append("settings.users legacy ids")
    return raw


def _migrate_ratings(prop: dict[str, Any], steps: list[str]) -> None:
    ratings = prop.get("ratings")
    if isinstance(ratings, Mapping):
        bundle = PartnerRatings.model_validate(ratings)
        entries: list[dict[str, Any]] = []
        for slot, user_id, _ in _PARTNER_SLOTS:
            rating = getattr(bundle, slot)
            if rating is not None and rating.is_present():
                entry: dict[str, Any] = {"userId": user_id, "score": rating.known_score(), "comment": rating.comment or ""}
                if prop.get("createdAt"):
                    entry["updatedAt"] = prop["createdAt"]
                entries.append(entry)
        prop["ratings"] = entries
        steps.append("ratings from partner bundle")
        return

    if not isinstance(ratings, list):
        prop["ratings"] = []
        steps.append("ratings default")
        return

    renamed = False
    cleared = False
    for rating in ratings:
        if not isinstance(rating, dict):
            continue
        if rating.get("userId") in LEGACY_USER_IDS:
            rating["userId"] = LEGACY_USER_IDS[rating["userId"]]
            renamed = True
        if rating.get("score") is not None and rating["score"] not in KNOWN_SCORES:
            rating["score"] = None
            cleared = True
    if renamed:
        steps.append("ratings legacy user ids")
    if cleared:
        steps.append("ratings unknown scores cleared")


def _migrate_edited_names(prop: dict[str, Any], steps: list[str]) -> None:
    key = "manuallyEditedFields" if "manuallyEditedFields" in prop else "manually_edited_fields"
    names = prop.get(key)
    if not isinstance(names, list):
        return
    canonical = list(dict.fromkeys(canonical_field_name(str(n)) for n in names))
    if canonical != names:
        prop[key] = canonical
        steps.append("edited field names")


def _migrate_property(raw: Any, steps: list[str]) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise CollectionCorruptError(f"property entry is not an object: {type(raw).__name__}")
    prop = dict(raw)
    if not prop.get("id"):
        prop["id"] = str(uuid.uuid4())
        steps.append("property id assigned")
    if not prop.get("createdAt") and not prop.get("created_at"):
        prop["createdAt"] = datetime.now(timezone.utc).isoformat()
        steps.append("property createdAt assigned")
    _migrate_ratings(prop, steps)
    _migrate_edited_names(prop, steps)
    return prop


# ============================================================
# Public API
# ============================================================


def migrate_collection(raw: Any) -> tuple[PropertyCollection, MigrationReport]:
    """
    Bring a decoded collection document up to the current shape.

    Raises:
        CollectionCorruptError: `raw` is not an object, or the migrated
            document still fails validation.
    """
    if not isinstance(raw, Mapping):
        raise CollectionCorruptError(f"collection root is not an object: {type(raw).__name__}")

    data = copy.deepcopy(dict(raw))
    steps: list[str] = []

    settings = _migrate_settings(data.get("settings"), steps)

    props_raw = data.get("properties")
    if props_raw is None:
        props_raw = []
    if not isinstance(props_raw, list):
        raise CollectionCorruptError("properties is not a list")
    properties = [_migrate_property(p, steps) for p in props_raw]

    try:
        collection = PropertyCollection.model_validate({"properties": properties, "settings": settings})
    except ValidationError as e:
        raise CollectionCorruptError(f"collection failed validation after migration: {e}") from e

    unique_steps = tuple(dict.fromkeys(steps))
    if unique_steps:
        logger.info("collection migrated: %s", ", ".join(unique_steps))
    return collection, MigrationReport(changed=bool(unique_steps), steps=unique_steps)
