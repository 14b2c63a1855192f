# src/core/reconcile/merge.py
"""
Reconciliation of stored records with new values.

refresh_merge(current, extracted)
    Freshly extracted fields overwrite stored ones, except protectable fields
    (and fee sub-fields) a person has edited. Only determined fields apply.

manual_merge(current, updates)
    Every known field in `updates` overwrites the stored value, then the edited
    set grows by the names that were written.

Both keep `id`, `created_at`, `ratings` and `status`, and merge fees key by key.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from src.schemas.models import FEE_KEYS, ExtractedFields, FeeBundle, StoredProperty

from .edited_fields import canonical_field_name, fee_field_name, track_edited_fields

logger = logging.getLogger(__name__)

PROTECTED_FIELDS: tuple[str, ...] = (
    "price",
    "area",
    "year_built",
    "units",
    "station",
    "station_minute",
    "parking_status",
)
PROTECTED_FEES: tuple[str, ...] = FEE_KEYS

IMMUTABLE_FIELDS = frozenset({"id", "created_at"})
CURATION_FIELDS = frozenset({"ratings", "status", "manually_edited_fields"})


def _fees_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, FeeBundle):
        return value.model_dump(exclude_unset=True)
    if isinstance(value, Mapping):
        return {k: v for k, v in value.items() if k in FEE_KEYS}
    raise ValueError(f"fees must be a mapping of {', '.join(FEE_KEYS)}, got {type(value).__name__}")


def _merged_fees(current: FeeBundle, incoming: Mapping[str, Any]) -> dict[str, Any]:
    return {**current.model_dump(), **incoming}


def refresh_merge(current: StoredProperty, extracted: ExtractedFields) -> StoredProperty:
    edited = set(current.manually_edited_fields)
    incoming = extracted.determined()
    incoming.pop("url", None)

    for name in PROTECTED_FIELDS:
        if name in edited and name in incoming:
            logger.debug("refresh of %s keeps edited %s", current.id, name)
            incoming.pop(name)

    fees_in = {
        k: v for k, v in (incoming.pop("fees", None) or {}).items() if fee_field_name(k) not in edited
    }

    data = current.model_dump()
    data.update(incoming)
    data["fees"] = _merged_fees(current.fees, fees_in)
    return StoredProperty.model_validate(data)


def manual_merge(current: StoredProperty, updates: Mapping[str, Any]) -> StoredProperty:
    """
    Apply a person's partial update. Keys may be snake_case or camelCase.

    Raises:
        ValueError: a value has the wrong type for its field.
    """
    known = set(StoredProperty.model_fields)
    written: dict[str, Any] = {}
    for key, value in updates.items():
        name = canonical_field_name(key)
        if name in IMMUTABLE_FIELDS or name in CURATION_FIELDS:
            logger.debug("manual update of %s: dropping %s", current.id, name)
            continue
        if name not in known:
            logger.debug("manual update of %s: ignoring unknown field %s", current.id, key)
            continue
        written[name] = _fees_dict(value) if name == "fees" else value

    data = current.model_dump()
    for name, value in written.items():
        data[name] = _merged_fees(current.fees, value) if name == "fees" else value
    data["manually_edited_fields"] = track_edited_fields(current.manually_edited_fields, written)

    try:
        return StoredProperty.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"invalid manual update for {current.id}: {e}") from e
