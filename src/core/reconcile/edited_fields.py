# src/core/reconcile/edited_fields.py
"""
Manually-edited field tracking.

A stored record keeps the names of fields a person overrode. Names are the
snake_case model field names; fee sub-fields use compound names
(`fees.management`, `fees.repair`, `fees.parking`) distinct from `fees`.
The set only grows through manual edits and only shrinks through
`unmark_edited_fields`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from src.schemas.models import FEE_KEYS, FeeBundle, StoredProperty

# Governed by their own update paths, never protected from refresh.
ADMIN_FIELDS = frozenset({"manually_edited_fields", "ratings", "status"})

FEE_PREFIX = "fees."

_ALIAS_TO_NAME: dict[str, str] = {
    info.alias: name for name, info in StoredProperty.model_fields.items() if info.alias
}


def canonical_field_name(name: str) -> str:
    """snake_case name for a model field given either its name or its camelCase alias."""
    if name.startswith(FEE_PREFIX):
        return name
    return _ALIAS_TO_NAME.get(name, name)


def fee_field_name(key: str) -> str:
    return f"{FEE_PREFIX}{key}"


def _fee_keys(value: Any) -> list[str]:
    if isinstance(value, FeeBundle):
        return [k for k in FEE_KEYS if k in value.model_fields_set]
    if isinstance(value, Mapping):
        return [k for k in FEE_KEYS if k in value]
    return []


def _ordered_unique(names: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(names))


def track_edited_fields(existing: Iterable[str], updates: Mapping[str, Any]) -> list[str]:
    """existing ∪ {fields named in updates}, keeping first-seen order."""
    names = [canonical_field_name(n) for n in existing]
    for key, value in updates.items():
        name = canonical_field_name(key)
        if name in ADMIN_FIELDS:
            continue
        if name == "fees":
            names.extend(fee_field_name(k) for k in _fee_keys(value))
            continue
        names.append(name)
    return _ordered_unique(names)


def unmark_edited_fields(existing: Iterable[str], names: Iterable[str]) -> list[str]:
    """Remove `names` from the edited set. `fees` un-marks every fee sub-field."""
    drop = {canonical_field_name(n) for n in names}
    if "fees" in drop:
        drop.update(fee_field_name(k) for k in FEE_KEYS)
    return [n for n in _ordered_unique(canonical_field_name(n) for n in existing) if n not in drop]
