from .edited_fields import (
    ADMIN_FIELDS,
    canonical_field_name,
    track_edited_fields,
    unmark_edited_fields,
)
from .merge import PROTECTED_FEES, PROTECTED_FIELDS, manual_merge, refresh_merge

__all__ = [
    "ADMIN_FIELDS",
    "PROTECTED_FEES",
    "PROTECTED_FIELDS",
    "canonical_field_name",
    "manual_merge",
    "refresh_merge",
    "track_edited_fields",
    "unmark_edited_fields",
]
