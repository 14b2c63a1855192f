# tests/unit/test_edited_fields.py
from src.core.reconcile import canonical_field_name, track_edited_fields, unmark_edited_fields
from src.schemas.models import FeeBundle


def test_canonical_names_accept_aliases():
    assert canonical_field_name("yearBuilt") == "year_built"
    assert canonical_field_name("year_built") == "year_built"
    assert canonical_field_name("fees.management") == "fees.management"


def test_track_adds_named_fields_in_order():
    names = track_edited_fields(
        ["price"],
        {"price": "1", "stationMinute": 5, "fees": {"management": 1.0}, "status": "viewed"},
    )
    assert names == ["price", "station_minute", "fees.management"]


def test_fees_expand_to_sub_fields_only():
    names = track_edited_fields([], {"fees": FeeBundle(repair=1.0, parking=2.0)})
    assert names == ["fees.repair", "fees.parking"]
    assert "fees" not in names


def test_unmark_fees_clears_every_fee_sub_field():
    existing = ["price", "fees.management", "fees.repair", "area"]
    assert unmark_edited_fields(existing, ["fees", "price"]) == ["area"]


def test_unmark_by_alias_and_unknown_names():
    assert unmark_edited_fields(["year_built", "area"], ["yearBuilt", "nope"]) == ["area"]
