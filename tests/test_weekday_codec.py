"""
Tests for the weekday codec.

Contract:
- canonical labels encode to 2-letter rule codes and decode back
- unknown labels map to None instead of raising
- ordinals count from Sunday = 0
"""

import pytest

from schedcal import weekday_codec
from schedcal.weekday_codec import Weekday

LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


@pytest.mark.parametrize("label", LABELS)
def test_encode_decode_roundtrip(label):
    code = weekday_codec.encode(label)
    assert code is not None and len(code) == 2
    assert weekday_codec.decode(code) == label


def test_codes_match_rule_grammar():
    assert [weekday_codec.encode(label) for label in LABELS] == ["SU", "MO", "TU", "WE", "TH", "FR", "SA"]


def test_ordinals_start_at_sunday():
    assert [weekday_codec.ordinal(label) for label in LABELS] == list(range(7))


def test_unknown_label_is_absent():
    assert weekday_codec.encode("Funday") is None
    assert weekday_codec.ordinal("monday") is None
    assert weekday_codec.decode("XX") is None


def test_canonical_label_accepts_common_spellings():
    assert weekday_codec.canonical_label("monday") == "Mon"
    assert weekday_codec.canonical_label(" THURS ") == "Thu"
    assert weekday_codec.canonical_label("Tu") == "Tue"
    assert weekday_codec.canonical_label("Wed.") == "Wed"
    assert weekday_codec.canonical_label("Someday") is None
    assert weekday_codec.canonical_label(3) is None


def test_parse_days_drops_unknown_and_duplicates_keeping_order():
    days = weekday_codec.parse_days(["Wed", "Blursday", "Mon", "Wed"])
    assert days == [Weekday.WED, Weekday.MON]


def test_weekday_enum_properties():
    assert Weekday.FRI.code == "FR"
    assert Weekday.FRI.ordinal == 5
    assert len(Weekday) == 7
