"""Tests for the field normalizers.

Upstream values arrive as numbers or numeric strings, bare strings or
per-locale objects, and dates in DD.MM.YYYY form. These tests pin the
canonical forms the record schemas rely on.
"""

import math
from datetime import date, datetime

import pytest

from src.charter.api.exceptions import NormalizationError
from src.charter.sync.domain.normalizers import (
    SUPPORTED_LOCALES,
    english_text,
    external_id,
    format_provider_date,
    format_provider_datetime,
    id_list,
    iso_to_provider_date,
    normalize_multilingual,
    optional_bool,
    optional_id,
    optional_int,
    optional_measure,
    optional_number,
    parse_provider_date,
    str_list,
    to_multilingual_text,
    to_number,
)


class TestToNumber:
    """Numbers and numeric strings become floats; everything else is NaN."""

    def test_numeric_string(self):
        assert to_number("12.5") == 12.5

    def test_number_passes_through(self):
        assert to_number(12.5) == 12.5
        assert to_number(3) == 3.0

    def test_whitespace_is_ignored(self):
        assert to_number(" 7 ") == 7.0

    def test_unparseable_string_is_not_finite(self):
        assert math.isnan(to_number("abc"))

    def test_other_types_are_not_finite(self):
        assert math.isnan(to_number(None))
        assert math.isnan(to_number({"value": 1}))

    def test_optional_number_maps_non_finite_to_none(self):
        assert optional_number("abc") is None
        assert optional_number("inf") is None
        assert optional_number("") is None
        assert optional_number("4.2") == 4.2

    def test_measures_are_never_negative(self):
        assert optional_measure("-1") is None
        assert optional_measure("13.9") == 13.9

    def test_counts_must_be_integral(self):
        assert optional_int("3") == 3
        assert optional_int(4.0) == 4
        assert optional_int("3.5") is None


class TestMultilingualText:
    """Bare strings are replicated into every supported locale."""

    def test_string_is_replicated(self):
        text = to_multilingual_text("Oceanis 46")

        assert text["textEN"] == "Oceanis 46"
        assert set(text) == set(SUPPORTED_LOCALES)
        assert all(value == "Oceanis 46" for value in text.values())

    def test_mapping_passes_through_unchanged(self):
        value = {"textEN": "A", "textDE": "B"}

        assert to_multilingual_text(value) is value

    def test_english_is_filled_from_first_locale(self):
        assert normalize_multilingual({"textDE": "Segelboot"}) == {
            "textDE": "Segelboot",
            "textEN": "Segelboot",
        }

    def test_numbers_become_text(self):
        assert normalize_multilingual(46)["textEN"] == "46"

    def test_unusable_values(self):
        assert normalize_multilingual(None) is None
        assert normalize_multilingual({}) is None
        assert normalize_multilingual(["a"]) is None

    def test_english_text(self):
        assert english_text({"textEN": "Lagoon 42", "textHR": "Lagoon 42 HR"}) == "Lagoon 42"
        assert english_text("Dufour") == "Dufour"
        assert english_text(None) is None


class TestParseProviderDate:
    """Provider dates are day-first with optional time of day."""

    def test_day_comes_first(self):
        assert parse_provider_date("05.03.2024") == datetime(2024, 3, 5)

    def test_with_minutes(self):
        assert parse_provider_date("05.03.2024 14:30") == datetime(2024, 3, 5, 14, 30)

    def test_with_seconds(self):
        assert parse_provider_date("05.03.2024 14:30:15") == datetime(2024, 3, 5, 14, 30, 15)

    def test_single_digit_day_and_month(self):
        assert parse_provider_date("5.3.2024") == datetime(2024, 3, 5)

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty_input_is_none(self, value):
        assert parse_provider_date(value) is None

    def test_impossible_calendar_date_is_none(self):
        assert parse_provider_date("31.02.2024") is None

    def test_iso_fallback(self):
        assert parse_provider_date("2024-03-05") == datetime(2024, 3, 5)

    def test_aware_fallback_is_converted_to_naive_utc(self):
        assert parse_provider_date("2024-03-05T10:00:00+02:00") == datetime(2024, 3, 5, 8, 0)

    def test_garbage_is_none(self):
        assert parse_provider_date("next tuesday") is None

    def test_date_objects(self):
        assert parse_provider_date(date(2024, 3, 5)) == datetime(2024, 3, 5)


class TestWireFormat:
    def test_format_provider_date(self):
        assert format_provider_date(date(2024, 3, 5)) == "05.03.2024"

    def test_format_provider_datetime(self):
        assert format_provider_datetime(datetime(2024, 3, 5, 9, 7)) == "05.03.2024 09:07"

    def test_iso_to_provider_date(self):
        assert iso_to_provider_date("2024-03-05") == "05.03.2024"

    def test_iso_to_provider_date_rejects_garbage(self):
        with pytest.raises(ValueError):
            iso_to_provider_date("05.03.2024")


class TestIdentifiers:
    def test_external_id_parses_strings(self):
        assert external_id("42") == 42

    @pytest.mark.parametrize("value", [None, "", 0, -3, "abc", 1.5])
    def test_external_id_rejects_unusable_values(self, value):
        with pytest.raises(NormalizationError) as exc_info:
            external_id(value)

        assert exc_info.value.field == "id"

    def test_zero_means_not_linked(self):
        assert optional_id(0) is None
        assert optional_id("17") == 17

    def test_id_list_drops_unusable_entries(self):
        assert id_list([1, "2", {"id": 3}, 0, "x", None]) == [1, 2, 3]

    def test_id_list_accepts_scalars(self):
        assert id_list(5) == [5]
        assert id_list(None) == []


class TestScalars:
    @pytest.mark.parametrize("value,expected", [
        (True, True),
        ("true", True),
        ("1", True),
        (0, False),
        ("false", False),
        ("maybe", None),
        (None, None),
    ])
    def test_optional_bool(self, value, expected):
        assert optional_bool(value) is expected

    def test_str_list_accepts_url_objects(self):
        assert str_list(["a.jpg", {"url": "b.jpg"}, None, ""]) == ["a.jpg", "b.jpg"]
