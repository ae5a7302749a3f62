"""
Tests for identifier key value objects and input validation.

Covers:
- Display formats for asset tags and management tags
- Year token validation per identifier kind
- Sequence parsing (explicit numbers, leading zeros, rejects)
- Key equality with absent years
"""

from datetime import date

import pytest

from asset_kernel.domain.identifiers import (
    MAX_CATEGORY_LENGTH,
    IdentifierKey,
    SequenceKey,
    format_display,
    make_sequence_key,
    normalize_category,
    normalize_year,
    parse_sequence,
    year_token_from_date,
)
from asset_kernel.domain.values import IdentifierKind
from asset_kernel.exceptions import ValidationError

ASSET = IdentifierKind.ASSET_TAG
MGMT = IdentifierKind.MANAGEMENT_TAG


class TestDisplayFormat:
    """Composed display strings."""

    def test_asset_tag_with_school_code_and_year(self):
        assert format_display(ASSET, "MO", "24", 3, tenant_code=7) == "MO07240003"

    def test_asset_tag_without_school_code(self):
        assert format_display(ASSET, "MO", "24", 3) == "MO240003"

    def test_asset_tag_without_year(self):
        assert format_display(ASSET, "PR", None, 12, tenant_code=11) == "PR110012"

    def test_asset_tag_sequence_beyond_four_digits(self):
        assert format_display(ASSET, "MO", "24", 12345) == "MO2412345"

    def test_management_tag_with_year(self):
        assert format_display(MGMT, "work", "2024", 5) == "work-2024-005"

    def test_management_tag_without_year(self):
        assert format_display(MGMT, "work", None, 5) == "work-005"

    def test_management_tag_ignores_school_code(self):
        assert format_display(MGMT, "work", "24", 5, tenant_code=7) == "work-24-005"

    def test_key_display_matches_format(self):
        key = IdentifierKey(1, ASSET, "TV", "23", 41)
        assert key.display(tenant_code=2) == "TV02230041"


class TestYearValidation:
    """Asset tags take 2 digits; management tags 2 or 4."""

    @pytest.mark.parametrize("value,expected", [("24", "24"), (24, "24"), (" 07 ", "07")])
    def test_asset_tag_years(self, value, expected):
        assert normalize_year(ASSET, value) == expected

    @pytest.mark.parametrize("value", ["2024", "4", "2a", "٢٤"])
    def test_asset_tag_rejects(self, value):
        with pytest.raises(ValidationError) as exc_info:
            normalize_year(ASSET, value)
        assert exc_info.value.field == "year"

    @pytest.mark.parametrize("value", ["24", "2024", 2024])
    def test_management_tag_years(self, value):
        assert normalize_year(MGMT, value) == str(value)

    @pytest.mark.parametrize("value", ["202", "20245", "year"])
    def test_management_tag_rejects(self, value):
        with pytest.raises(ValidationError):
            normalize_year(MGMT, value)

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_blank_means_no_year(self, value):
        assert normalize_year(ASSET, value) is None
        assert normalize_year(MGMT, value) is None

    def test_year_token_from_date(self):
        assert year_token_from_date(date(2024, 5, 2)) == "24"
        assert year_token_from_date(date(2007, 1, 1)) == "07"
        assert year_token_from_date(None) is None


class TestSequenceParsing:
    """User-supplied sequence numbers."""

    @pytest.mark.parametrize("value,expected", [(3, 3), ("3", 3), ("0003", 3), (" 12 ", 12)])
    def test_valid_numbers(self, value, expected):
        assert parse_sequence(value) == expected

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_absent_number(self, value):
        assert parse_sequence(value) is None

    @pytest.mark.parametrize("value", [0, -1, "0", "-3", "3.5", "abc", True, "³"])
    def test_rejects(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_sequence(value)
        assert exc_info.value.field == "sequence"


class TestCategoryValidation:
    """Category codes."""

    def test_strips_whitespace(self):
        assert normalize_category(" MO ") == "MO"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_rejected(self, value):
        with pytest.raises(ValidationError):
            normalize_category(value)

    def test_too_long_rejected(self):
        with pytest.raises(ValidationError):
            normalize_category("X" * (MAX_CATEGORY_LENGTH + 1))

    def test_max_length_accepted(self):
        assert normalize_category("X" * MAX_CATEGORY_LENGTH) == "X" * MAX_CATEGORY_LENGTH


class TestKeys:
    """Key equality and construction."""

    def test_make_sequence_key_normalizes(self):
        key = make_sequence_key(1, "asset_tag", " MO ", 24)
        assert key == SequenceKey(1, ASSET, "MO", "24")

    def test_make_sequence_key_rejects_unknown_kind(self):
        with pytest.raises(ValidationError) as exc_info:
            make_sequence_key(1, "serial_number", "MO")
        assert exc_info.value.field == "kind"

    def test_absent_year_keys_are_equal(self):
        assert SequenceKey(1, MGMT, "work") == SequenceKey(1, MGMT, "work", None)
        assert SequenceKey(1, MGMT, "work").year_key == ""

    def test_absent_year_never_equals_present_year(self):
        assert SequenceKey(1, MGMT, "work") != SequenceKey(1, MGMT, "work", "24")

    def test_with_sequence_round_trip(self):
        seq_key = SequenceKey(1, ASSET, "MO", "24")
        key = seq_key.with_sequence(9)
        assert key.sequence == 9
        assert key.sequence_key == seq_key
