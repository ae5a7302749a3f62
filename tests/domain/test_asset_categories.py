"""
Tests for asset-tag category derivation.

Covers:
- Table lookups for every known asset type
- Desktop categories taken from the management tag
- Fallbacks for unknown, blank and missing input
"""

import pytest

from asset_kernel.domain.categories import (
    ASSET_TYPE_CATEGORIES,
    DEFAULT_CATEGORY,
    DEFAULT_DESKTOP_CATEGORY,
    DESKTOP_MANAGEMENT_CATEGORIES,
    derive_asset_tag_category,
)


class TestAssetTypeCategories:
    """Non-desktop asset types map through one table."""

    @pytest.mark.parametrize(
        "asset_type,expected",
        [
            ("monitor", "MO"),
            ("printer", "PR"),
            ("tv", "TV"),
            ("interactive_whiteboard", "ID"),
            ("electronic_podium", "ED"),
            ("did", "DI"),
            ("tablet", "TB"),
            ("projector", "PJ"),
            ("wireless_ap", "AP"),
        ],
    )
    def test_known_types(self, asset_type, expected):
        assert derive_asset_tag_category(asset_type) == expected

    def test_lookup_ignores_case_and_whitespace(self):
        assert derive_asset_tag_category("  Monitor ") == "MO"

    def test_unknown_type_falls_back(self):
        assert derive_asset_tag_category("label printer 3000") == DEFAULT_CATEGORY

    @pytest.mark.parametrize("asset_type", [None, "", "   "])
    def test_missing_type_falls_back(self, asset_type):
        assert derive_asset_tag_category(asset_type) == DEFAULT_CATEGORY

    def test_management_category_ignored_for_non_desktops(self):
        """Only desktops consult the management tag."""
        assert derive_asset_tag_category("monitor", "education") == "MO"

    def test_every_code_is_two_letters(self):
        codes = list(ASSET_TYPE_CATEGORIES.values()) + list(DESKTOP_MANAGEMENT_CATEGORIES.values())
        assert all(len(code) == 2 and code.isupper() for code in codes)


class TestDesktopCategories:
    """Desktops take their category from the management tag category."""

    @pytest.mark.parametrize(
        "management_category,expected",
        [
            ("work", "DW"),
            ("education", "DE"),
            ("other", "DK"),
            ("computer_education", "DC"),
            ("school_purchase", "DS"),
            ("donation", "DD"),
        ],
    )
    def test_management_category_mapping(self, management_category, expected):
        assert derive_asset_tag_category("desktop", management_category) == expected

    def test_desktop_without_management_tag(self):
        assert derive_asset_tag_category("desktop") == DEFAULT_DESKTOP_CATEGORY

    def test_desktop_with_unknown_management_category(self):
        assert derive_asset_tag_category("Desktop", "lab") == DEFAULT_DESKTOP_CATEGORY
