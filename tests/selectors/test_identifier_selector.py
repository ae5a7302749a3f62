"""Tests for IdentifierSelector lookups."""

import pytest

from asset_kernel.domain.identifiers import IdentifierKey, SequenceKey
from asset_kernel.domain.values import IdentifierKind
from asset_kernel.selectors.identifier_selector import IdentifierSelector, find_identifier
from asset_kernel.services.identifier_allocator import IdentifierAllocator

ASSET = IdentifierKind.ASSET_TAG
MGMT = IdentifierKind.MANAGEMENT_TAG


@pytest.fixture
def selector(session) -> IdentifierSelector:
    return IdentifierSelector(session)


@pytest.fixture
def seeded(session, tenant):
    allocator = IdentifierAllocator(session)
    for key in (
        IdentifierKey(tenant.id, ASSET, "MO", "24", 1),
        IdentifierKey(tenant.id, ASSET, "MO", "24", 4),
        IdentifierKey(tenant.id, ASSET, "MO", "23", 2),
        IdentifierKey(tenant.id, ASSET, "PR", "24", 1),
        IdentifierKey(tenant.id, MGMT, "work", None, 3),
        IdentifierKey(tenant.id, MGMT, "work", "2024", 1),
    ):
        allocator.allocate_explicit(key)
    return tenant


class TestIdentifierSelector:
    """Identifier picker queries."""

    def test_find(self, selector, seeded):
        info = selector.find(IdentifierKey(seeded.id, ASSET, "MO", "24", 4))

        assert info is not None
        assert info.display == "MO07240004"
        assert info.kind == ASSET

    def test_find_missing(self, selector, seeded):
        assert selector.find(IdentifierKey(seeded.id, ASSET, "MO", "24", 2)) is None

    def test_find_absent_year(self, selector, seeded):
        info = selector.find(IdentifierKey(seeded.id, MGMT, "work", None, 3))

        assert info.year is None
        assert info.display == "work-003"

    def test_find_matches_allocated_row(self, session, selector, tenant):
        """The allocator and the selector resolve a key to the same row."""
        key = IdentifierKey(tenant.id, ASSET, "DW", "24", 7)
        allocated = IdentifierAllocator(session).allocate_explicit(key)

        assert find_identifier(session, key) is allocated
        assert selector.find(key).id == allocated.id
        assert find_identifier(session, IdentifierKey(tenant.id, ASSET, "DW", "24", 8)) is None

    def test_allocator_reuses_row_found_by_key(self, session, tenant):
        allocator = IdentifierAllocator(session)
        key = IdentifierKey(tenant.id, MGMT, "work", None, 5)

        first = allocator.allocate_explicit(key)
        assert allocator.allocate_explicit(key) is first
        assert allocator.next_sequence(tenant.id, MGMT, "work") == 6
        assert not hasattr(allocator, "find")

    def test_max_sequence(self, selector, seeded):
        assert selector.max_sequence(SequenceKey(seeded.id, ASSET, "MO", "24")) == 4
        assert selector.max_sequence(SequenceKey(seeded.id, ASSET, "MO", "22")) is None
        assert selector.max_sequence(SequenceKey(seeded.id, MGMT, "work", None)) == 3

    def test_categories(self, selector, seeded):
        assert selector.categories(seeded.id, ASSET) == ["MO", "PR"]
        assert selector.categories(seeded.id, MGMT) == ["work"]

    def test_years(self, selector, seeded):
        assert selector.years(seeded.id, ASSET, "MO") == ["23", "24"]
        assert selector.years(seeded.id, MGMT, "work") == [None, "2024"]

    def test_count_for_tenant(self, selector, seeded, create_tenant):
        other = create_tenant("South High", 2)

        assert selector.count_for_tenant(seeded.id) == 6
        assert selector.count_for_tenant(seeded.id, MGMT) == 2
        assert selector.count_for_tenant(other.id) == 0
