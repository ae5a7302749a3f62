"""
Tests for ORM immutability listeners.

Covers:
- History entries reject ORM updates and deletes
- Identifier key columns reject changes; identifiers reject ORM deletes
- Core set-based deletes remain available for purges
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import delete, func, select

from asset_kernel.domain.identifiers import IdentifierKey
from asset_kernel.domain.values import IdentifierKind
from asset_kernel.exceptions import ImmutabilityViolationError
from asset_kernel.models import Device, DeviceHistory, Identifier
from asset_kernel.services.identifier_allocator import IdentifierAllocator


@pytest.fixture
def history_entry(session, tenant) -> DeviceHistory:
    device = Device(tenant_id=tenant.id, type="monitor")
    session.add(device)
    session.flush()
    entry = DeviceHistory(
        asset_id=device.id,
        tenant_id=tenant.id,
        field_name="note",
        before_value=None,
        after_value="new",
        modified_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
    )
    session.add(entry)
    session.flush()
    return entry


@pytest.fixture
def identifier(session, tenant) -> Identifier:
    return IdentifierAllocator(session).allocate_explicit(
        IdentifierKey(tenant.id, IdentifierKind.ASSET_TAG, "MO", "24", 1)
    )


class TestHistoryImmutability:
    """History is append-only."""

    def test_update_rejected(self, session, history_entry):
        history_entry.after_value = "tampered"

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.code == "IMMUTABILITY_VIOLATION"
        session.rollback()

    def test_delete_rejected(self, session, history_entry):
        session.delete(history_entry)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_core_delete_allowed(self, session, history_entry):
        session.execute(delete(DeviceHistory).where(DeviceHistory.id == history_entry.id))

        assert session.execute(select(func.count(DeviceHistory.id))).scalar_one() == 0


class TestIdentifierImmutability:
    """Identifier keys never change and numbers are never released."""

    @pytest.mark.parametrize(
        "attribute, value",
        [("sequence", 2), ("category", "PR"), ("year", "23")],
    )
    def test_key_change_rejected(self, session, identifier, attribute, value):
        setattr(identifier, attribute, value)

        with pytest.raises(ImmutabilityViolationError, match=attribute):
            session.flush()
        session.rollback()

    def test_delete_rejected(self, session, identifier):
        session.delete(identifier)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_violation_logged(self, session, identifier, captured_logs):
        identifier.sequence = 5

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        record = next(r for r in captured_logs() if r["message"] == "immutability_violation_blocked")
        assert record["entity_type"] == "Identifier"
        assert record["operation"] == "UPDATE"
