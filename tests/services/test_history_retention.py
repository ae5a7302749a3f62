"""
Tests for HistoryRetentionService.

Covers:
- Purge by cutoff, per kind and per tenant
- Retention-period purge driven by the clock
- Unlimited retention
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from asset_kernel.domain.clock import DeterministicClock
from asset_kernel.domain.values import AssetKind
from asset_kernel.exceptions import ValidationError
from asset_kernel.models import Device, DeviceHistory, WirelessAp, WirelessApHistory
from asset_kernel.services.history_retention import HistoryRetentionService

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(NOW)


@pytest.fixture
def seed_history(session):
    """Factory: one history row per age (in days) for a new device and AP."""

    def _seed(tenant, ages: list[int]) -> None:
        device = Device(tenant_id=tenant.id, type="monitor")
        ap = WirelessAp(tenant_id=tenant.id)
        session.add_all([device, ap])
        session.flush()
        for age in ages:
            modified_at = NOW - timedelta(days=age)
            session.add(DeviceHistory(
                asset_id=device.id, tenant_id=tenant.id, field_name="note",
                before_value=None, after_value=f"{age}", modified_at=modified_at,
            ))
            session.add(WirelessApHistory(
                asset_id=ap.id, tenant_id=tenant.id, field_name="speed",
                before_value=None, after_value=f"{age}", modified_at=modified_at,
            ))
        session.flush()

    return _seed


def _count(session, model) -> int:
    return session.execute(select(func.count(model.id))).scalar_one()


class TestPurge:
    """Explicit cutoff purges."""

    def test_purge_before_cutoff(self, session, tenant, seed_history, clock):
        seed_history(tenant, [400, 200, 10])
        service = HistoryRetentionService(session, clock)

        deleted = service.purge(NOW - timedelta(days=100))

        assert deleted == 4
        assert _count(session, DeviceHistory) == 1
        assert _count(session, WirelessApHistory) == 1

    def test_cutoff_is_exclusive(self, session, tenant, seed_history, clock):
        seed_history(tenant, [30])
        service = HistoryRetentionService(session, clock)

        assert service.purge(NOW - timedelta(days=30)) == 0

    def test_purge_one_kind(self, session, tenant, seed_history, clock):
        seed_history(tenant, [400])
        service = HistoryRetentionService(session, clock)

        assert service.purge(NOW, kind=AssetKind.WIRELESS_AP) == 1
        assert _count(session, DeviceHistory) == 1

    def test_purge_one_tenant(self, session, create_tenant, seed_history, clock):
        first = create_tenant("North High", 1)
        second = create_tenant("South High", 2)
        seed_history(first, [400])
        seed_history(second, [400])
        service = HistoryRetentionService(session, clock)

        assert service.purge(NOW, tenant_id=first.id) == 2
        remaining = session.execute(select(DeviceHistory.tenant_id)).scalars().all()
        assert remaining == [second.id]

    def test_purge_logged(self, session, tenant, seed_history, clock, captured_logs):
        seed_history(tenant, [400])

        HistoryRetentionService(session, clock).purge(NOW)

        record = next(r for r in captured_logs() if r["message"] == "history_purged")
        assert record["deleted"] == 2


class TestPurgeExpired:
    """Retention-period purges."""

    def test_retention_days(self, session, tenant, seed_history, clock):
        seed_history(tenant, [400, 366, 364, 1])
        service = HistoryRetentionService(session, clock, retention_days=365)

        assert service.purge_expired() == 4
        assert _count(session, DeviceHistory) == 2

    def test_clock_moves_the_cutoff(self, session, tenant, seed_history, clock):
        seed_history(tenant, [10])
        service = HistoryRetentionService(session, clock, retention_days=30)

        assert service.purge_expired() == 0
        clock.set_time(NOW + timedelta(days=25))
        assert service.purge_expired() == 2

    def test_unlimited_retention(self, session, tenant, seed_history, clock):
        seed_history(tenant, [4000])
        service = HistoryRetentionService(session, clock)

        assert service.purge_expired() == 0
        assert _count(session, DeviceHistory) == 1

    def test_invalid_retention(self, session, clock):
        with pytest.raises(ValidationError):
            HistoryRetentionService(session, clock, retention_days=0).purge_expired()
