"""
Tests for suspended_foreign_keys.

Covers:
- Per-dialect suspend/restore statements
- Restoration on normal exit and on error
- Unknown dialects rejected before anything is executed
- Real suspension on the test database
"""

from types import SimpleNamespace

import pytest
from sqlalchemy import delete, func, select
from sqlalchemy.exc import OperationalError

from asset_kernel.db.constraints import FOREIGN_KEY_TOGGLES, suspended_foreign_keys
from asset_kernel.models import Device, Tenant


class _RecordingSession:
    """Minimal session double that records executed SQL."""

    def __init__(self, dialect: str, fail_on: str | None = None):
        self._bind = SimpleNamespace(dialect=SimpleNamespace(name=dialect))
        self._fail_on = fail_on
        self.executed: list[str] = []

    def get_bind(self):
        return self._bind

    def execute(self, statement):
        sql = str(statement)
        if sql == self._fail_on:
            raise OperationalError(sql, {}, Exception("current transaction is aborted"))
        self.executed.append(sql)


class TestStatements:
    """Dialect-specific toggles."""

    @pytest.mark.parametrize("dialect", sorted(FOREIGN_KEY_TOGGLES))
    def test_suspend_then_restore(self, dialect):
        session = _RecordingSession(dialect)
        suspend_sql, restore_sql = FOREIGN_KEY_TOGGLES[dialect]

        with suspended_foreign_keys(session):
            assert session.executed == [suspend_sql]

        assert session.executed == [suspend_sql, restore_sql]

    def test_postgres_defers_constraints(self):
        session = _RecordingSession("postgresql")
        with suspended_foreign_keys(session):
            pass
        assert session.executed == ["SET CONSTRAINTS ALL DEFERRED", "SET CONSTRAINTS ALL IMMEDIATE"]

    def test_unknown_dialect_rejected(self):
        session = _RecordingSession("oracle")

        with pytest.raises(ValueError, match="oracle"):
            with suspended_foreign_keys(session):
                pytest.fail("body must not run")

        assert session.executed == []


class TestRestoreOnError:
    """Every exit path restores enforcement."""

    def test_restored_when_body_raises(self):
        session = _RecordingSession("sqlite")

        with pytest.raises(RuntimeError):
            with suspended_foreign_keys(session):
                raise RuntimeError("delete failed")

        assert session.executed[-1] == "PRAGMA defer_foreign_keys = OFF"

    def test_failed_restore_does_not_mask_original_error(self, captured_logs):
        session = _RecordingSession("postgresql", fail_on="SET CONSTRAINTS ALL IMMEDIATE")

        with pytest.raises(RuntimeError, match="delete failed"):
            with suspended_foreign_keys(session):
                raise RuntimeError("delete failed")

        messages = [r["message"] for r in captured_logs()]
        assert "foreign_keys_restore_deferred_to_rollback" in messages


class TestOnDatabase:
    """Suspension against the real test database."""

    def test_parent_deleted_before_child(self, session, tenant):
        session.add(Device(tenant_id=tenant.id, type="monitor"))
        session.flush()
        tenant_id = tenant.id
        session.expunge_all()

        with suspended_foreign_keys(session):
            session.execute(delete(Tenant).where(Tenant.id == tenant_id))
            session.execute(delete(Device).where(Device.tenant_id == tenant_id))

        assert session.execute(select(func.count(Device.id))).scalar_one() == 0
