"""
HistoryRetentionService -- age-based purge of change history.

History rows are never edited; the only way they leave the store is a
set-based delete.  This service removes entries older than a cutoff,
optionally limited to one tenant and/or one asset kind.  Flush-only: the
caller commits.
"""

from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.orm import Session

from asset_kernel.domain.clock import Clock, SystemClock
from asset_kernel.domain.values import AssetKind
from asset_kernel.exceptions import ValidationError
from asset_kernel.logging_config import get_logger
from asset_kernel.models import HISTORY_MODELS
from asset_kernel.services.base import BaseService

logger = get_logger("services.history_retention")


class HistoryRetentionService(BaseService):
    """Deletes history entries past their retention period."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        retention_days: int | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._retention_days = retention_days

    def purge(
        self,
        before: datetime,
        kind: AssetKind | None = None,
        tenant_id: int | None = None,
    ) -> int:
        """
        Delete entries modified strictly before ``before``.

        Returns:
            Number of entries deleted.
        """
        kinds = [kind] if kind is not None else list(HISTORY_MODELS)
        total = 0
        for asset_kind in kinds:
            model = HISTORY_MODELS[asset_kind]
            stmt = delete(model).where(model.modified_at < before)
            if tenant_id is not None:
                stmt = stmt.where(model.tenant_id == tenant_id)
            result = self.session.execute(
                stmt.execution_options(synchronize_session=False)
            )
            total += result.rowcount

        logger.info(
            "history_purged",
            extra={
                "cutoff": before,
                "asset_kind": kind.value if kind is not None else None,
                "purge_tenant_id": tenant_id,
                "deleted": total,
            },
        )
        return total

    def purge_expired(self, tenant_id: int | None = None) -> int:
        """
        Purge everything older than the configured retention period.

        Returns 0 without touching the store when retention is unlimited.
        """
        if self._retention_days is None:
            logger.debug("history_retention_unlimited")
            return 0
        if self._retention_days < 1:
            raise ValidationError("retention_days", "must be at least 1", self._retention_days)
        cutoff = self._clock.now() - timedelta(days=self._retention_days)
        return self.purge(cutoff, tenant_id=tenant_id)
