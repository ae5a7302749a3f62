"""
HistoryRecorder -- field-level change history written with every edit.

Responsibility:
    Takes a snapshot of an asset's tracked fields before an edit, diffs it
    against the edited asset, and appends one history row per changed
    field.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.  The rows are
    written in the caller's transaction, so history commits or rolls back
    together with the edit that produced it.

Invariants enforced:
    - No entry when before and after are equal (None and "" are equal).
    - Reference fields are snapshotted as display values: location room
      name, operator "name (position)", identifier composed display string.
    - Existing entries are never updated or deleted here.
"""

from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session

from asset_kernel.domain.clock import Clock, SystemClock
from asset_kernel.domain.dtos import HistoryEntryInfo
from asset_kernel.domain.history import (
    TRACKED_FIELDS,
    HistoryField,
    Snapshot,
    diff_snapshots,
    render_value,
)
from asset_kernel.domain.values import AssetKind
from asset_kernel.logging_config import get_logger
from asset_kernel.models import HISTORY_MODELS
from asset_kernel.selectors.history_selector import to_history_info
from asset_kernel.services.base import BaseService

logger = get_logger("services.history_recorder")

Reader = Callable[[Any], str | None]


def _attr(name: str) -> Reader:
    return lambda asset: render_value(getattr(asset, name))


def _display(name: str) -> Reader:
    def read(asset: Any) -> str | None:
        identifier = getattr(asset, name)
        return identifier.display if identifier is not None else None
    return read


def _location(asset: Any) -> str | None:
    return asset.location.room_name if asset.location is not None else None


def _operator(asset: Any) -> str | None:
    operator = asset.operator
    if operator is None:
        return None
    return f"{operator.name} ({operator.position})" if operator.position else operator.name


def _ap_year(asset: Any) -> str | None:
    return str(asset.ap_year.year) if asset.ap_year is not None else None


_READERS: dict[AssetKind, dict[HistoryField, Reader]] = {
    AssetKind.DEVICE: {
        HistoryField.TYPE: _attr("type"),
        HistoryField.MANUFACTURER: _attr("manufacturer"),
        HistoryField.MODEL_NAME: _attr("model_name"),
        HistoryField.PURCHASE_DATE: _attr("purchase_date"),
        HistoryField.IP_ADDRESS: _attr("ip_address"),
        HistoryField.PURPOSE: _attr("purpose"),
        HistoryField.SET_TYPE: _attr("set_type"),
        HistoryField.UNUSED: _attr("unused"),
        HistoryField.NOTE: _attr("note"),
        HistoryField.LOCATION: _location,
        HistoryField.OPERATOR: _operator,
        HistoryField.MANAGEMENT_TAG: _display("management_tag"),
        HistoryField.ASSET_TAG: _display("asset_tag"),
    },
    AssetKind.WIRELESS_AP: {
        HistoryField.LOCATION: _location,
        HistoryField.MANUFACTURER: _attr("manufacturer"),
        HistoryField.MODEL: _attr("model"),
        HistoryField.MAC_ADDRESS: _attr("mac_address"),
        HistoryField.NEW_LABEL_NUMBER: _attr("new_label_number"),
        HistoryField.DEVICE_NUMBER: _attr("device_number"),
        HistoryField.CLASSROOM_TYPE: _attr("classroom_type"),
        HistoryField.SPEED: _attr("speed"),
        HistoryField.PREV_LOCATION: _attr("prev_location"),
        HistoryField.PREV_LABEL_NUMBER: _attr("prev_label_number"),
        HistoryField.AP_YEAR: _ap_year,
        HistoryField.MANAGEMENT_TAG: _display("management_tag"),
        HistoryField.ASSET_TAG: _display("asset_tag"),
    },
}


def take_snapshot(kind: AssetKind, asset: Any) -> dict[HistoryField, str | None]:
    """Display values of every tracked field of an asset."""
    readers = _READERS[kind]
    return {field: readers[field](asset) for field in TRACKED_FIELDS[kind]}


class HistoryRecorder(BaseService):
    """Appends change history for asset edits."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def snapshot(self, kind: AssetKind, asset: Any) -> dict[HistoryField, str | None]:
        return take_snapshot(kind, asset)

    def record(
        self,
        kind: AssetKind,
        asset: Any,
        previous: Snapshot,
        actor_id: str | None = None,
    ) -> list[HistoryEntryInfo]:
        """
        Append one entry per tracked field that differs from ``previous``.

        Preconditions:
            - ``asset`` carries the edited values (flushed or pending).
            - ``previous`` was taken with snapshot() before the edit.

        Returns:
            The recorded entries, in tracked-field order.  Empty when
            nothing changed.
        """
        changes = diff_snapshots(previous, take_snapshot(kind, asset), TRACKED_FIELDS[kind])
        if not changes:
            logger.debug(
                "history_no_changes",
                extra={"asset_kind": kind.value, "asset_id": asset.id},
            )
            return []

        model = HISTORY_MODELS[kind]
        modified_at = self._clock.now()
        rows = [
            model(
                asset_id=asset.id,
                tenant_id=asset.tenant_id,
                field_name=change.field.value,
                before_value=change.before,
                after_value=change.after,
                actor_id=actor_id,
                modified_at=modified_at,
            )
            for change in changes
        ]
        self.session.add_all(rows)
        self.session.flush()

        logger.info(
            "history_recorded",
            extra={
                "asset_kind": kind.value,
                "asset_id": asset.id,
                "change_count": len(rows),
                "fields": [change.field.value for change in changes],
            },
        )
        return [to_history_info(row) for row in rows]
