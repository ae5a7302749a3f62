"""
Field-level diffing for asset change history.

Responsibility:
    Declares which fields of each asset kind are tracked, how values are
    rendered for comparison and storage, and computes the list of changes
    between two snapshots.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Snapshots are plain
    mappings built by the History Recorder from ORM rows.

Comparison rules:
    - None and "" are the same value.
    - Reference fields (location, operator, identifiers) are compared by
      their composed display strings, so pointing an asset at a different
      identifier row with the same display value is not a change.
    - Recorded before/after values keep their original representation
      (None stays None, "" stays "").
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from asset_kernel.domain.values import AssetKind


class HistoryField(str, Enum):
    """Symbolic names of tracked fields, stored in history rows."""

    TYPE = "type"
    MANUFACTURER = "manufacturer"
    MODEL_NAME = "model_name"
    MODEL = "model"
    PURCHASE_DATE = "purchase_date"
    IP_ADDRESS = "ip_address"
    PURPOSE = "purpose"
    SET_TYPE = "set_type"
    UNUSED = "unused"
    NOTE = "note"
    LOCATION = "location"
    OPERATOR = "operator"
    MAC_ADDRESS = "mac_address"
    NEW_LABEL_NUMBER = "new_label_number"
    DEVICE_NUMBER = "device_number"
    CLASSROOM_TYPE = "classroom_type"
    SPEED = "speed"
    PREV_LOCATION = "prev_location"
    PREV_LABEL_NUMBER = "prev_label_number"
    AP_YEAR = "ap_year"
    ASSET_TAG = "asset_tag"
    MANAGEMENT_TAG = "management_tag"


FIELD_LABELS: dict[HistoryField, str] = {
    HistoryField.TYPE: "Type",
    HistoryField.MANUFACTURER: "Manufacturer",
    HistoryField.MODEL_NAME: "Model name",
    HistoryField.MODEL: "Model",
    HistoryField.PURCHASE_DATE: "Purchase date",
    HistoryField.IP_ADDRESS: "IP address",
    HistoryField.PURPOSE: "Purpose",
    HistoryField.SET_TYPE: "Set type",
    HistoryField.UNUSED: "Unused",
    HistoryField.NOTE: "Note",
    HistoryField.LOCATION: "Location",
    HistoryField.OPERATOR: "Operator",
    HistoryField.MAC_ADDRESS: "MAC address",
    HistoryField.NEW_LABEL_NUMBER: "Label number",
    HistoryField.DEVICE_NUMBER: "Device number",
    HistoryField.CLASSROOM_TYPE: "Classroom type",
    HistoryField.SPEED: "Speed",
    HistoryField.PREV_LOCATION: "Previous location",
    HistoryField.PREV_LABEL_NUMBER: "Previous label number",
    HistoryField.AP_YEAR: "Install year",
    HistoryField.ASSET_TAG: "Asset tag",
    HistoryField.MANAGEMENT_TAG: "Management tag",
}

# Tracked fields per asset kind, in recording order.
TRACKED_FIELDS: dict[AssetKind, tuple[HistoryField, ...]] = {
    AssetKind.DEVICE: (
        HistoryField.TYPE,
        HistoryField.MANUFACTURER,
        HistoryField.MODEL_NAME,
        HistoryField.PURCHASE_DATE,
        HistoryField.IP_ADDRESS,
        HistoryField.PURPOSE,
        HistoryField.SET_TYPE,
        HistoryField.UNUSED,
        HistoryField.NOTE,
        HistoryField.LOCATION,
        HistoryField.OPERATOR,
        HistoryField.MANAGEMENT_TAG,
        HistoryField.ASSET_TAG,
    ),
    AssetKind.WIRELESS_AP: (
        HistoryField.LOCATION,
        HistoryField.MANUFACTURER,
        HistoryField.MODEL,
        HistoryField.MAC_ADDRESS,
        HistoryField.NEW_LABEL_NUMBER,
        HistoryField.DEVICE_NUMBER,
        HistoryField.CLASSROOM_TYPE,
        HistoryField.SPEED,
        HistoryField.PREV_LOCATION,
        HistoryField.PREV_LABEL_NUMBER,
        HistoryField.AP_YEAR,
        HistoryField.MANAGEMENT_TAG,
        HistoryField.ASSET_TAG,
    ),
}

Snapshot = Mapping[HistoryField, str | None]


@dataclass(frozen=True)
class FieldChange:
    """One tracked field whose display value changed."""

    field: HistoryField
    before: str | None
    after: str | None


def render_value(value: Any) -> str | None:
    """Render a scalar attribute as the string stored in history."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def values_equal(before: str | None, after: str | None) -> bool:
    """Equality with None and "" treated as the same value."""
    return (before or "") == (after or "")


def diff_snapshots(
    previous: Snapshot,
    updated: Snapshot,
    fields: Sequence[HistoryField],
) -> list[FieldChange]:
    """
    Changes between two snapshots, in ``fields`` order.

    Fields missing from a snapshot count as None.  Unchanged fields produce
    nothing, so diffing a snapshot against itself is always empty.
    """
    changes: list[FieldChange] = []
    for field in fields:
        before = previous.get(field)
        after = updated.get(field)
        if not values_equal(before, after):
            changes.append(FieldChange(field=field, before=before, after=after))
    return changes


def field_label(field: HistoryField | str) -> str:
    """Human-readable label for a tracked field; unknown names pass through."""
    try:
        return FIELD_LABELS[HistoryField(field)]
    except ValueError:
        return str(field)
