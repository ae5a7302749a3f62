"""
Pure domain layer.

Value objects, identifier rules, category tables and history diffing with
NO dependencies on the ORM, the database or I/O.
"""

from asset_kernel.domain.categories import derive_asset_tag_category
from asset_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from asset_kernel.domain.dtos import (
    AssetFields,
    AssetRecord,
    AssetRef,
    DeletionSummary,
    DeviceFields,
    HistoryEntryInfo,
    HistoryFilter,
    HistoryPage,
    IdentifierInfo,
    IdentifierRequest,
    PageRequest,
    TagRequest,
    WirelessApFields,
)
from asset_kernel.domain.history import FieldChange, HistoryField, diff_snapshots, field_label
from asset_kernel.domain.identifiers import IdentifierKey, SequenceKey, format_display
from asset_kernel.domain.values import AssetKind, DeletionGroup, IdentifierKind

__all__ = [
    "AssetFields",
    "AssetKind",
    "AssetRecord",
    "AssetRef",
    "Clock",
    "DeletionGroup",
    "DeletionSummary",
    "DeterministicClock",
    "DeviceFields",
    "FieldChange",
    "HistoryEntryInfo",
    "HistoryField",
    "HistoryFilter",
    "HistoryPage",
    "IdentifierInfo",
    "IdentifierKey",
    "IdentifierKind",
    "IdentifierRequest",
    "PageRequest",
    "SequenceKey",
    "SystemClock",
    "TagRequest",
    "WirelessApFields",
    "derive_asset_tag_category",
    "diff_snapshots",
    "field_label",
    "format_display",
]
