"""
Data transfer objects passed into and returned from the kernel services.

All DTOs are frozen dataclasses.  Services accept the request types and
return the result types; ORM rows never leave the service layer.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Mapping

from asset_kernel.domain.values import AssetKind, DeletionGroup, IdentifierKind

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TagRequest:
    """
    Requested identifier of one kind.

    category: required for management tags; for asset tags None means
        "derive from the asset type".
    year: 2-digit token for asset tags, 2 or 4 digits for management tags.
        None means "no year"; for asset tags it means "take the year of the
        asset's purchase or install date", and an empty string forces no year.
    sequence: explicit number; None means "next free number".
    """

    category: str | None = None
    year: str | int | None = None
    sequence: int | str | None = None


@dataclass(frozen=True)
class IdentifierRequest:
    """Requested identifiers for an asset; None leaves that kind unchanged."""

    asset_tag: TagRequest | None = None
    management_tag: TagRequest | None = None


@dataclass(frozen=True)
class DeviceFields:
    """Editable attributes of a device.  Location and operator are names."""

    type: str | None = None
    manufacturer: str | None = None
    model_name: str | None = None
    purchase_date: date | None = None
    ip_address: str | None = None
    purpose: str | None = None
    set_type: str | None = None
    unused: bool = False
    note: str | None = None
    location: str | None = None
    operator: str | None = None
    operator_position: str | None = None


@dataclass(frozen=True)
class WirelessApFields:
    """Editable attributes of a wireless access point."""

    location: str | None = None
    new_label_number: str | None = None
    device_number: str | None = None
    ap_year: date | None = None
    manufacturer: str | None = None
    model: str | None = None
    mac_address: str | None = None
    prev_location: str | None = None
    prev_label_number: str | None = None
    classroom_type: str | None = None
    speed: str | None = None


AssetFields = DeviceFields | WirelessApFields


@dataclass(frozen=True)
class AssetRef:
    """Reference to one asset record."""

    kind: AssetKind
    id: int


@dataclass(frozen=True)
class PageRequest:
    """1-based page request.  size None uses the configured default."""

    page: int = 1
    size: int | None = None


@dataclass(frozen=True)
class HistoryFilter:
    """
    Filters for tenant-wide history listings.

    keyword matches (case-insensitive substring) against before or after
    values.  modified_from is inclusive, modified_to exclusive.
    """

    field_name: str | None = None
    keyword: str | None = None
    actor_id: str | None = None
    asset_id: int | None = None
    modified_from: datetime | None = None
    modified_to: datetime | None = None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IdentifierInfo:
    """An allocated identifier with its composed display string."""

    id: int
    tenant_id: int
    kind: IdentifierKind
    category: str
    year: str | None
    sequence: int
    display: str


@dataclass(frozen=True)
class AssetRecord:
    """Persisted state of one asset."""

    kind: AssetKind
    id: int
    tenant_id: int
    fields: AssetFields
    asset_tag: IdentifierInfo | None = None
    management_tag: IdentifierInfo | None = None

    @property
    def ref(self) -> AssetRef:
        return AssetRef(self.kind, self.id)


@dataclass(frozen=True)
class HistoryEntryInfo:
    """One recorded field change."""

    id: int
    asset_kind: AssetKind
    asset_id: int
    tenant_id: int
    field_name: str
    field_label: str
    before_value: str | None
    after_value: str | None
    actor_id: str | None
    modified_at: datetime


@dataclass(frozen=True)
class HistoryPage:
    """One page of a history listing."""

    items: tuple[HistoryEntryInfo, ...]
    total: int
    page: int
    size: int

    @property
    def pages(self) -> int:
        if self.size <= 0:
            return 0
        return (self.total + self.size - 1) // self.size

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


@dataclass(frozen=True)
class DeletionSummary:
    """
    Outcome of a tenant purge.

    counts_before and deleted are keyed by table name.  Selective purges
    only report the groups they touched.
    """

    tenant_id: int
    mode: str
    groups: tuple[DeletionGroup, ...]
    counts_before: Mapping[str, int] = field(default_factory=dict)
    deleted: Mapping[str, int] = field(default_factory=dict)
    attempts: int = 1
    duration_ms: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "counts_before", MappingProxyType(dict(self.counts_before)))
        object.__setattr__(self, "deleted", MappingProxyType(dict(self.deleted)))

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted.values())
