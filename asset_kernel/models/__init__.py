"""ORM models for the asset kernel."""

from asset_kernel.domain.values import AssetKind
from asset_kernel.models.asset import Device, WirelessAp
from asset_kernel.models.history import DeviceHistory, HistoryEntryMixin, WirelessApHistory
from asset_kernel.models.identifier import Identifier
from asset_kernel.models.location import Location, Operator
from asset_kernel.models.tenant import Tenant

# Asset kind -> model
ASSET_MODELS: dict[AssetKind, type] = {
    AssetKind.DEVICE: Device,
    AssetKind.WIRELESS_AP: WirelessAp,
}

HISTORY_MODELS: dict[AssetKind, type] = {
    AssetKind.DEVICE: DeviceHistory,
    AssetKind.WIRELESS_AP: WirelessApHistory,
}

__all__ = [
    "ASSET_MODELS",
    "HISTORY_MODELS",
    "Device",
    "DeviceHistory",
    "HistoryEntryMixin",
    "Identifier",
    "Location",
    "Operator",
    "Tenant",
    "WirelessAp",
    "WirelessApHistory",
]
