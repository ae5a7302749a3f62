"""
Value enums shared by the domain core, the models and the services.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Models import these so that the
    persisted string values and the in-memory values are the same objects.
"""

from enum import Enum


class AssetKind(str, Enum):
    """The two kinds of asset record the kernel manages."""

    DEVICE = "device"
    WIRELESS_AP = "wireless_ap"


class IdentifierKind(str, Enum):
    """
    The two independent identifier numbering domains.

    ASSET_TAG is the general per-school tag (category + school code + year +
    4-digit number).  MANAGEMENT_TAG is the per-category management number
    (category[-year]-3-digit number).
    """

    ASSET_TAG = "asset_tag"
    MANAGEMENT_TAG = "management_tag"


class DeletionGroup(str, Enum):
    """
    Groups of tenant data that a purge can remove, in canonical order.

    Declaration order is the delete order.
    """

    DEVICES = "devices"
    WIRELESS_APS = "wireless_aps"
    ASSET_TAGS = "asset_tags"
    OPERATORS = "operators"
    MANAGEMENT_TAGS = "management_tags"
    LOCATIONS = "locations"
