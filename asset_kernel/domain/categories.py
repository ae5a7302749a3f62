"""
Asset-tag category derivation -- one lookup, one place.

Every call site that needs an asset-tag category code derives it here.
Lookups are case-insensitive on stripped input.  Codes:

    desktop                  -> by management-tag category (see below)
    monitor                  -> MO
    printer                  -> PR
    tv                       -> TV
    interactive_whiteboard   -> ID
    electronic_podium        -> ED
    did                      -> DI
    tablet                   -> TB
    projector                -> PJ
    wireless_ap              -> AP
    anything else / missing  -> ET

Desktops are numbered by what they are used for, so their code follows the
management-tag category:

    work                -> DW   (also the default)
    education           -> DE
    other               -> DK
    computer_education  -> DC
    school_purchase     -> DS
    donation            -> DD
"""

DESKTOP_TYPE = "desktop"
WIRELESS_AP_TYPE = "wireless_ap"

DEFAULT_CATEGORY = "ET"
DEFAULT_DESKTOP_CATEGORY = "DW"

ASSET_TYPE_CATEGORIES: dict[str, str] = {
    "monitor": "MO",
    "printer": "PR",
    "tv": "TV",
    "interactive_whiteboard": "ID",
    "electronic_podium": "ED",
    "did": "DI",
    "tablet": "TB",
    "projector": "PJ",
    WIRELESS_AP_TYPE: "AP",
}

DESKTOP_MANAGEMENT_CATEGORIES: dict[str, str] = {
    "work": "DW",
    "education": "DE",
    "other": "DK",
    "computer_education": "DC",
    "school_purchase": "DS",
    "donation": "DD",
}


def _normalize(value: str | None) -> str:
    return (value or "").strip().lower()


def derive_asset_tag_category(
    asset_type: str | None,
    management_category: str | None = None,
) -> str:
    """
    Asset-tag category code for an asset type.

    Args:
        asset_type: Device type such as "monitor" or "desktop".
        management_category: Category of the asset's management tag.  Only
            consulted for desktops.

    Returns:
        Two-letter category code.  Never raises.
    """
    kind = _normalize(asset_type)
    if kind == DESKTOP_TYPE:
        return DESKTOP_MANAGEMENT_CATEGORIES.get(
            _normalize(management_category), DEFAULT_DESKTOP_CATEGORY
        )
    return ASSET_TYPE_CATEGORIES.get(kind, DEFAULT_CATEGORY)
