"""Selectors for the asset kernel (read side)."""

from asset_kernel.selectors.history_selector import HistorySelector
from asset_kernel.selectors.identifier_selector import IdentifierSelector

__all__ = [
    "HistorySelector",
    "IdentifierSelector",
]
