"""Services for the asset kernel (write side)."""

from asset_kernel.services.asset_service import AssetServiceFacade
from asset_kernel.services.bulk_deletion import (
    DEFAULT_DELETION_PLAN,
    BulkDeletionOrchestrator,
    DeleteTarget,
    DeletionStep,
)
from asset_kernel.services.history_recorder import HistoryRecorder
from asset_kernel.services.history_retention import HistoryRetentionService
from asset_kernel.services.identifier_allocator import IdentifierAllocator
from asset_kernel.services.retry_service import RetryPolicy, run_with_retry

__all__ = [
    "AssetServiceFacade",
    "BulkDeletionOrchestrator",
    "DEFAULT_DELETION_PLAN",
    "DeleteTarget",
    "DeletionStep",
    "HistoryRecorder",
    "HistoryRetentionService",
    "IdentifierAllocator",
    "RetryPolicy",
    "run_with_retry",
]
