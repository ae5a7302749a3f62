"""
Typed exception hierarchy for the asset kernel.

Every error has a typed class, a machine-readable ``code`` class attribute
and structured attributes, so callers catch by type and report by code
instead of parsing message strings.

    AssetKernelError (base)
    |
    +-- ValidationError
    |
    +-- IdentifierError
    |   +-- DuplicateIdentifierError
    |
    +-- NotFoundError
    |   +-- AssetNotFoundError
    |   +-- TenantNotFoundError
    |
    +-- ConcurrencyError
    |   +-- TransientConflictError
    |   |   +-- IdentifierConflictError
    |   +-- OperationFailedError
    |
    +-- DeletionError
    |   +-- IncompleteDeletionError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

Code                    | When raised
------------------------|----------------------------------------------------
VALIDATION_ERROR        | Malformed input, raised before any store access
DUPLICATE_IDENTIFIER    | Explicit identifier already used by another asset
ASSET_NOT_FOUND         | Update/delete/get on a missing asset
TENANT_NOT_FOUND        | Operation on a missing tenant
TRANSIENT_CONFLICT      | Store-reported write conflict, retried internally
IDENTIFIER_CONFLICT     | Lost the race for a freshly computed sequence number
OPERATION_FAILED        | Retries exhausted
INCOMPLETE_DELETION     | Verification found rows left after a tenant purge
IMMUTABILITY_VIOLATION  | Attempt to edit or delete a single history entry

TransientConflictError is the only family that services retry. Everything
else propagates to the caller unchanged.
"""

from typing import Any


class AssetKernelError(Exception):
    """
    Base exception for all asset kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "ASSET_KERNEL_ERROR"


class ValidationError(AssetKernelError):
    """Input failed validation before reaching the store."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str, value: Any = None):
        self.field = field
        self.reason = reason
        self.value = value
        super().__init__(f"Invalid {field}: {reason}")


# Identifier-related exceptions


class IdentifierError(AssetKernelError):
    """Base exception for identifier-related errors."""

    code: str = "IDENTIFIER_ERROR"


class DuplicateIdentifierError(IdentifierError):
    """An explicitly requested identifier is already used by another asset."""

    code: str = "DUPLICATE_IDENTIFIER"

    def __init__(self, kind: str, display: str, tenant_id: int):
        self.kind = kind
        self.display = display
        self.tenant_id = tenant_id
        super().__init__(f"Duplicate {kind} {display} in tenant {tenant_id}")


# Lookup failures


class NotFoundError(AssetKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class AssetNotFoundError(NotFoundError):
    """Asset record with the given id does not exist."""

    code: str = "ASSET_NOT_FOUND"

    def __init__(self, asset_kind: str, asset_id: int):
        self.asset_kind = asset_kind
        self.asset_id = asset_id
        super().__init__(f"{asset_kind} not found: {asset_id}")


class TenantNotFoundError(NotFoundError):
    """Tenant (school) with the given id does not exist."""

    code: str = "TENANT_NOT_FOUND"

    def __init__(self, tenant_id: int):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant not found: {tenant_id}")


# Concurrency


class ConcurrencyError(AssetKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class TransientConflictError(ConcurrencyError):
    """
    The store reported a write conflict that may succeed on retry.

    Serialization failures, deadlocks, lock timeouts and unique-constraint
    races all map here.
    """

    code: str = "TRANSIENT_CONFLICT"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Transient conflict during {operation}: {reason}")


class IdentifierConflictError(TransientConflictError):
    """A concurrent writer took the sequence number we computed."""

    code: str = "IDENTIFIER_CONFLICT"

    def __init__(self, tenant_id: int, kind: str, category: str,
                 year: str | None, sequence: int):
        self.tenant_id = tenant_id
        self.kind = kind
        self.category = category
        self.year = year
        self.sequence = sequence
        super().__init__(
            "identifier_allocation",
            f"{kind} {category}/{year or '-'}/{sequence} already taken "
            f"in tenant {tenant_id}",
        )


class OperationFailedError(ConcurrencyError):
    """A retried operation kept failing with transient conflicts."""

    code: str = "OPERATION_FAILED"

    def __init__(self, operation: str, attempts: int, last_error: str):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempt(s): {last_error}"
        )


# Deletion


class DeletionError(AssetKernelError):
    """Base exception for tenant data deletion errors."""

    code: str = "DELETION_ERROR"


class IncompleteDeletionError(DeletionError):
    """
    Post-deletion verification found rows that should have been removed.

    Fatal: the transaction is rolled back and the error is not retried.
    """

    code: str = "INCOMPLETE_DELETION"

    def __init__(self, tenant_id: int, remaining: dict[str, int]):
        self.tenant_id = tenant_id
        self.remaining = dict(remaining)
        detail = ", ".join(f"{table}={count}" for table, count in remaining.items())
        super().__init__(
            f"Tenant {tenant_id} data not fully deleted: {detail}"
        )


# Immutability


class ImmutabilityError(AssetKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
