"""
Retry of whole operations on transient store conflicts.

Responsibility:
    Classifies store exceptions as transient (worth retrying) or not, and
    re-runs an operation with exponential backoff until it succeeds, fails
    with a non-transient error, or runs out of attempts.

Architecture position:
    Kernel > Services -- infrastructure.  Used by BulkDeletionOrchestrator,
    whose every attempt runs in a fresh transaction.

Transient conflicts:
    - TransientConflictError (and IdentifierConflictError)
    - PostgreSQL SQLSTATE 40001 serialization_failure, 40P01
      deadlock_detected, 55P03 lock_not_available, 23505 unique_violation
    - SQLite "database is locked" and UNIQUE constraint failures

Everything else, including foreign-key violations, propagates unchanged on
the first failure.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError

from asset_kernel.exceptions import OperationFailedError, TransientConflictError
from asset_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from asset_config.schema import RetryConfig

logger = get_logger("services.retry_service")

T = TypeVar("T")

_TRANSIENT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})
_UNIQUE_VIOLATION_SQLSTATE = "23505"
_TRANSIENT_MESSAGES = (
    "database is locked",
    "deadlock",
    "could not serialize",
)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attempt budget and backoff schedule.

    max_attempts counts the first try.  The wait after failed attempt n is
    base_delay_seconds * backoff_factor ** (n - 1), capped at
    max_delay_seconds.
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    backoff_factor: float = 2.0
    max_delay_seconds: float = 8.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_seconds < 0 or self.max_delay_seconds < 0:
            raise ValueError("retry delays must not be negative")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be at least 1")

    @classmethod
    def from_config(cls, config: "RetryConfig") -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            base_delay_seconds=config.base_delay_seconds,
            backoff_factor=config.backoff_factor,
            max_delay_seconds=config.max_delay_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        delay = self.base_delay_seconds * self.backoff_factor ** (attempt - 1)
        return min(delay, self.max_delay_seconds)


def _sqlstate(error: DBAPIError) -> str | None:
    orig = error.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_transient_conflict(exc: BaseException) -> bool:
    """True if re-running the whole operation may succeed."""
    if isinstance(exc, TransientConflictError):
        return True
    if not isinstance(exc, DBAPIError):
        return False

    sqlstate = _sqlstate(exc)
    message = str(exc.orig).lower()
    if isinstance(exc, IntegrityError):
        return sqlstate == _UNIQUE_VIOLATION_SQLSTATE or "unique constraint" in message
    if sqlstate in _TRANSIENT_SQLSTATES:
        return True
    return any(fragment in message for fragment in _TRANSIENT_MESSAGES)


def run_with_retry(
    operation: str,
    attempt_fn: Callable[[int], T],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[T, int]:
    """
    Run ``attempt_fn(attempt_number)`` until it succeeds.

    Returns:
        (result, attempts used)

    Raises:
        OperationFailedError: Every attempt failed with a transient conflict.
        Exception: Any non-transient error, unchanged, on first occurrence.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return attempt_fn(attempt), attempt
        except Exception as exc:
            if not is_transient_conflict(exc):
                raise
            if attempt >= policy.max_attempts:
                logger.error(
                    "operation_retries_exhausted",
                    extra={
                        "retry_operation": operation,
                        "attempts": attempt,
                        "error_type": type(exc).__name__,
                    },
                )
                raise OperationFailedError(operation, attempt, str(exc)) from exc
            delay = policy.delay_for(attempt)
            logger.warning(
                "operation_retry",
                extra={
                    "retry_operation": operation,
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "delay_seconds": delay,
                    "error_type": type(exc).__name__,
                },
            )
            sleep(delay)
