"""
BulkDeletionOrchestrator -- verified, all-or-nothing purge of a tenant's data.

Responsibility:
    Removes every asset, history entry, identifier, operator and location
    belonging to one tenant (or a chosen subset of those groups) in a
    single transaction, and proves the full purge worked before
    committing.

Architecture position:
    Kernel > Services -- owns its transactions.  Takes a session factory
    because every retry needs a fresh transaction.

State machine (one attempt):

    START -- tenant exists? --------------------------- no --> TenantNotFoundError
      |
    COUNT  (pre-deletion row counts, logged)
      |
    SUSPEND referential integrity  (db/constraints.suspended_foreign_keys)
      |
    DELETE groups in canonical order
      |        devices -> wireless APs -> asset tags -> operators
      |        -> management tags -> locations
      |
    RESTORE referential integrity  (guaranteed on every exit path)
      |
    VERIFY (full purge only) -- rows left? ----------- yes --> IncompleteDeletionError
      |
    COMMIT

Invariants enforced:
    - All-or-nothing: any failure rolls the whole attempt back.
    - The transaction runs at SERIALIZABLE (SQLite is always serializable).
    - Transient conflicts re-run the whole attempt with exponential
      backoff; exhaustion raises OperationFailedError.  Incomplete deletion
      and missing tenants are never retried.
    - The tenant row itself is kept.

Selective purges:
    Run the chosen groups in canonical order, skip verification, and first
    clear references to the purged group from surviving rows (for example
    device.location_id when only locations are purged).
"""

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, sessionmaker

from asset_kernel.db.constraints import suspended_foreign_keys
from asset_kernel.db.engine import dialect_name
from asset_kernel.domain.clock import Clock, SystemClock
from asset_kernel.domain.dtos import DeletionSummary
from asset_kernel.domain.values import DeletionGroup, IdentifierKind
from asset_kernel.exceptions import (
    IncompleteDeletionError,
    TenantNotFoundError,
    ValidationError,
)
from asset_kernel.logging_config import LogContext, get_logger
from asset_kernel.models import (
    Device,
    DeviceHistory,
    Identifier,
    Location,
    Operator,
    Tenant,
    WirelessAp,
    WirelessApHistory,
)
from asset_kernel.services.retry_service import RetryPolicy, run_with_retry

logger = get_logger("services.bulk_deletion")


@dataclass(frozen=True)
class DeleteTarget:
    """Rows of one table (optionally one identifier kind) owned by a tenant."""

    label: str
    model: type
    identifier_kind: IdentifierKind | None = None

    def where(self, tenant_id: int) -> list:
        clauses = [self.model.tenant_id == tenant_id]
        if self.identifier_kind is not None:
            clauses.append(self.model.kind == self.identifier_kind.value)
        return clauses


@dataclass(frozen=True)
class DeletionStep:
    """
    One deletion group.

    detach lists (model, column attribute) pairs that reference the group
    and are set to NULL on the tenant's surviving rows before deleting.
    """

    group: DeletionGroup
    targets: tuple[DeleteTarget, ...]
    detach: tuple[tuple[type, str], ...] = ()


DEFAULT_DELETION_PLAN: tuple[DeletionStep, ...] = (
    DeletionStep(
        DeletionGroup.DEVICES,
        (
            DeleteTarget("device_history", DeviceHistory),
            DeleteTarget("devices", Device),
        ),
    ),
    DeletionStep(
        DeletionGroup.WIRELESS_APS,
        (
            DeleteTarget("wireless_ap_history", WirelessApHistory),
            DeleteTarget("wireless_aps", WirelessAp),
        ),
    ),
    DeletionStep(
        DeletionGroup.ASSET_TAGS,
        (DeleteTarget("asset_tags", Identifier, IdentifierKind.ASSET_TAG),),
        detach=((Device, "asset_tag_id"), (WirelessAp, "asset_tag_id")),
    ),
    DeletionStep(
        DeletionGroup.OPERATORS,
        (DeleteTarget("operators", Operator),),
        detach=((Device, "operator_id"),),
    ),
    DeletionStep(
        DeletionGroup.MANAGEMENT_TAGS,
        (DeleteTarget("management_tags", Identifier, IdentifierKind.MANAGEMENT_TAG),),
        detach=((Device, "management_tag_id"), (WirelessAp, "management_tag_id")),
    ),
    DeletionStep(
        DeletionGroup.LOCATIONS,
        (DeleteTarget("locations", Location),),
        detach=((Device, "location_id"), (WirelessAp, "location_id")),
    ),
)

# Everything a full purge must leave empty, independent of the plan in use.
VERIFIED_TARGETS: tuple[DeleteTarget, ...] = tuple(
    target for step in DEFAULT_DELETION_PLAN for target in step.targets
)

_GROUP_ORDER = {group: index for index, group in enumerate(DeletionGroup)}


class BulkDeletionOrchestrator:
    """
    Purges a tenant's inventory data.

    Contract:
        delete_tenant() removes everything and verifies; delete_tenant_selective()
        removes the chosen groups without the verification sweep.  Both
        return a DeletionSummary and both are all-or-nothing.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | Callable[[], Session],
        clock: Clock | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        plan: tuple[DeletionStep, ...] = DEFAULT_DELETION_PLAN,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._plan = plan

    def delete_tenant(self, tenant_id: int, actor_id: str | None = None) -> DeletionSummary:
        """
        Delete all of a tenant's data and verify nothing is left.

        Raises:
            TenantNotFoundError: No such tenant (not retried).
            IncompleteDeletionError: Rows remained after deletion (not retried).
            OperationFailedError: Transient conflicts on every attempt.
        """
        return self._run(
            tenant_id,
            steps=self._plan,
            mode="full",
            verify=True,
            actor_id=actor_id,
        )

    def delete_tenant_selective(
        self,
        tenant_id: int,
        groups: Iterable[DeletionGroup | str],
        actor_id: str | None = None,
    ) -> DeletionSummary:
        """
        Delete only the chosen groups, in canonical order, without verification.

        Raises:
            ValidationError: No groups, or an unknown group name.
            TenantNotFoundError, OperationFailedError: as delete_tenant().
        """
        selected = self._normalize_groups(groups)
        steps = tuple(step for step in self._plan if step.group in selected)
        return self._run(
            tenant_id,
            steps=steps,
            mode="selective",
            verify=False,
            actor_id=actor_id,
        )

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    @staticmethod
    def _normalize_groups(groups: Iterable[DeletionGroup | str]) -> set[DeletionGroup]:
        selected: set[DeletionGroup] = set()
        for group in groups:
            try:
                selected.add(DeletionGroup(group))
            except ValueError:
                raise ValidationError("groups", "unknown deletion group", group) from None
        if not selected:
            raise ValidationError("groups", "at least one group must be selected")
        return selected

    def _run(
        self,
        tenant_id: int,
        steps: tuple[DeletionStep, ...],
        mode: str,
        verify: bool,
        actor_id: str | None,
    ) -> DeletionSummary:
        groups = tuple(sorted((step.group for step in steps), key=_GROUP_ORDER.__getitem__))
        started = self._clock.now()
        t0 = time.monotonic()

        with LogContext.bind(
            tenant_id=tenant_id,
            actor_id=actor_id,
            operation=f"tenant_deletion_{mode}",
        ):
            logger.info(
                "tenant_deletion_started",
                extra={
                    "mode": mode,
                    "groups": [group.value for group in groups],
                    "started_at": started,
                },
            )
            try:
                (counts_before, deleted), attempts = run_with_retry(
                    "tenant_deletion",
                    lambda attempt: self._attempt(tenant_id, steps, verify, attempt),
                    self._retry_policy,
                    sleep=self._sleep,
                )
            except Exception as exc:
                logger.error(
                    "tenant_deletion_failed",
                    extra={
                        "mode": mode,
                        "error_type": type(exc).__name__,
                        "error_code": getattr(exc, "code", None),
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                raise

            summary = DeletionSummary(
                tenant_id=tenant_id,
                mode=mode,
                groups=groups,
                counts_before=counts_before,
                deleted=deleted,
                attempts=attempts,
                duration_ms=round((time.monotonic() - t0) * 1000, 2),
            )
            logger.info(
                "tenant_deletion_completed",
                extra={
                    "mode": mode,
                    "deleted": dict(summary.deleted),
                    "total_deleted": summary.total_deleted,
                    "attempts": attempts,
                    "duration_ms": summary.duration_ms,
                },
            )
            return summary

    def _attempt(
        self,
        tenant_id: int,
        steps: tuple[DeletionStep, ...],
        verify: bool,
        attempt: int,
    ) -> tuple[dict[str, int], dict[str, int]]:
        session = self._session_factory()
        try:
            self._begin_serializable(session)

            if session.get(Tenant, tenant_id) is None:
                raise TenantNotFoundError(tenant_id)

            targets = VERIFIED_TARGETS if verify else tuple(
                target for step in steps for target in step.targets
            )
            counts_before = self._count(session, tenant_id, targets)
            logger.info(
                "tenant_deletion_counted",
                extra={"attempt": attempt, "counts_before": counts_before},
            )

            deleted: dict[str, int] = {}
            with suspended_foreign_keys(session):
                for step in steps:
                    deleted.update(self._execute_step(session, tenant_id, step))

            if verify:
                remaining = {
                    label: count
                    for label, count in self._count(session, tenant_id, VERIFIED_TARGETS).items()
                    if count
                }
                if remaining:
                    logger.error(
                        "tenant_deletion_incomplete",
                        extra={"attempt": attempt, "remaining": remaining},
                    )
                    raise IncompleteDeletionError(tenant_id, remaining)

            session.commit()
            return counts_before, deleted
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def _begin_serializable(session: Session) -> None:
        # Must be the first statement of the transaction.
        if dialect_name(session) != "sqlite":
            session.connection(execution_options={"isolation_level": "SERIALIZABLE"})

    @staticmethod
    def _count(session: Session, tenant_id: int, targets: Iterable[DeleteTarget]) -> dict[str, int]:
        return {
            target.label: session.execute(
                select(func.count()).select_from(target.model).where(*target.where(tenant_id))
            ).scalar_one()
            for target in targets
        }

    def _execute_step(self, session: Session, tenant_id: int, step: DeletionStep) -> dict[str, int]:
        for model, column in step.detach:
            session.execute(
                update(model)
                .where(model.tenant_id == tenant_id, getattr(model, column).is_not(None))
                .values({column: None})
                .execution_options(synchronize_session=False)
            )

        deleted: dict[str, int] = {}
        for target in step.targets:
            result = session.execute(
                delete(target.model)
                .where(*target.where(tenant_id))
                .execution_options(synchronize_session=False)
            )
            deleted[target.label] = result.rowcount
            logger.debug(
                "tenant_deletion_step",
                extra={"group": step.group.value, "table": target.label, "rows": result.rowcount},
            )
        return deleted
