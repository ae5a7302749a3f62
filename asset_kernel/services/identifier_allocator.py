"""
IdentifierAllocator -- collision-free asset and management tag numbers.

Responsibility:
    Computes the next free number of a (tenant, kind, category, year)
    sequence, checks explicit numbers for duplicates, and persists
    identifier rows.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Concurrency model:
    No locks.  Numbers are max+1 of the exact sequence (gaps are never
    filled) and the uq_identifier_key constraint arbitrates races.  Each
    insert runs in a SAVEPOINT so a losing insert can be rolled back
    without aborting the caller's transaction:

        allocate_explicit   loser re-reads the winner's row (idempotent)
        allocate_next       loser raises IdentifierConflictError; the facade
                            retries once with a freshly computed number

Failure modes:
    - ValidationError: malformed category, year or kind.
    - IdentifierConflictError: allocate_next lost a race.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from asset_kernel.domain.dtos import AssetRef
from asset_kernel.domain.identifiers import IdentifierKey, SequenceKey, make_sequence_key
from asset_kernel.domain.values import IdentifierKind
from asset_kernel.exceptions import IdentifierConflictError
from asset_kernel.logging_config import get_logger
from asset_kernel.models import ASSET_MODELS
from asset_kernel.models.identifier import Identifier
from asset_kernel.selectors.identifier_selector import (
    IdentifierSelector,
    find_identifier,
    key_clause,
)
from asset_kernel.services.base import BaseService

logger = get_logger("services.identifier_allocator")


def _tag_column(model, kind: IdentifierKind):
    if kind == IdentifierKind.ASSET_TAG:
        return model.asset_tag_id
    return model.management_tag_id


class IdentifierAllocator(BaseService[Identifier]):
    """
    Allocates identifiers within the caller's transaction.

    Guarantees:
        - next_sequence() is a pure read: calling it twice without an
          insert in between returns the same number.
        - Two identifiers with the same composite key never both persist.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._identifiers = IdentifierSelector(session)

    def next_sequence(
        self,
        tenant_id: int,
        kind: IdentifierKind | str,
        category: str,
        year: str | int | None = None,
    ) -> int:
        """Highest number in the exact sequence plus one, or 1 if unused."""
        return self._next_sequence(make_sequence_key(tenant_id, kind, category, year))

    def _next_sequence(self, key: SequenceKey) -> int:
        return (self._identifiers.max_sequence(key) or 0) + 1

    def is_duplicate(self, key: IdentifierKey, excluding: AssetRef | None = None) -> bool:
        """
        True if another asset of the tenant already carries this identifier.

        An identifier row that exists but is referenced by no asset (or only
        by ``excluding``) is not a duplicate.
        """
        matching = select(Identifier.id).where(*key_clause(key))
        for asset_kind, model in ASSET_MODELS.items():
            stmt = select(model.id).where(
                model.tenant_id == key.tenant_id,
                _tag_column(model, key.kind).in_(matching),
            )
            if excluding is not None and excluding.kind == asset_kind:
                stmt = stmt.where(model.id != excluding.id)
            if self.session.execute(stmt.limit(1)).first() is not None:
                return True
        return False

    def allocate_explicit(self, key: IdentifierKey) -> Identifier:
        """
        Find or create the identifier with exactly this key.

        Idempotent: repeated calls return the same row.
        """
        existing = find_identifier(self.session, key)
        if existing is not None:
            return existing

        identifier = Identifier.from_key(key)
        try:
            with self.session.begin_nested():
                self.session.add(identifier)
                self.session.flush()
        except IntegrityError:
            existing = find_identifier(self.session, key)
            if existing is None:
                raise
            logger.info(
                "identifier_allocation_race_resolved",
                extra=self._log_fields(key),
            )
            return existing

        logger.info("identifier_allocated", extra=self._log_fields(key))
        return identifier

    def allocate_next(
        self,
        tenant_id: int,
        kind: IdentifierKind | str,
        category: str,
        year: str | int | None = None,
    ) -> Identifier:
        """
        Allocate the next free number of a sequence.

        Raises:
            IdentifierConflictError: A concurrent writer inserted the same
                number first.  The caller's transaction is still usable.
        """
        seq_key = make_sequence_key(tenant_id, kind, category, year)
        key = seq_key.with_sequence(self._next_sequence(seq_key))

        identifier = Identifier.from_key(key)
        try:
            with self.session.begin_nested():
                self.session.add(identifier)
                self.session.flush()
        except IntegrityError as exc:
            logger.warning(
                "identifier_allocation_conflict",
                extra=self._log_fields(key),
            )
            raise IdentifierConflictError(
                tenant_id=key.tenant_id,
                kind=key.kind.value,
                category=key.category,
                year=key.year,
                sequence=key.sequence,
            ) from exc

        logger.info("identifier_allocated", extra=self._log_fields(key))
        return identifier

    @staticmethod
    def _log_fields(key: IdentifierKey) -> dict:
        return {
            "tenant_id": key.tenant_id,
            "identifier_kind": key.kind.value,
            "category": key.category,
            "year": key.year,
            "sequence": key.sequence,
        }
