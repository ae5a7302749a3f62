"""
IdentifierSelector -- read-only lookups over allocated identifiers.

Feeds identifier pickers (which categories and years a tenant already
uses, how far a sequence has got) and converts rows to IdentifierInfo.
"""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from asset_kernel.domain.dtos import IdentifierInfo
from asset_kernel.domain.identifiers import IdentifierKey, SequenceKey
from asset_kernel.domain.values import IdentifierKind
from asset_kernel.models.identifier import Identifier
from asset_kernel.selectors.base import BaseSelector


def to_identifier_info(identifier: Identifier) -> IdentifierInfo:
    return IdentifierInfo(
        id=identifier.id,
        tenant_id=identifier.tenant_id,
        kind=IdentifierKind(identifier.kind),
        category=identifier.category,
        year=identifier.year,
        sequence=identifier.sequence,
        display=identifier.display,
    )


def key_clause(key: IdentifierKey | SequenceKey):
    """WHERE clause matching one sequence (and sequence number, for full keys)."""
    clauses = [
        Identifier.tenant_id == key.tenant_id,
        Identifier.kind == key.kind.value,
        Identifier.category == key.category,
        Identifier.year_key == key.year_key,
    ]
    if isinstance(key, IdentifierKey):
        clauses.append(Identifier.sequence == key.sequence)
    return clauses


def find_identifier(session: Session, key: IdentifierKey) -> Identifier | None:
    """The identifier row with exactly this key, if allocated."""
    return session.execute(
        select(Identifier).where(*key_clause(key))
    ).scalar_one_or_none()


class IdentifierSelector(BaseSelector[Identifier]):
    """Read-only identifier queries."""

    def find(self, key: IdentifierKey) -> IdentifierInfo | None:
        row = find_identifier(self.session, key)
        return to_identifier_info(row) if row is not None else None

    def max_sequence(self, key: SequenceKey) -> int | None:
        """Highest sequence number used in one sequence, or None if unused."""
        return self.session.execute(
            select(func.max(Identifier.sequence)).where(*key_clause(key))
        ).scalar()

    def categories(self, tenant_id: int, kind: IdentifierKind) -> list[str]:
        """Distinct categories a tenant has allocated, sorted."""
        rows = self.session.execute(
            select(Identifier.category)
            .where(Identifier.tenant_id == tenant_id, Identifier.kind == kind.value)
            .distinct()
            .order_by(Identifier.category)
        ).scalars()
        return list(rows)

    def years(self, tenant_id: int, kind: IdentifierKind, category: str) -> list[str | None]:
        """Distinct year tokens used within one category; None for "no year"."""
        rows = self.session.execute(
            select(Identifier.year_key, Identifier.year)
            .where(
                Identifier.tenant_id == tenant_id,
                Identifier.kind == kind.value,
                Identifier.category == category,
            )
            .distinct()
            .order_by(Identifier.year_key)
        )
        return [row.year for row in rows]

    def count_for_tenant(self, tenant_id: int, kind: IdentifierKind | None = None) -> int:
        stmt = select(func.count(Identifier.id)).where(Identifier.tenant_id == tenant_id)
        if kind is not None:
            stmt = stmt.where(Identifier.kind == kind.value)
        return self.session.execute(stmt).scalar_one()
