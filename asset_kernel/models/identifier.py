"""
Module: asset_kernel.models.identifier
Responsibility: ORM persistence for allocated identifiers (asset tags and
    management tags) in a single table keyed by
    (tenant, kind, category, year-or-absent, sequence).
Architecture position: Kernel > Models.  May import from db/base.py and
    domain value objects.

Invariants enforced:
    - uq_identifier_key: at most one row per composite key.  This constraint
      is the arbiter of allocation races; the allocator relies on it instead
      of locking.
    - year_key mirrors year with "" for an absent year.  SQL treats NULLs as
      distinct in unique constraints, so the constraint is declared over
      year_key, not year.
    - Rows are never mutated after insert.  Re-pointing an asset at a new
      category/year creates a new row; the old row keeps its number.
"""

from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from asset_kernel.db.base import TrackedBase
from asset_kernel.domain.identifiers import IdentifierKey, format_display
from asset_kernel.domain.values import IdentifierKind

if TYPE_CHECKING:
    from asset_kernel.models.tenant import Tenant


class Identifier(TrackedBase):
    """
    One allocated identifier number.

    Guarantees:
        - sequence is a positive integer.
        - (tenant_id, kind, category, year_key, sequence) is unique.
    """

    __tablename__ = "identifiers"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "kind", "category", "year_key", "sequence",
            name="uq_identifier_key",
        ),
        Index("idx_identifier_sequence", "tenant_id", "kind", "category", "year_key"),
        CheckConstraint("sequence > 0", name="ck_identifier_sequence_positive"),
    )

    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", deferrable=True),
        nullable=False,
    )

    kind: Mapped[IdentifierKind] = mapped_column(
        String(20),
        nullable=False,
    )

    category: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    year: Mapped[str | None] = mapped_column(
        String(4),
        nullable=True,
    )

    year_key: Mapped[str] = mapped_column(
        String(4),
        nullable=False,
        default="",
    )

    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    tenant: Mapped["Tenant"] = relationship()

    @validates("year")
    def _sync_year_key(self, key, value):
        self.year_key = value or ""
        return value

    @classmethod
    def from_key(cls, key: IdentifierKey) -> "Identifier":
        return cls(
            tenant_id=key.tenant_id,
            kind=key.kind,
            category=key.category,
            year=key.year,
            sequence=key.sequence,
        )

    @property
    def key(self) -> IdentifierKey:
        return IdentifierKey(
            tenant_id=self.tenant_id,
            kind=IdentifierKind(self.kind),
            category=self.category,
            year=self.year,
            sequence=self.sequence,
        )

    @property
    def display(self) -> str:
        """Composed display string, e.g. ``MO07240003`` or ``work-2024-005``."""
        return format_display(
            IdentifierKind(self.kind),
            self.category,
            self.year,
            self.sequence,
            self.tenant.code if self.tenant is not None else None,
        )

    def __repr__(self) -> str:
        return f"<Identifier {self.id} {self.kind} {self.category}/{self.year}/{self.sequence}>"
