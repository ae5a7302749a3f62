"""
Module: asset_kernel.models.location
Responsibility: ORM persistence for install locations (classrooms) and
    responsible persons (operators).  Both are found-or-created by name when
    an asset is saved and both are purged with the rest of a tenant's data.
Architecture position: Kernel > Models.
"""

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from asset_kernel.db.base import TrackedBase


class Location(TrackedBase):
    """A classroom or other install location within a tenant."""

    __tablename__ = "locations"

    __table_args__ = (
        UniqueConstraint("tenant_id", "room_name", name="uq_location_room"),
    )

    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", deferrable=True),
        nullable=False,
    )

    room_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Location {self.id} {self.room_name!r}>"


class Operator(TrackedBase):
    """The person responsible for a device."""

    __tablename__ = "operators"

    __table_args__ = (
        Index("idx_operator_tenant_name", "tenant_id", "name"),
    )

    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", deferrable=True),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    position: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Operator {self.id} {self.name!r}>"
