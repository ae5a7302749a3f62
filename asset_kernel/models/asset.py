"""
Module: asset_kernel.models.asset
Responsibility: ORM persistence for the two kinds of asset record: devices
    (PCs, monitors, printers, ...) and wireless access points.
Architecture position: Kernel > Models.

Invariants enforced:
    - Every asset belongs to exactly one tenant.
    - An asset references at most one asset tag and one management tag.
      Uniqueness of those references across the tenant's other assets is
      checked by IdentifierAllocator.is_duplicate() before save.
"""

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from asset_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from asset_kernel.models.identifier import Identifier
    from asset_kernel.models.location import Location, Operator
    from asset_kernel.models.tenant import Tenant


class Device(TrackedBase):
    """An inventoried device (desktop, monitor, printer, projector, ...)."""

    __tablename__ = "devices"

    __table_args__ = (
        Index("idx_device_tenant", "tenant_id"),
        Index("idx_device_asset_tag", "asset_tag_id"),
        Index("idx_device_management_tag", "management_tag_id"),
    )

    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", deferrable=True),
        nullable=False,
    )

    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    manufacturer: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    purpose: Mapped[str | None] = mapped_column(String(100), nullable=True)
    set_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    unused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    location_id: Mapped[int | None] = mapped_column(
        ForeignKey("locations.id", deferrable=True),
        nullable=True,
    )
    operator_id: Mapped[int | None] = mapped_column(
        ForeignKey("operators.id", deferrable=True),
        nullable=True,
    )
    asset_tag_id: Mapped[int | None] = mapped_column(
        ForeignKey("identifiers.id", deferrable=True),
        nullable=True,
    )
    management_tag_id: Mapped[int | None] = mapped_column(
        ForeignKey("identifiers.id", deferrable=True),
        nullable=True,
    )

    tenant: Mapped["Tenant"] = relationship()
    location: Mapped["Location | None"] = relationship()
    operator: Mapped["Operator | None"] = relationship()
    asset_tag: Mapped["Identifier | None"] = relationship(
        foreign_keys=[asset_tag_id],
    )
    management_tag: Mapped["Identifier | None"] = relationship(
        foreign_keys=[management_tag_id],
    )

    def __repr__(self) -> str:
        return f"<Device {self.id} {self.type!r}>"


class WirelessAp(TrackedBase):
    """A wireless access point installed in a classroom."""

    __tablename__ = "wireless_aps"

    __table_args__ = (
        Index("idx_wireless_ap_tenant", "tenant_id"),
        Index("idx_wireless_ap_asset_tag", "asset_tag_id"),
        Index("idx_wireless_ap_management_tag", "management_tag_id"),
    )

    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", deferrable=True),
        nullable=False,
    )

    new_label_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    device_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    ap_year: Mapped[date | None] = mapped_column(Date, nullable=True)
    manufacturer: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    mac_address: Mapped[str | None] = mapped_column(String(17), nullable=True)
    prev_location: Mapped[str | None] = mapped_column(String(100), nullable=True)
    prev_label_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    classroom_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    speed: Mapped[str | None] = mapped_column(String(50), nullable=True)

    location_id: Mapped[int | None] = mapped_column(
        ForeignKey("locations.id", deferrable=True),
        nullable=True,
    )
    asset_tag_id: Mapped[int | None] = mapped_column(
        ForeignKey("identifiers.id", deferrable=True),
        nullable=True,
    )
    management_tag_id: Mapped[int | None] = mapped_column(
        ForeignKey("identifiers.id", deferrable=True),
        nullable=True,
    )

    tenant: Mapped["Tenant"] = relationship()
    location: Mapped["Location | None"] = relationship()
    asset_tag: Mapped["Identifier | None"] = relationship(
        foreign_keys=[asset_tag_id],
    )
    management_tag: Mapped["Identifier | None"] = relationship(
        foreign_keys=[management_tag_id],
    )

    def __repr__(self) -> str:
        return f"<WirelessAp {self.id} {self.new_label_number!r}>"
