"""
Module: asset_kernel.models.history
Responsibility: ORM persistence for field-level change history of devices
    and wireless access points.  One row records one field's before/after
    display values for one edit.
Architecture position: Kernel > Models.

Invariants enforced:
    - Append-only: ORM updates and per-row deletes are rejected by the
      listeners in db/immutability.py.  Set-based deletes (tenant purge,
      asset deletion, age-based retention) go through Core DELETE.
    - tenant_id duplicates the asset's tenant so tenant listings and purges
      need no join.
    - Query paths: by asset newest-first (asset_id, modified_at) and by
      tenant with paging (tenant_id, modified_at).
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from asset_kernel.db.base import Base
from asset_kernel.domain.values import AssetKind


class HistoryEntryMixin:
    """Columns shared by both history tables."""

    @declared_attr
    def tenant_id(cls) -> Mapped[int]:
        return mapped_column(
            ForeignKey("tenants.id", deferrable=True),
            nullable=False,
        )

    # HistoryField value, e.g. "location"
    field_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    before_value: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    after_value: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    actor_id: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )


class DeviceHistory(HistoryEntryMixin, Base):
    """Change history of one device."""

    __tablename__ = "device_history"

    __table_args__ = (
        Index("idx_device_history_asset", "asset_id", "modified_at"),
        Index("idx_device_history_tenant", "tenant_id", "modified_at"),
    )

    asset_kind = AssetKind.DEVICE

    asset_id: Mapped[int] = mapped_column(
        ForeignKey("devices.id", deferrable=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<DeviceHistory {self.id} device={self.asset_id} {self.field_name}>"


class WirelessApHistory(HistoryEntryMixin, Base):
    """Change history of one wireless access point."""

    __tablename__ = "wireless_ap_history"

    __table_args__ = (
        Index("idx_wireless_ap_history_asset", "asset_id", "modified_at"),
        Index("idx_wireless_ap_history_tenant", "tenant_id", "modified_at"),
    )

    asset_kind = AssetKind.WIRELESS_AP

    asset_id: Mapped[int] = mapped_column(
        ForeignKey("wireless_aps.id", deferrable=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<WirelessApHistory {self.id} ap={self.asset_id} {self.field_name}>"
