"""
Module: asset_kernel.models.tenant
Responsibility: ORM persistence for tenants (schools), the scope of every
    identifier sequence and of every bulk deletion.
Architecture position: Kernel > Models.  May import from db/base.py only.

Tenants are managed by an outer collaborator; the kernel reads them to
validate operations and to compose asset-tag display strings.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from asset_kernel.db.base import TrackedBase


class Tenant(TrackedBase):
    """
    A school whose inventory the kernel manages.

    Guarantees:
        - code, when set, is the 2-digit school number embedded in
          asset-tag display strings.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # School number embedded in asset tags (e.g. 7 -> "07")
    code: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Tenant {self.id} {self.name!r}>"
