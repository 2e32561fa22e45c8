"""
Module: pharmacy_kernel.models.catalog
Responsibility: ORM persistence for product categories and suppliers.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Category.name is unique.
    - Supplier.email is unique when present.
    - Neither may be deleted while products reference it (enforced by
      CategoryService / SupplierService and by the RESTRICT foreign keys on
      products).
"""

from sqlalchemy import Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_kernel.db.base import TrackedBase


class Category(TrackedBase):
    """A therapeutic or merchandising grouping of products."""

    __tablename__ = "categories"

    __table_args__ = (
        UniqueConstraint("name", name="uq_category_name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Category {self.id}: {self.name}>"


class Supplier(TrackedBase):
    """A vendor products are purchased from."""

    __tablename__ = "suppliers"

    __table_args__ = (
        UniqueConstraint("email", name="uq_supplier_email"),
        Index("idx_supplier_name", "name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    phone: Mapped[str | None] = mapped_column(String(255), nullable=True)

    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Supplier {self.id}: {self.name}>"
