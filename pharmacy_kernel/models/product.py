"""
Module: pharmacy_kernel.models.product
Responsibility: ORM persistence for stocked products.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values.py only.

Invariants enforced:
    - sku is unique; barcode is unique when present.
    - quantity >= 0 and reorder_point >= 0 (CHECK constraints).
    - quantity == 0 implies status == OUT_OF_STOCK after every movement
      (enforced by the stock ledger engine, not by the database).
    - version is bumped by SQLAlchemy on every UPDATE and checked in the
      WHERE clause, so a write based on a stale read fails instead of
      overwriting a concurrent movement.

Failure modes:
    - StaleDataError on a version mismatch (translated to ConflictError by
      Database.session_scope).
    - IntegrityError on CHECK / UNIQUE / FK violations.

Quantity is owned by InventoryCoordinator; nothing else assigns it.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pharmacy_kernel.db.base import TrackedBase, UTCDateTime, UUIDString
from pharmacy_kernel.domain.values import ProductStatus
from pharmacy_kernel.models.catalog import Category, Supplier


class Product(TrackedBase):
    """A stocked item with its on-hand quantity and derived status."""

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_product_sku"),
        UniqueConstraint("barcode", name="uq_product_barcode"),
        CheckConstraint("quantity >= 0", name="ck_product_quantity_non_negative"),
        CheckConstraint("reorder_point >= 0", name="ck_product_reorder_point_non_negative"),
        Index("idx_product_category", "category_id"),
        Index("idx_product_supplier", "supplier_id"),
        Index("idx_product_status", "status"),
        Index("idx_product_expiry", "expiry_date"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    generic_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    manufacturer: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    barcode: Mapped[str | None] = mapped_column(String(100), nullable=True)

    sku: Mapped[str] = mapped_column(String(100), nullable=False)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    cost_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # INVARIANT: never negative; mutated only by InventoryCoordinator
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    reorder_point: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    expiry_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    category_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
    )

    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("suppliers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    created_by_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    batch_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    dosage_form: Mapped[str] = mapped_column(String(20), nullable=False)

    strength: Mapped[str | None] = mapped_column(String(100), nullable=True)

    storage: Mapped[str | None] = mapped_column(String(255), nullable=True)

    prescription_required: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProductStatus.ACTIVE.value,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    category: Mapped[Category] = relationship(Category)

    supplier: Mapped[Supplier] = relationship(Supplier)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Product {self.sku}: {self.name} qty={self.quantity} ({self.status})>"
