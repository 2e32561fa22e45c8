"""
Module: pharmacy_kernel.models.inventory_log
Responsibility: ORM persistence for the per-product stock movement ledger.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Append-only: no UPDATE, no single-row DELETE (ORM listeners in
      db/immutability.py).  Rows disappear only through
      AuditLogStore.purge_product when the parent product is deleted.
    - quantity is the positive magnitude of the movement (CHECK quantity > 0);
      the sign of its effect is implied by movement_type.
    - Exactly one row per accepted movement, written in the same transaction
      as the product update.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt through the ORM.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_kernel.db.base import Base, UTCDateTime, UUIDString


class InventoryLogEntry(Base):
    """One accepted stock movement."""

    __tablename__ = "inventory_log_entries"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_log_quantity_positive"),
        Index("idx_inventory_log_product_created", "product_id", "created_at"),
        Index("idx_inventory_log_type", "movement_type"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )

    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Positive magnitude, never signed
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryLogEntry {self.id}: product={self.product_id} "
            f"{self.movement_type} {self.quantity}>"
        )
