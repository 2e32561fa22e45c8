"""
AuditLogStore -- append-only per-product movement ledger.

Responsibility:
    Records one InventoryLogEntry per accepted stock movement and reads the
    history of a product back, newest first by default.

Architecture position:
    Kernel > Services.  Used by InventoryCoordinator inside its unit of work
    and by ProductDirectory for recent movements.

Invariants enforced:
    - append() only inserts; entries are never updated.
    - purge_product() is the single removal path and is only called when the
      parent product is deleted.  It is a bulk DELETE, which the ORM
      immutability listeners do not intercept.
    - Entry timestamps come from the injected clock.

Failure modes:
    - InvalidMovementError if the magnitude is not a positive integer.
    - ImmutabilityViolationError if anyone tries to modify an entry through
      the ORM (see db/immutability.py).
"""

from uuid import UUID

from sqlalchemy import delete, func, select

from pharmacy_kernel.domain.dtos import InventoryLogEntryDTO
from pharmacy_kernel.domain.stock_ledger import coerce_movement_type
from pharmacy_kernel.domain.values import MovementType
from pharmacy_kernel.exceptions import InvalidMovementError
from pharmacy_kernel.logging_config import get_logger
from pharmacy_kernel.models.inventory_log import InventoryLogEntry
from pharmacy_kernel.services.base import BaseService

logger = get_logger("services.audit_log")


class AuditLogStore(BaseService[InventoryLogEntry]):
    """Append and read inventory log entries for products."""

    def append(
        self,
        product_id: UUID,
        movement_type: MovementType | str,
        quantity: int,
        reason: str | None = None,
    ) -> InventoryLogEntryDTO:
        """
        Record one movement.

        Preconditions: the product exists in the current transaction.
        Postconditions: exactly one new entry is flushed.
        """
        kind = coerce_movement_type(movement_type)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidMovementError("quantity", quantity, "must be a positive integer")

        entry = InventoryLogEntry(
            product_id=product_id,
            movement_type=kind.value,
            quantity=quantity,
            reason=reason,
            created_at=self.clock.now(),
        )
        self.session.add(entry)
        self.session.flush()

        logger.debug(
            "inventory_log_appended",
            extra={
                "entry_id": str(entry.id),
                "movement_type": kind.value,
                "quantity": quantity,
            },
        )
        return InventoryLogEntryDTO.from_model(entry)

    def list_by_product(
        self,
        product_id: UUID,
        limit: int | None = None,
        most_recent_first: bool = True,
    ) -> list[InventoryLogEntryDTO]:
        """
        Entries of one product ordered by created_at.

        Entries sharing a timestamp have no defined relative order.
        """
        order = (
            InventoryLogEntry.created_at.desc()
            if most_recent_first
            else InventoryLogEntry.created_at.asc()
        )
        stmt = (
            select(InventoryLogEntry)
            .where(InventoryLogEntry.product_id == product_id)
            .order_by(order)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        entries = self.session.execute(stmt).scalars().all()
        return [InventoryLogEntryDTO.from_model(e) for e in entries]

    def count_by_product(self, product_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(InventoryLogEntry)
            .where(InventoryLogEntry.product_id == product_id)
        )
        return self.session.execute(stmt).scalar_one()

    def purge_product(self, product_id: UUID) -> int:
        """
        Remove every entry of a product in one statement.

        Only InventoryCoordinator.delete_product calls this, in the same unit
        of work that deletes the product row.

        Returns:
            Number of entries removed.
        """
        result = self.session.execute(
            delete(InventoryLogEntry).where(InventoryLogEntry.product_id == product_id)
        )
        removed = result.rowcount or 0
        logger.info(
            "inventory_log_purged",
            extra={"product_id": str(product_id), "entries_removed": removed},
        )
        return removed
