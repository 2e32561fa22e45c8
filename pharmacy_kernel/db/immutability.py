"""
ORM-Level Immutability Enforcement for the inventory log.

===============================================================================
WHY THIS EXISTS
===============================================================================

The inventory log is the audit trail of every stock movement.  A quantity on
a product can always be explained by replaying its log entries; that only
holds if entries are never edited or removed one at a time.

SQLAlchemy fires mapper events before UPDATE/DELETE statements are emitted
for ORM-tracked objects:

    session.flush()
         |
         v
    [before_update] --> _check_log_entry_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete] --> _check_log_entry_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

The violation aborts the flush, and the enclosing unit of work rolls back.

===============================================================================
THE ONE SANCTIONED REMOVAL PATH
===============================================================================

Deleting a product removes its whole ledger with a single bulk
``DELETE ... WHERE product_id = :id`` issued by AuditLogStore.purge_product.
Bulk statements do not pass through mapper events, so they are not blocked
here.  No single-entry delete exists anywhere in the kernel.

===============================================================================
USAGE
===============================================================================

Database registers the listeners when it is constructed:

    from pharmacy_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # idempotent

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from pharmacy_kernel.exceptions import ImmutabilityViolationError
from pharmacy_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_log_entry_immutability(mapper, connection, target):
    """Prevent any UPDATE of an InventoryLogEntry."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "InventoryLogEntry",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="InventoryLogEntry",
        entity_id=str(target.id),
        reason="Inventory log entries are immutable and cannot be modified",
    )


def _check_log_entry_delete(mapper, connection, target):
    """Prevent single-row DELETE of an InventoryLogEntry."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "InventoryLogEntry",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="InventoryLogEntry",
        entity_id=str(target.id),
        reason="Inventory log entries are removed only with their product",
    )


_LISTENERS = (
    ("before_update", _check_log_entry_immutability),
    ("before_delete", _check_log_entry_delete),
)


def register_immutability_listeners() -> None:
    """Register the inventory log listeners (idempotent)."""
    from pharmacy_kernel.models.inventory_log import InventoryLogEntry

    for event_name, listener_fn in _LISTENERS:
        if not event.contains(InventoryLogEntry, event_name, listener_fn):
            event.listen(InventoryLogEntry, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove the inventory log listeners.

    WARNING: Only use this in tests that need to violate the rule on purpose.
    """
    from pharmacy_kernel.models.inventory_log import InventoryLogEntry

    for event_name, listener_fn in _LISTENERS:
        if event.contains(InventoryLogEntry, event_name, listener_fn):
            event.remove(InventoryLogEntry, event_name, listener_fn)
