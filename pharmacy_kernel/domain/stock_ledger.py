"""
Stock Ledger Engine -- pure quantity/status computation for one movement.

Responsibility:
    Given the current on-hand quantity and a requested movement, compute the
    new quantity and the derived product status, or reject the movement.

Architecture position:
    Kernel > Domain -- pure functional core.  No I/O, no session, no clock.
    Called by InventoryCoordinator inside its unit of work, after the product
    row has been locked and before anything is written.

Invariants enforced:
    - Direction policy is fixed: PURCHASE and RETURN increase stock; SALE,
      ADJUSTMENT, EXPIRED and DAMAGED decrease it.
    - Non-negativity: a decreasing movement larger than the on-hand quantity
      raises InsufficientStockError.  Because this runs before any write,
      a rejected movement leaves no trace.
    - Status derivation: new_status is OUT_OF_STOCK when the new quantity is
      zero and ACTIVE otherwise.

Known limitation:
    Status derivation is unconditional.  A product that was DISCONTINUED or
    EXPIRED becomes ACTIVE (or OUT_OF_STOCK) again as soon as any movement is
    applied to it.  This mirrors the behaviour of the system being replaced
    and is kept until the intended interaction between movements and manual
    status changes is decided.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping
from uuid import UUID

from pharmacy_kernel.domain.values import MovementType, ProductStatus
from pharmacy_kernel.exceptions import InsufficientStockError, InvalidMovementError


class MovementDirection(str, Enum):
    """Sign of a movement's effect on the on-hand quantity."""

    INCREASE = "increase"
    DECREASE = "decrease"


MOVEMENT_DIRECTIONS: Mapping[MovementType, MovementDirection] = MappingProxyType({
    MovementType.PURCHASE: MovementDirection.INCREASE,
    MovementType.RETURN: MovementDirection.INCREASE,
    MovementType.SALE: MovementDirection.DECREASE,
    MovementType.ADJUSTMENT: MovementDirection.DECREASE,
    MovementType.EXPIRED: MovementDirection.DECREASE,
    MovementType.DAMAGED: MovementDirection.DECREASE,
})


@dataclass(frozen=True)
class StockMovementOutcome:
    """Result of applying one movement to an on-hand quantity."""

    previous_quantity: int
    new_quantity: int
    new_status: ProductStatus
    movement_type: MovementType
    movement_quantity: int

    @property
    def delta(self) -> int:
        """Signed change in on-hand quantity."""
        return self.new_quantity - self.previous_quantity


def coerce_movement_type(value: MovementType | str) -> MovementType:
    """Accept an enum member or its string value."""
    if isinstance(value, MovementType):
        return value
    try:
        return MovementType(value)
    except ValueError:
        raise InvalidMovementError(
            "movement_type",
            value,
            "must be one of " + ", ".join(m.value for m in MovementType),
        ) from None


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def derive_status(quantity: int) -> ProductStatus:
    """OUT_OF_STOCK at zero, ACTIVE otherwise."""
    return ProductStatus.OUT_OF_STOCK if quantity == 0 else ProductStatus.ACTIVE


def apply_movement(
    current_quantity: int,
    movement_type: MovementType | str,
    movement_quantity: int,
    *,
    product_id: UUID | str | None = None,
) -> StockMovementOutcome:
    """
    Compute the effect of one movement.

    Args:
        current_quantity: On-hand quantity before the movement (>= 0).
        movement_type: One of the six MovementType kinds.
        movement_quantity: Magnitude of the change (> 0), never signed.
        product_id: Only used to enrich the error message.

    Returns:
        StockMovementOutcome with the new quantity and derived status.

    Raises:
        InvalidMovementError: Bad type, non-integer or non-positive magnitude.
        InsufficientStockError: Decreasing movement larger than on-hand stock.
    """
    kind = coerce_movement_type(movement_type)

    if not _is_int(movement_quantity) or movement_quantity <= 0:
        raise InvalidMovementError(
            "quantity", movement_quantity, "must be a positive integer"
        )
    if not _is_int(current_quantity) or current_quantity < 0:
        raise InvalidMovementError(
            "current_quantity", current_quantity, "must be a non-negative integer"
        )

    if MOVEMENT_DIRECTIONS[kind] is MovementDirection.INCREASE:
        new_quantity = current_quantity + movement_quantity
    else:
        new_quantity = current_quantity - movement_quantity

    if new_quantity < 0:
        raise InsufficientStockError(
            current_quantity=current_quantity,
            requested_quantity=movement_quantity,
            movement_type=kind.value,
            product_id=str(product_id) if product_id is not None else None,
        )

    return StockMovementOutcome(
        previous_quantity=current_quantity,
        new_quantity=new_quantity,
        new_status=derive_status(new_quantity),
        movement_type=kind,
        movement_quantity=movement_quantity,
    )
