"""Pure domain layer: value enums, DTOs, clock and the stock ledger engine."""

from pharmacy_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pharmacy_kernel.domain.stock_ledger import (
    MOVEMENT_DIRECTIONS,
    MovementDirection,
    StockMovementOutcome,
    apply_movement,
)
from pharmacy_kernel.domain.values import DosageForm, MovementType, ProductStatus

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "MOVEMENT_DIRECTIONS",
    "MovementDirection",
    "StockMovementOutcome",
    "apply_movement",
    "DosageForm",
    "MovementType",
    "ProductStatus",
]
