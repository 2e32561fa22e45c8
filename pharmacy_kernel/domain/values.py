"""
Value enumerations shared by the ORM models, the stock ledger engine and the
read side.

Pure module: no I/O, no SQLAlchemy imports.
"""

from enum import Enum


class ProductStatus(str, Enum):
    """Lifecycle status of a product.

    ACTIVE and OUT_OF_STOCK are derived from quantity by the stock ledger.
    DISCONTINUED and EXPIRED are set explicitly through product updates.
    """

    ACTIVE = "ACTIVE"
    DISCONTINUED = "DISCONTINUED"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    EXPIRED = "EXPIRED"


class MovementType(str, Enum):
    """Kinds of stock movement recorded in the inventory log."""

    PURCHASE = "PURCHASE"
    SALE = "SALE"
    ADJUSTMENT = "ADJUSTMENT"
    RETURN = "RETURN"
    EXPIRED = "EXPIRED"
    DAMAGED = "DAMAGED"


class DosageForm(str, Enum):
    """Physical form a medicine is dispensed in."""

    TABLET = "TABLET"
    CAPSULE = "CAPSULE"
    LIQUID = "LIQUID"
    INJECTION = "INJECTION"
    CREAM = "CREAM"
    OINTMENT = "OINTMENT"
    DROPS = "DROPS"
    INHALER = "INHALER"
    POWDER = "POWDER"
    OTHER = "OTHER"
