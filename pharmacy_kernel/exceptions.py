"""
Typed Exception Hierarchy for the Pharmacy Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Stock movements either commit completely or not at all, and callers need to
know precisely which rule rejected them. Matching on message text is fragile,
so every failure is a typed exception that carries:

  1. A CODE class attribute (machine-readable, API-safe)
  2. A KIND class attribute (one of the closed set of FailureKind values)
  3. Structured DATA attributes (product id, quantities, field names)

Example - WRONG way to handle errors:
    try:
        coordinator.adjust_stock(product_id, "SALE", 5)
    except Exception as e:
        if "Insufficient" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way:
    try:
        coordinator.adjust_stock(product_id, "SALE", 5)
    except InsufficientStockError as e:
        respond(http_status_for(e), code=e.code, available=e.current_quantity)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PharmacyKernelError (base)
    |
    +-- NotFoundError                  kind=NOT_FOUND
    |   +-- ProductNotFoundError
    |   +-- CategoryNotFoundError
    |   +-- SupplierNotFoundError
    |
    +-- InsufficientStockError         kind=INSUFFICIENT_STOCK
    |
    +-- ConflictError                  kind=CONFLICT
    |   +-- DuplicateRecordError
    |
    +-- ValidationError                kind=VALIDATION
    |   +-- InvalidMovementError
    |   +-- InvalidProductDataError
    |   +-- InvalidQueryError
    |   +-- RecordInUseError
    |
    +-- ImmutabilityViolationError     kind=INTEGRITY

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind               | Code                  | When Raised
-------------------|-----------------------|------------------------------------
NOT_FOUND          | PRODUCT_NOT_FOUND     | Product id doesn't exist
                   | CATEGORY_NOT_FOUND    | Category id doesn't exist
                   | SUPPLIER_NOT_FOUND    | Supplier id doesn't exist
-------------------|-----------------------|------------------------------------
INSUFFICIENT_STOCK | INSUFFICIENT_STOCK    | Decreasing movement would go < 0
-------------------|-----------------------|------------------------------------
CONFLICT           | TRANSACTION_CONFLICT  | Lock/serialization/version failure
                   | DUPLICATE_RECORD      | Unique sku/barcode/name/email taken
-------------------|-----------------------|------------------------------------
VALIDATION         | INVALID_MOVEMENT      | Bad movement type or magnitude
                   | INVALID_PRODUCT_DATA  | Product payload breaks a rule
                   | INVALID_QUERY         | Unknown sort field, bad paging
                   | RECORD_IN_USE         | Category/supplier still referenced
-------------------|-----------------------|------------------------------------
INTEGRITY          | IMMUTABILITY_VIOLATION| Attempt to modify an audit entry

ConflictError is the only retryable kind. The kernel never retries on its
own; the caller decides whether to resubmit a movement.
"""

from enum import Enum, unique


@unique
class FailureKind(str, Enum):
    """Closed set of failure variants surfaced by the kernel."""

    NOT_FOUND = "not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    INTEGRITY = "integrity"


# Transport status per failure kind.  Must stay total over FailureKind.
HTTP_STATUS_BY_KIND: dict[FailureKind, int] = {
    FailureKind.NOT_FOUND: 404,
    FailureKind.INSUFFICIENT_STOCK: 400,
    FailureKind.CONFLICT: 409,
    FailureKind.VALIDATION: 400,
    FailureKind.INTEGRITY: 500,
}


class PharmacyKernelError(Exception):
    """
    Base exception for all pharmacy kernel errors.

    All subclasses carry a ``code`` and a ``kind`` class attribute.
    """

    code: str = "PHARMACY_KERNEL_ERROR"
    kind: FailureKind = FailureKind.INTEGRITY
    retryable: bool = False


def http_status_for(error: PharmacyKernelError) -> int:
    """Map a kernel error to the status code an HTTP layer should return."""
    return HTTP_STATUS_BY_KIND[error.kind]


# Lookup failures


class NotFoundError(PharmacyKernelError):
    """Base exception for a referenced record that does not exist."""

    code: str = "NOT_FOUND"
    kind: FailureKind = FailureKind.NOT_FOUND
    entity_type: str = "Record"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"
    entity_type: str = "Product"


class CategoryNotFoundError(NotFoundError):
    """Category with given ID was not found."""

    code: str = "CATEGORY_NOT_FOUND"
    entity_type: str = "Category"


class SupplierNotFoundError(NotFoundError):
    """Supplier with given ID was not found."""

    code: str = "SUPPLIER_NOT_FOUND"
    entity_type: str = "Supplier"


# Stock rule failures


class InsufficientStockError(PharmacyKernelError):
    """
    A decreasing movement would drive the on-hand quantity below zero.

    Raised before any write; the enclosing unit of work is rolled back.
    """

    code: str = "INSUFFICIENT_STOCK"
    kind: FailureKind = FailureKind.INSUFFICIENT_STOCK

    def __init__(
        self,
        current_quantity: int,
        requested_quantity: int,
        movement_type: str,
        product_id: str | None = None,
    ):
        self.current_quantity = current_quantity
        self.requested_quantity = requested_quantity
        self.movement_type = movement_type
        self.product_id = product_id
        target = f" for product {product_id}" if product_id else ""
        super().__init__(
            f"Insufficient stock{target}: {movement_type} of "
            f"{requested_quantity} requested, {current_quantity} on hand"
        )


# Transaction-level failures


class ConflictError(PharmacyKernelError):
    """
    The unit of work could not commit because of concurrent modification.

    Retryable: the caller may resubmit the whole operation.
    """

    code: str = "TRANSACTION_CONFLICT"
    kind: FailureKind = FailureKind.CONFLICT
    retryable: bool = True

    def __init__(self, reason: str, entity_type: str | None = None, entity_id: str | None = None):
        self.reason = reason
        self.entity_type = entity_type
        self.entity_id = entity_id
        target = f" on {entity_type} {entity_id}" if entity_type else ""
        super().__init__(f"Transaction conflict{target}: {reason}")


class DuplicateRecordError(ConflictError):
    """A unique business key (sku, barcode, name, email) is already taken."""

    code: str = "DUPLICATE_RECORD"
    retryable: bool = False

    def __init__(self, entity_type: str, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(
            reason=f"{field} '{value}' already exists",
            entity_type=entity_type,
        )


# Input validation failures


class ValidationError(PharmacyKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"
    kind: FailureKind = FailureKind.VALIDATION


class InvalidMovementError(ValidationError):
    """Movement type or magnitude is not acceptable."""

    code: str = "INVALID_MOVEMENT"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid movement {field}={value!r}: {reason}")


class InvalidProductDataError(ValidationError):
    """Product payload violates a field rule."""

    code: str = "INVALID_PRODUCT_DATA"

    def __init__(self, field_errors: list[str]):
        self.field_errors = field_errors
        super().__init__(
            "Invalid product data: " + "; ".join(field_errors)
        )


class InvalidQueryError(ValidationError):
    """Listing parameters (paging, sorting) are out of range."""

    code: str = "INVALID_QUERY"

    def __init__(self, parameter: str, value: object, reason: str):
        self.parameter = parameter
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid query parameter {parameter}={value!r}: {reason}")


class RecordInUseError(ValidationError):
    """A category or supplier cannot be deleted while products reference it."""

    code: str = "RECORD_IN_USE"

    def __init__(self, entity_type: str, entity_id: str, product_count: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.product_count = product_count
        super().__init__(
            f"Cannot delete {entity_type} {entity_id}: "
            f"{product_count} product(s) still reference it"
        )


# Audit trail integrity


class ImmutabilityViolationError(PharmacyKernelError):
    """
    Attempted to modify or delete an inventory log entry.

    Log entries are append-only; the only removal path is the bulk purge
    performed when the parent product is deleted.
    """

    code: str = "IMMUTABILITY_VIOLATION"
    kind: FailureKind = FailureKind.INTEGRITY

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
