"""
InventoryCoordinator -- the only writer of product quantity.

Responsibility:
    Runs every product write as one unit of work: stock movements, product
    creation (with its initial-stock entry), descriptive updates and
    deletion (with its ledger).  Either all of an operation's writes commit
    or none do.

Architecture position:
    Kernel > Services -- imperative shell around the pure stock ledger
    engine.  Owns its transactions through an injected Database; unlike the
    flush-only services it opens and closes a session_scope per call.

    adjust_stock flow:

        session_scope()
            |
            v
        SELECT product ... FOR UPDATE   (ProductNotFoundError if absent)
            |
            v
        apply_movement()                (InsufficientStockError / InvalidMovementError)
            |
            v
        UPDATE product quantity/status  (version checked)
            |
            v
        AuditLogStore.append()
            |
            v
        COMMIT                          (ConflictError on lock/version failure)

Invariants enforced:
    - Quantity never goes negative and is changed nowhere else.
    - Every committed movement has exactly one log entry with the requested
      type, magnitude and reason.
    - A rejected or failed operation leaves no partial effect.
    - Concurrent movements on one product serialize on the row lock
      (PostgreSQL) or fail the version check (any backend).

Failure modes:
    - ProductNotFoundError, CategoryNotFoundError, SupplierNotFoundError.
    - InsufficientStockError, InvalidMovementError, InvalidProductDataError.
    - DuplicateRecordError for a taken sku or barcode.
    - ConflictError when the transaction loses a race.  Never retried here.
"""

import time
from enum import Enum
from typing import Callable, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from pharmacy_kernel.db.engine import Database
from pharmacy_kernel.domain.clock import Clock, SystemClock
from pharmacy_kernel.domain.dtos import NewProduct, ProductChanges, ProductDTO
from pharmacy_kernel.domain.stock_ledger import (
    apply_movement,
    coerce_movement_type,
    derive_status,
)
from pharmacy_kernel.domain.values import MovementType
from pharmacy_kernel.exceptions import (
    CategoryNotFoundError,
    DuplicateRecordError,
    PharmacyKernelError,
    ProductNotFoundError,
    SupplierNotFoundError,
)
from pharmacy_kernel.logging_config import LogContext, get_logger
from pharmacy_kernel.models.catalog import Category, Supplier
from pharmacy_kernel.models.product import Product
from pharmacy_kernel.services.audit_log_store import AuditLogStore
from pharmacy_kernel.services.base import coerce_id

logger = get_logger("services.inventory_coordinator")

R = TypeVar("R")

DEFAULT_INITIAL_STOCK_REASON = "Initial stock"
DEFAULT_REORDER_POINT = 10


class InventoryCoordinator:
    """
    Transactional entry point for all product writes.

    Contract:
        Each public method opens its own unit of work, commits it on
        success, and returns a ProductDTO built before the session closed.

    Non-goals:
        - Does NOT retry on ConflictError.
        - Does NOT answer listing queries (see ProductDirectory).
    """

    def __init__(
        self,
        database: Database,
        clock: Clock | None = None,
        initial_stock_reason: str = DEFAULT_INITIAL_STOCK_REASON,
        default_reorder_point: int = DEFAULT_REORDER_POINT,
    ):
        self._database = database
        self._clock = clock or SystemClock()
        self._initial_stock_reason = initial_stock_reason
        self._default_reorder_point = default_reorder_point

    # =========================================================================
    # Stock movements
    # =========================================================================

    def adjust_stock(
        self,
        product_id: UUID | str,
        movement_type: MovementType | str,
        quantity: int,
        reason: str | None = None,
        actor_id: UUID | None = None,
    ) -> ProductDTO:
        """
        Apply one stock movement to a product.

        Args:
            product_id: Product to move stock for.
            movement_type: One of the six MovementType kinds (or its value).
            quantity: Positive magnitude; direction follows movement_type.
            reason: Free text recorded on the log entry.
            actor_id: Who requested the movement (logging only).

        Returns:
            The product after the movement.

        Raises:
            ProductNotFoundError, InvalidMovementError, InsufficientStockError,
            ConflictError.
        """
        def _run() -> ProductDTO:
            pid = coerce_id(product_id, ProductNotFoundError)
            kind = coerce_movement_type(movement_type)
            with self._database.session_scope() as session:
                product = self._lock_product(session, pid)
                outcome = apply_movement(
                    product.quantity, kind, quantity, product_id=pid
                )

                product.quantity = outcome.new_quantity
                product.status = outcome.new_status.value
                product.updated_at = self._clock.now()
                session.flush()

                AuditLogStore(session, self._clock).append(
                    pid, kind, quantity, reason
                )

                logger.info(
                    "stock_movement_applied",
                    extra={
                        "movement_type": kind.value,
                        "quantity": quantity,
                        "previous_quantity": outcome.previous_quantity,
                        "new_quantity": outcome.new_quantity,
                        "delta": outcome.delta,
                        "new_status": outcome.new_status.value,
                    },
                )
                return ProductDTO.from_model(product)

        return self._observed(
            "stock_adjustment", _run, product_id=product_id, actor_id=actor_id
        )

    # =========================================================================
    # Product lifecycle
    # =========================================================================

    def create_product(self, data: NewProduct, actor_id: UUID) -> ProductDTO:
        """
        Create a product, recording its initial stock as a PURCHASE.

        The initial status is OUT_OF_STOCK when quantity is 0 and ACTIVE
        otherwise, unless the payload names a status explicitly.

        Raises:
            InvalidProductDataError, DuplicateRecordError,
            CategoryNotFoundError, SupplierNotFoundError, ConflictError.
        """
        def _run() -> ProductDTO:
            data.validate()
            with self._database.session_scope() as session:
                self._require_category(session, data.category_id)
                self._require_supplier(session, data.supplier_id)
                self._check_unique(session, sku=data.sku, barcode=data.barcode)

                status = data.status or derive_status(data.quantity)
                reorder_point = (
                    data.reorder_point
                    if data.reorder_point is not None
                    else self._default_reorder_point
                )
                now = self._clock.now()
                product = Product(
                    name=data.name,
                    generic_name=data.generic_name,
                    manufacturer=data.manufacturer,
                    description=data.description,
                    barcode=data.barcode,
                    sku=data.sku,
                    price=data.price,
                    cost_price=data.cost_price,
                    quantity=data.quantity,
                    reorder_point=reorder_point,
                    expiry_date=data.expiry_date,
                    category_id=data.category_id,
                    supplier_id=data.supplier_id,
                    created_by_id=actor_id,
                    batch_number=data.batch_number,
                    dosage_form=data.dosage_form.value,
                    strength=data.strength,
                    storage=data.storage,
                    prescription_required=data.prescription_required,
                    status=status.value,
                    created_at=now,
                    updated_at=now,
                )
                session.add(product)
                session.flush()

                if data.quantity > 0:
                    AuditLogStore(session, self._clock).append(
                        product.id,
                        MovementType.PURCHASE,
                        data.quantity,
                        self._initial_stock_reason,
                    )

                logger.info(
                    "product_created",
                    extra={
                        "product_id": str(product.id),
                        "sku": product.sku,
                        "initial_quantity": data.quantity,
                        "status": status.value,
                    },
                )
                return ProductDTO.from_model(product)

        return self._observed("product_create", _run, actor_id=actor_id)

    def update_product(
        self,
        product_id: UUID | str,
        changes: ProductChanges,
        actor_id: UUID | None = None,
    ) -> ProductDTO:
        """
        Apply a partial update of descriptive fields and status.

        Quantity cannot be changed here; use adjust_stock.

        Raises:
            ProductNotFoundError, InvalidProductDataError, DuplicateRecordError,
            CategoryNotFoundError, SupplierNotFoundError, ConflictError.
        """
        def _run() -> ProductDTO:
            pid = coerce_id(product_id, ProductNotFoundError)
            changes.validate()
            provided = changes.provided()
            with self._database.session_scope() as session:
                product = self._lock_product(session, pid)
                if "category_id" in provided:
                    self._require_category(session, provided["category_id"])
                if "supplier_id" in provided:
                    self._require_supplier(session, provided["supplier_id"])
                self._check_unique(
                    session,
                    sku=provided.get("sku"),
                    barcode=provided.get("barcode"),
                    exclude_id=pid,
                )

                for name, value in provided.items():
                    setattr(product, name, value.value if isinstance(value, Enum) else value)
                product.updated_at = self._clock.now()
                session.flush()
                # Reference ids may have moved; reload the related names.
                session.expire(product, ["category", "supplier"])

                logger.info(
                    "product_updated",
                    extra={"fields": sorted(provided)},
                )
                return ProductDTO.from_model(product)

        return self._observed(
            "product_update", _run, product_id=product_id, actor_id=actor_id
        )

    def delete_product(
        self,
        product_id: UUID | str,
        actor_id: UUID | None = None,
    ) -> None:
        """
        Delete a product together with its whole inventory log.

        Raises:
            ProductNotFoundError, ConflictError.
        """
        def _run() -> None:
            pid = coerce_id(product_id, ProductNotFoundError)
            with self._database.session_scope() as session:
                product = self._lock_product(session, pid)
                removed = AuditLogStore(session, self._clock).purge_product(pid)
                session.delete(product)
                session.flush()
                logger.info(
                    "product_deleted",
                    extra={"sku": product.sku, "log_entries_removed": removed},
                )

        self._observed("product_delete", _run, product_id=product_id, actor_id=actor_id)

    # =========================================================================
    # Internals
    # =========================================================================

    def _observed(
        self,
        operation: str,
        fn: Callable[[], R],
        product_id: UUID | str | None = None,
        actor_id: UUID | None = None,
    ) -> R:
        """Run fn with bound log context and started/completed/failed events."""
        with LogContext.bind(
            operation=operation,
            product_id=str(product_id) if product_id else None,
            actor_id=str(actor_id) if actor_id else None,
        ):
            logger.info(f"{operation}_started")
            t0 = time.monotonic()
            try:
                result = fn()
            except PharmacyKernelError as exc:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.warning(
                    f"{operation}_failed",
                    extra={
                        "error_code": exc.code,
                        "error_kind": exc.kind.value,
                        "duration_ms": duration_ms,
                    },
                )
                raise
            except Exception:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.error(
                    f"{operation}_failed",
                    extra={"duration_ms": duration_ms},
                    exc_info=True,
                )
                raise
            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                f"{operation}_completed",
                extra={"duration_ms": duration_ms},
            )
            return result

    @staticmethod
    def _lock_product(session: Session, product_id: UUID) -> Product:
        # Row lock serializes movements on PostgreSQL; SQLite drops FOR UPDATE
        # and relies on the version check at flush.
        product = session.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    @staticmethod
    def _require_category(session: Session, category_id: UUID) -> None:
        if session.get(Category, category_id) is None:
            raise CategoryNotFoundError(str(category_id))

    @staticmethod
    def _require_supplier(session: Session, supplier_id: UUID) -> None:
        if session.get(Supplier, supplier_id) is None:
            raise SupplierNotFoundError(str(supplier_id))

    @staticmethod
    def _check_unique(
        session: Session,
        sku: str | None = None,
        barcode: str | None = None,
        exclude_id: UUID | None = None,
    ) -> None:
        for field_name, value in (("sku", sku), ("barcode", barcode)):
            if value is None:
                continue
            stmt = select(Product.id).where(getattr(Product, field_name) == value)
            if exclude_id is not None:
                stmt = stmt.where(Product.id != exclude_id)
            if session.execute(stmt.limit(1)).first() is not None:
                raise DuplicateRecordError("Product", field_name, value)
