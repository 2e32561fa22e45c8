"""
InventoryCoordinator tests.

Covers stock movements, product creation with initial stock, descriptive
updates, deletion with the ledger, and the both-or-neither guarantee when a
failure is injected between the product write and the log append.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from pharmacy_kernel.domain.dtos import ProductChanges
from pharmacy_kernel.domain.values import MovementType, ProductStatus
from pharmacy_kernel.exceptions import (
    CategoryNotFoundError,
    DuplicateRecordError,
    InsufficientStockError,
    InvalidMovementError,
    InvalidProductDataError,
    ProductNotFoundError,
    SupplierNotFoundError,
)
from pharmacy_kernel.services.audit_log_store import AuditLogStore
from pharmacy_kernel.services.inventory_coordinator import InventoryCoordinator


class TestAdjustStock:
    """Stock movements through the coordinator."""

    def test_sale_to_zero_marks_out_of_stock(self, create_product, coordinator, log_entries, clock):
        product = create_product(quantity=10)
        clock.advance()

        result = coordinator.adjust_stock(product.id, MovementType.SALE, 10, reason="counter sale")

        assert result.quantity == 0
        assert result.status == ProductStatus.OUT_OF_STOCK
        entries = log_entries(product.id)
        assert [(e.movement_type, e.quantity) for e in entries] == [
            (MovementType.PURCHASE, 10),
            (MovementType.SALE, 10),
        ]
        assert entries[-1].reason == "counter sale"

    def test_oversell_leaves_no_trace(self, create_product, coordinator, log_entries, stored_quantity):
        product = create_product(quantity=5)

        with pytest.raises(InsufficientStockError) as exc_info:
            coordinator.adjust_stock(product.id, MovementType.SALE, 6)

        assert exc_info.value.current_quantity == 5
        assert exc_info.value.requested_quantity == 6
        assert stored_quantity(product.id) == (5, ProductStatus.ACTIVE.value)
        assert len(log_entries(product.id)) == 1

    def test_sale_after_selling_out_is_rejected(
        self, create_product, coordinator, log_entries, stored_quantity, clock
    ):
        product = create_product(quantity=5)
        clock.advance()
        coordinator.adjust_stock(product.id, MovementType.SALE, 5)
        clock.advance()

        with pytest.raises(InsufficientStockError) as exc_info:
            coordinator.adjust_stock(product.id, MovementType.SALE, 1)

        assert exc_info.value.current_quantity == 0
        assert stored_quantity(product.id) == (0, ProductStatus.OUT_OF_STOCK.value)
        entries = log_entries(product.id)
        assert [(e.movement_type, e.quantity) for e in entries] == [
            (MovementType.PURCHASE, 5),
            (MovementType.SALE, 5),
        ]

    @pytest.mark.parametrize("kind", [MovementType.PURCHASE, MovementType.RETURN])
    def test_increasing_movement_adds_and_logs_once(
        self, kind, create_product, coordinator, log_entries, clock
    ):
        product = create_product(quantity=3)
        clock.advance()

        result = coordinator.adjust_stock(product.id, kind, 4)

        assert result.quantity == 7
        entries = log_entries(product.id)
        assert len(entries) == 2
        assert entries[-1].movement_type == kind
        assert entries[-1].quantity == 4

    @pytest.mark.parametrize(
        "kind",
        [MovementType.SALE, MovementType.ADJUSTMENT, MovementType.EXPIRED, MovementType.DAMAGED],
    )
    def test_decreasing_movement_subtracts(self, kind, create_product, coordinator):
        product = create_product(quantity=8)
        result = coordinator.adjust_stock(product.id, kind, 3)
        assert result.quantity == 5
        assert result.status == ProductStatus.ACTIVE

    def test_restock_from_zero_reactivates(self, create_product, coordinator):
        product = create_product(quantity=0)
        assert product.status == ProductStatus.OUT_OF_STOCK

        result = coordinator.adjust_stock(product.id, "PURCHASE", 12)

        assert result.quantity == 12
        assert result.status == ProductStatus.ACTIVE

    def test_movement_overrides_discontinued_status(self, create_product, coordinator):
        """Status is always re-derived from quantity after a movement."""
        product = create_product(quantity=4)
        coordinator.update_product(product.id, ProductChanges(status=ProductStatus.DISCONTINUED))

        result = coordinator.adjust_stock(product.id, MovementType.RETURN, 1)

        assert result.status == ProductStatus.ACTIVE

    def test_repeated_not_found_writes_nothing(self, coordinator, database):
        missing = uuid4()
        for _ in range(3):
            with pytest.raises(ProductNotFoundError) as exc_info:
                coordinator.adjust_stock(missing, MovementType.PURCHASE, 1)
            assert exc_info.value.entity_id == str(missing)

        with database.session_scope() as session:
            assert AuditLogStore(session).count_by_product(missing) == 0

    def test_malformed_product_id_is_not_found(self, coordinator):
        with pytest.raises(ProductNotFoundError):
            coordinator.adjust_stock("not-a-uuid", MovementType.SALE, 1)

    def test_invalid_magnitude_rejected(self, create_product, coordinator, log_entries):
        product = create_product(quantity=2)
        with pytest.raises(InvalidMovementError):
            coordinator.adjust_stock(product.id, MovementType.SALE, 0)
        assert len(log_entries(product.id)) == 1

    def test_unknown_movement_type_rejected(self, create_product, coordinator):
        product = create_product(quantity=2)
        with pytest.raises(InvalidMovementError):
            coordinator.adjust_stock(product.id, "SHRINKAGE", 1)

    def test_log_entry_timestamp_comes_from_clock(self, create_product, coordinator, log_entries, clock):
        product = create_product(quantity=1)
        clock.advance(3600)

        coordinator.adjust_stock(product.id, MovementType.PURCHASE, 1)

        assert log_entries(product.id)[-1].created_at == clock.now()


class TestAtomicity:
    """Both the product update and the log entry commit, or neither does."""

    def test_failure_after_product_write_rolls_back(
        self, create_product, coordinator, log_entries, stored_quantity, monkeypatch
    ):
        product = create_product(quantity=10)

        def _boom(self, *args, **kwargs):
            raise RuntimeError("log storage unavailable")

        monkeypatch.setattr(AuditLogStore, "append", _boom)

        with pytest.raises(RuntimeError, match="log storage unavailable"):
            coordinator.adjust_stock(product.id, MovementType.SALE, 4)

        monkeypatch.undo()
        assert stored_quantity(product.id) == (10, ProductStatus.ACTIVE.value)
        assert len(log_entries(product.id)) == 1

    def test_failed_initial_stock_append_creates_nothing(
        self, coordinator, new_product, actor_id, database, monkeypatch
    ):
        from pharmacy_kernel.selectors.product_directory import ProductDirectory

        def _boom(self, *args, **kwargs):
            raise RuntimeError("log storage unavailable")

        monkeypatch.setattr(AuditLogStore, "append", _boom)
        payload = new_product(quantity=5, sku="ATOMIC-1")

        with pytest.raises(RuntimeError):
            coordinator.create_product(payload, actor_id=actor_id)

        monkeypatch.undo()
        with database.session_scope() as session:
            assert ProductDirectory(session).find_by_sku("ATOMIC-1") is None


class TestCreateProduct:
    def test_initial_stock_logged_as_purchase(self, create_product, log_entries, actor_id):
        product = create_product(quantity=50)

        assert product.quantity == 50
        assert product.status == ProductStatus.ACTIVE
        assert product.created_by_id == actor_id
        entries = log_entries(product.id)
        assert len(entries) == 1
        assert entries[0].movement_type == MovementType.PURCHASE
        assert entries[0].quantity == 50
        assert entries[0].reason == "Initial stock"

    def test_zero_stock_creates_no_entry_and_is_out_of_stock(self, create_product, log_entries):
        product = create_product(quantity=0)

        assert product.status == ProductStatus.OUT_OF_STOCK
        assert log_entries(product.id) == []

    def test_explicit_status_is_kept(self, create_product):
        product = create_product(quantity=0, status=ProductStatus.DISCONTINUED)
        assert product.status == ProductStatus.DISCONTINUED

    def test_initial_stock_reason_is_configurable(self, database, clock, new_product, actor_id, log_entries):
        coordinator = InventoryCoordinator(database, clock=clock, initial_stock_reason="Opening balance")
        product = coordinator.create_product(new_product(quantity=2), actor_id=actor_id)
        assert log_entries(product.id)[0].reason == "Opening balance"

    def test_default_reorder_point_applied(self, database, clock, new_product, actor_id):
        coordinator = InventoryCoordinator(database, clock=clock, default_reorder_point=25)
        product = coordinator.create_product(new_product(), actor_id=actor_id)
        assert product.reorder_point == 25

    def test_reference_names_projected(self, create_product, category, supplier):
        product = create_product()
        assert product.category_name == category.name
        assert product.supplier_name == supplier.name

    def test_timestamps_from_clock(self, create_product, clock):
        product = create_product()
        assert product.created_at == clock.now()
        assert product.updated_at == clock.now()

    def test_duplicate_sku_rejected(self, create_product):
        create_product(sku="DUP-1")
        with pytest.raises(DuplicateRecordError) as exc_info:
            create_product(sku="DUP-1")
        assert exc_info.value.field == "sku"

    def test_duplicate_barcode_rejected(self, create_product):
        create_product(barcode="0012345")
        with pytest.raises(DuplicateRecordError) as exc_info:
            create_product(barcode="0012345")
        assert exc_info.value.field == "barcode"

    def test_unknown_category_rejected(self, create_product):
        with pytest.raises(CategoryNotFoundError):
            create_product(category_id=uuid4())

    def test_unknown_supplier_rejected(self, create_product):
        with pytest.raises(SupplierNotFoundError):
            create_product(supplier_id=uuid4())

    def test_invalid_payload_rejected(self, create_product):
        with pytest.raises(InvalidProductDataError):
            create_product(price=Decimal("-1.00"))

    def test_expiry_round_trips_as_utc(self, create_product, database):
        from pharmacy_kernel.selectors.product_directory import ProductDirectory

        expiry = datetime(2024, 6, 30, tzinfo=timezone.utc)
        product = create_product(expiry_date=expiry)

        with database.session_scope() as session:
            detail = ProductDirectory(session).get_product(product.id)
        assert detail.product.expiry_date == expiry


class TestUpdateProduct:
    def test_partial_update(self, create_product, coordinator, clock):
        product = create_product(quantity=3)
        clock.advance(60)

        result = coordinator.update_product(
            product.id,
            ProductChanges(name="Paracetamol Forte", price=Decimal("5.49")),
        )

        assert result.name == "Paracetamol Forte"
        assert result.price == Decimal("5.49")
        assert result.quantity == 3
        assert result.sku == product.sku
        assert result.updated_at == clock.now()
        assert result.created_at == product.created_at

    def test_update_does_not_log_movements(self, create_product, coordinator, log_entries):
        product = create_product(quantity=3)
        coordinator.update_product(product.id, ProductChanges(reorder_point=1))
        assert len(log_entries(product.id)) == 1

    def test_change_category_updates_name(self, create_product, create_category, coordinator):
        product = create_product()
        other = create_category("Antibiotics")

        result = coordinator.update_product(product.id, ProductChanges(category_id=other.id))

        assert result.category_id == other.id
        assert result.category_name == "Antibiotics"

    def test_sku_of_another_product_rejected(self, create_product, coordinator):
        first = create_product(sku="A-1")
        second = create_product(sku="B-1")
        with pytest.raises(DuplicateRecordError):
            coordinator.update_product(second.id, ProductChanges(sku=first.sku))

    def test_keeping_own_sku_allowed(self, create_product, coordinator):
        product = create_product(sku="SELF-1")
        result = coordinator.update_product(product.id, ProductChanges(sku="SELF-1"))
        assert result.sku == "SELF-1"

    def test_unknown_product(self, coordinator):
        with pytest.raises(ProductNotFoundError):
            coordinator.update_product(uuid4(), ProductChanges(name="x"))

    def test_unknown_supplier(self, create_product, coordinator):
        product = create_product()
        with pytest.raises(SupplierNotFoundError):
            coordinator.update_product(product.id, ProductChanges(supplier_id=uuid4()))


class TestDeleteProduct:
    def test_delete_removes_product_and_ledger(self, create_product, coordinator, database, clock):
        from pharmacy_kernel.selectors.product_directory import ProductDirectory

        product = create_product(quantity=10)
        clock.advance()
        coordinator.adjust_stock(product.id, MovementType.SALE, 2)
        clock.advance()
        coordinator.adjust_stock(product.id, MovementType.DAMAGED, 1)
        with database.session_scope() as session:
            assert AuditLogStore(session).count_by_product(product.id) == 3

        coordinator.delete_product(product.id)

        with database.session_scope() as session:
            assert AuditLogStore(session).count_by_product(product.id) == 0
            with pytest.raises(ProductNotFoundError):
                ProductDirectory(session).get_product(product.id)

    def test_delete_unknown_product(self, coordinator):
        with pytest.raises(ProductNotFoundError):
            coordinator.delete_product(uuid4())

    def test_delete_leaves_other_ledgers(self, create_product, coordinator, log_entries):
        keep = create_product(quantity=4)
        drop = create_product(quantity=6)

        coordinator.delete_product(drop.id)

        assert len(log_entries(keep.id)) == 1


class TestCoordinatorLogging:
    def test_started_and_completed_events(self, create_product, coordinator, captured_logs, actor_id):
        product = create_product(quantity=5)

        coordinator.adjust_stock(product.id, MovementType.SALE, 1, actor_id=actor_id)

        logs = captured_logs()
        started = [r for r in logs if r["message"] == "stock_adjustment_started"]
        completed = [r for r in logs if r["message"] == "stock_adjustment_completed"]
        assert len(started) == 1
        assert len(completed) == 1
        assert completed[0]["product_id"] == str(product.id)
        assert completed[0]["actor_id"] == str(actor_id)
        assert completed[0]["operation"] == "stock_adjustment"
        assert "duration_ms" in completed[0]

    def test_failed_event_carries_error_code(self, create_product, coordinator, captured_logs):
        product = create_product(quantity=1)

        with pytest.raises(InsufficientStockError):
            coordinator.adjust_stock(product.id, MovementType.SALE, 2)

        failed = [r for r in captured_logs() if r["message"] == "stock_adjustment_failed"]
        assert len(failed) == 1
        assert failed[0]["error_code"] == "INSUFFICIENT_STOCK"
        assert failed[0]["level"] == "WARNING"

    def test_applied_event_carries_signed_delta(self, create_product, coordinator, captured_logs):
        product = create_product(quantity=9)

        coordinator.adjust_stock(product.id, MovementType.EXPIRED, 4)

        applied = [r for r in captured_logs() if r["message"] == "stock_movement_applied"]
        assert len(applied) == 1
        assert applied[0]["delta"] == -4
        assert applied[0]["new_quantity"] == 5

    @pytest.mark.parametrize(
        "product_ref, movement_type, error_code",
        [
            ("not-a-uuid", MovementType.SALE, "PRODUCT_NOT_FOUND"),
            (None, "SHRINKAGE", "INVALID_MOVEMENT"),
        ],
    )
    def test_rejected_input_logs_failed_event(
        self, product_ref, movement_type, error_code, create_product, coordinator, captured_logs
    ):
        product_id = product_ref or create_product(quantity=2).id

        with pytest.raises((ProductNotFoundError, InvalidMovementError)):
            coordinator.adjust_stock(product_id, movement_type, 1)

        logs = captured_logs()
        failed = [r for r in logs if r["message"] == "stock_adjustment_failed"]
        assert len(failed) == 1
        assert failed[0]["error_code"] == error_code
        assert failed[0]["product_id"] == str(product_id)
        assert any(r["message"] == "stock_adjustment_started" for r in logs)
