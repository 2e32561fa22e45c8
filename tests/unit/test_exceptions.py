"""Exception hierarchy: codes, kinds and the transport status mapping."""

import pytest

from pharmacy_kernel import exceptions as exc
from pharmacy_kernel.exceptions import FailureKind, HTTP_STATUS_BY_KIND, http_status_for

CASES = [
    (exc.ProductNotFoundError("p"), "PRODUCT_NOT_FOUND", 404),
    (exc.CategoryNotFoundError("c"), "CATEGORY_NOT_FOUND", 404),
    (exc.SupplierNotFoundError("s"), "SUPPLIER_NOT_FOUND", 404),
    (exc.InsufficientStockError(1, 2, "SALE"), "INSUFFICIENT_STOCK", 400),
    (exc.ConflictError("lock timeout"), "TRANSACTION_CONFLICT", 409),
    (exc.DuplicateRecordError("Product", "sku", "X"), "DUPLICATE_RECORD", 409),
    (exc.InvalidMovementError("quantity", 0, "must be positive"), "INVALID_MOVEMENT", 400),
    (exc.InvalidProductDataError(["name is required"]), "INVALID_PRODUCT_DATA", 400),
    (exc.InvalidQueryError("sort_by", "sku", "unknown"), "INVALID_QUERY", 400),
    (exc.RecordInUseError("Category", "c", 3), "RECORD_IN_USE", 400),
    (exc.ImmutabilityViolationError("InventoryLogEntry", "e", "no"), "IMMUTABILITY_VIOLATION", 500),
]


class TestErrorTaxonomy:
    @pytest.mark.parametrize("error, code, status", CASES)
    def test_code_and_status(self, error, code, status):
        assert error.code == code
        assert http_status_for(error) == status

    def test_status_mapping_is_total(self):
        assert set(HTTP_STATUS_BY_KIND) == set(FailureKind)

    def test_only_transaction_conflicts_are_retryable(self):
        retryable = [e for e, _, _ in CASES if e.retryable]
        assert [type(e) for e in retryable] == [exc.ConflictError]

    def test_every_concrete_error_is_covered(self):
        covered = {type(e) for e, _, _ in CASES}
        abstract = {
            exc.PharmacyKernelError,
            exc.NotFoundError,
            exc.ValidationError,
        }

        def _all_subclasses(cls):
            for sub in cls.__subclasses__():
                yield sub
                yield from _all_subclasses(sub)

        concrete = set(_all_subclasses(exc.PharmacyKernelError)) - abstract
        assert concrete <= covered

    def test_insufficient_stock_message(self):
        error = exc.InsufficientStockError(5, 6, "SALE", product_id="abc")
        assert "abc" in str(error)
        assert "6" in str(error) and "5" in str(error)
