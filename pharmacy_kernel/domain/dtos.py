"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the kernel boundary:
    product payloads going in (NewProduct, ProductChanges, ProductQuery) and
    projections coming out (ProductDTO, ProductDetailDTO, InventoryLogEntryDTO,
    CategoryDTO, SupplierDTO, Page).

Architecture position:
    Kernel > Domain -- zero I/O.  from_model() class methods are boundary
    converters invoked only from services and selectors.

Failure modes:
    - InvalidProductDataError from NewProduct.validate() / ProductChanges.validate()
      listing every violated field rule.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Generic, TypeVar
from uuid import UUID

from pharmacy_kernel.domain.values import DosageForm, MovementType, ProductStatus
from pharmacy_kernel.exceptions import InvalidProductDataError

if TYPE_CHECKING:
    from pharmacy_kernel.models.catalog import Category as CategoryModel
    from pharmacy_kernel.models.catalog import Supplier as SupplierModel
    from pharmacy_kernel.models.inventory_log import (
        InventoryLogEntry as InventoryLogEntryModel,
    )
    from pharmacy_kernel.models.product import Product as ProductModel

T = TypeVar("T")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_text(errors: list[str], name: str, value: str | None, required: bool) -> None:
    if value is None:
        if required:
            errors.append(f"{name} is required")
        return
    if not isinstance(value, str) or not value.strip():
        errors.append(f"{name} must be a non-empty string")


def _check_positive_decimal(errors: list[str], name: str, value: Any) -> None:
    if not isinstance(value, (Decimal, int)) or isinstance(value, bool):
        errors.append(f"{name} must be a Decimal")
    elif value <= 0:
        errors.append(f"{name} must be positive")


def _check_non_negative_int(errors: list[str], name: str, value: Any) -> None:
    if not _is_int(value):
        errors.append(f"{name} must be an integer")
    elif value < 0:
        errors.append(f"{name} cannot be negative")


# ---------------------------------------------------------------------------
# Inbound payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NewProduct:
    """
    Payload for creating a product.

    ``quantity`` is the initial stock.  ``reorder_point`` left as None takes
    the coordinator's configured default.
    """

    name: str
    manufacturer: str
    sku: str
    price: Decimal
    cost_price: Decimal
    category_id: UUID
    supplier_id: UUID
    dosage_form: DosageForm
    quantity: int = 0
    reorder_point: int | None = None
    generic_name: str | None = None
    description: str | None = None
    barcode: str | None = None
    expiry_date: datetime | None = None
    batch_number: str | None = None
    strength: str | None = None
    storage: str | None = None
    prescription_required: bool = False
    status: ProductStatus | None = None

    def validate(self) -> None:
        """Raise InvalidProductDataError listing every violated rule."""
        errors: list[str] = []
        _check_text(errors, "name", self.name, required=True)
        _check_text(errors, "manufacturer", self.manufacturer, required=True)
        _check_text(errors, "sku", self.sku, required=True)
        _check_text(errors, "barcode", self.barcode, required=False)
        _check_positive_decimal(errors, "price", self.price)
        _check_positive_decimal(errors, "cost_price", self.cost_price)
        _check_non_negative_int(errors, "quantity", self.quantity)
        if self.reorder_point is not None:
            _check_non_negative_int(errors, "reorder_point", self.reorder_point)
        if not isinstance(self.dosage_form, DosageForm):
            errors.append("dosage_form must be a DosageForm")
        if self.status is not None and not isinstance(self.status, ProductStatus):
            errors.append("status must be a ProductStatus")
        if self.expiry_date is not None and self.expiry_date.tzinfo is None:
            errors.append("expiry_date must be timezone-aware")
        if errors:
            raise InvalidProductDataError(errors)


@dataclass(frozen=True)
class ProductChanges:
    """
    Partial update of a product.  Fields left as None are not touched.

    Quantity is deliberately absent: stock only changes through movements.
    """

    name: str | None = None
    generic_name: str | None = None
    manufacturer: str | None = None
    description: str | None = None
    barcode: str | None = None
    sku: str | None = None
    price: Decimal | None = None
    cost_price: Decimal | None = None
    reorder_point: int | None = None
    expiry_date: datetime | None = None
    category_id: UUID | None = None
    supplier_id: UUID | None = None
    batch_number: str | None = None
    dosage_form: DosageForm | None = None
    strength: str | None = None
    storage: str | None = None
    prescription_required: bool | None = None
    status: ProductStatus | None = None

    def provided(self) -> dict[str, Any]:
        """Fields explicitly set on this change set."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def validate(self) -> None:
        errors: list[str] = []
        for name in ("name", "manufacturer", "sku", "barcode"):
            _check_text(errors, name, getattr(self, name), required=False)
        if self.price is not None:
            _check_positive_decimal(errors, "price", self.price)
        if self.cost_price is not None:
            _check_positive_decimal(errors, "cost_price", self.cost_price)
        if self.reorder_point is not None:
            _check_non_negative_int(errors, "reorder_point", self.reorder_point)
        if self.dosage_form is not None and not isinstance(self.dosage_form, DosageForm):
            errors.append("dosage_form must be a DosageForm")
        if self.status is not None and not isinstance(self.status, ProductStatus):
            errors.append("status must be a ProductStatus")
        if self.expiry_date is not None and self.expiry_date.tzinfo is None:
            errors.append("expiry_date must be timezone-aware")
        if errors:
            raise InvalidProductDataError(errors)


@dataclass(frozen=True)
class ProductQuery:
    """Filters, paging and sorting for the product listing."""

    search: str | None = None
    category_id: UUID | None = None
    status: ProductStatus | None = None
    expiring_before: datetime | None = None
    page: int = 1
    limit: int | None = None
    sort_by: str = "created_at"
    order: str = "desc"


# ---------------------------------------------------------------------------
# Outbound projections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a listing plus pagination metadata."""

    items: tuple[T, ...]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


@dataclass(frozen=True)
class InventoryLogEntryDTO:
    """One immutable stock movement record."""

    id: UUID
    product_id: UUID
    movement_type: MovementType
    quantity: int
    reason: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, entry: InventoryLogEntryModel) -> InventoryLogEntryDTO:
        return cls(
            id=entry.id,
            product_id=entry.product_id,
            movement_type=MovementType(entry.movement_type),
            quantity=entry.quantity,
            reason=entry.reason,
            created_at=entry.created_at,
        )


@dataclass(frozen=True)
class ProductDTO:
    """Full product projection returned by coordinator and directory."""

    id: UUID
    name: str
    generic_name: str | None
    manufacturer: str
    description: str | None
    barcode: str | None
    sku: str
    price: Decimal
    cost_price: Decimal
    quantity: int
    reorder_point: int
    expiry_date: datetime | None
    category_id: UUID
    supplier_id: UUID
    created_by_id: UUID
    batch_number: str | None
    dosage_form: DosageForm
    strength: str | None
    storage: str | None
    prescription_required: bool
    status: ProductStatus
    created_at: datetime
    updated_at: datetime
    category_name: str | None = None
    supplier_name: str | None = None

    @property
    def is_low_stock(self) -> bool:
        return self.status == ProductStatus.ACTIVE and self.quantity <= self.reorder_point

    @classmethod
    def from_model(cls, product: ProductModel) -> ProductDTO:
        return cls(
            id=product.id,
            name=product.name,
            generic_name=product.generic_name,
            manufacturer=product.manufacturer,
            description=product.description,
            barcode=product.barcode,
            sku=product.sku,
            price=product.price,
            cost_price=product.cost_price,
            quantity=product.quantity,
            reorder_point=product.reorder_point,
            expiry_date=product.expiry_date,
            category_id=product.category_id,
            supplier_id=product.supplier_id,
            created_by_id=product.created_by_id,
            batch_number=product.batch_number,
            dosage_form=DosageForm(product.dosage_form),
            strength=product.strength,
            storage=product.storage,
            prescription_required=product.prescription_required,
            status=ProductStatus(product.status),
            created_at=product.created_at,
            updated_at=product.updated_at,
            category_name=product.category.name if product.category is not None else None,
            supplier_name=product.supplier.name if product.supplier is not None else None,
        )


@dataclass(frozen=True)
class ProductDetailDTO:
    """A product together with its most recent inventory movements."""

    product: ProductDTO
    recent_movements: tuple[InventoryLogEntryDTO, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ProductSummaryDTO:
    """Compact product line used inside category/supplier details."""

    id: UUID
    name: str
    quantity: int
    status: ProductStatus


@dataclass(frozen=True)
class CategoryDTO:
    id: UUID
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime
    product_count: int | None = None

    @classmethod
    def from_model(cls, category: CategoryModel, product_count: int | None = None) -> CategoryDTO:
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            created_at=category.created_at,
            updated_at=category.updated_at,
            product_count=product_count,
        )


@dataclass(frozen=True)
class SupplierDTO:
    id: UUID
    name: str
    email: str | None
    phone: str | None
    address: str | None
    created_at: datetime
    updated_at: datetime
    product_count: int | None = None

    @classmethod
    def from_model(cls, supplier: SupplierModel, product_count: int | None = None) -> SupplierDTO:
        return cls(
            id=supplier.id,
            name=supplier.name,
            email=supplier.email,
            phone=supplier.phone,
            address=supplier.address,
            created_at=supplier.created_at,
            updated_at=supplier.updated_at,
            product_count=product_count,
        )


@dataclass(frozen=True)
class CategoryDetailDTO:
    category: CategoryDTO
    products: tuple[ProductSummaryDTO, ...]


@dataclass(frozen=True)
class SupplierDetailDTO:
    supplier: SupplierDTO
    products: tuple[ProductSummaryDTO, ...]


@dataclass(frozen=True)
class SupplierStatsDTO:
    """Aggregate figures over the products of one supplier."""

    supplier_id: UUID
    total_products: int
    total_quantity: int
    average_price: Decimal
    average_cost_price: Decimal
    low_stock_products: int
    products_by_status: dict[ProductStatus, int]
