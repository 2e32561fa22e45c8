"""
Module: pharmacy_kernel.selectors.catalog_selector
Responsibility: Read-only listings and detail views for categories and
    suppliers, including per-record product counts and supplier statistics.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - product_count always reflects the products referencing the record at
      query time; nothing is cached.

Failure modes:
    - CategoryNotFoundError / SupplierNotFoundError from the detail and stats
      queries.
    - InvalidQueryError for bad paging or sorting parameters.
"""

from decimal import Decimal
from types import MappingProxyType
from uuid import UUID

from sqlalchemy import func, or_, select

from pharmacy_kernel.domain.dtos import (
    CategoryDetailDTO,
    CategoryDTO,
    Page,
    ProductSummaryDTO,
    SupplierDetailDTO,
    SupplierDTO,
    SupplierStatsDTO,
)
from pharmacy_kernel.domain.values import ProductStatus
from pharmacy_kernel.exceptions import CategoryNotFoundError, SupplierNotFoundError
from pharmacy_kernel.models.catalog import Category, Supplier
from pharmacy_kernel.models.product import Product
from pharmacy_kernel.selectors.base import BaseSelector
from pharmacy_kernel.services.base import coerce_id

CATEGORY_SORT_COLUMNS = MappingProxyType({
    "name": Category.name,
    "created_at": Category.created_at,
})

SUPPLIER_SORT_COLUMNS = MappingProxyType({
    "name": Supplier.name,
    "created_at": Supplier.created_at,
})

_CENT = Decimal("0.01")


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(_CENT)


def _summaries(products) -> tuple[ProductSummaryDTO, ...]:
    return tuple(
        ProductSummaryDTO(
            id=p.id,
            name=p.name,
            quantity=p.quantity,
            status=ProductStatus(p.status),
        )
        for p in products
    )


class CatalogSelector(BaseSelector[Category]):
    """Category and supplier queries."""

    # =========================================================================
    # Categories
    # =========================================================================

    def list_categories(
        self,
        search: str | None = None,
        page: int = 1,
        limit: int | None = None,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> Page[CategoryDTO]:
        """Categories matching ``search`` on name or description."""
        page, limit = self._resolve_paging(page, limit)
        order_by = self._resolve_order_by(CATEGORY_SORT_COLUMNS, sort_by, order)

        conditions = []
        if search:
            conditions.append(
                or_(
                    Category.name.icontains(search, autoescape=True),
                    Category.description.icontains(search, autoescape=True),
                )
            )

        total = self.session.execute(
            select(func.count()).select_from(Category).where(*conditions)
        ).scalar_one()

        counts = (
            select(Product.category_id, func.count(Product.id).label("product_count"))
            .group_by(Product.category_id)
            .subquery()
        )
        stmt = (
            select(Category, func.coalesce(counts.c.product_count, 0))
            .outerjoin(counts, counts.c.category_id == Category.id)
            .where(*conditions)
            .order_by(order_by, Category.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = self.session.execute(stmt).all()

        return Page(
            items=tuple(CategoryDTO.from_model(c, product_count=n) for c, n in rows),
            total=total,
            page=page,
            limit=limit,
        )

    def get_category_detail(self, category_id: UUID | str) -> CategoryDetailDTO:
        """A category with a summary line for each of its products."""
        category = self.session.get(Category, coerce_id(category_id, CategoryNotFoundError))
        if category is None:
            raise CategoryNotFoundError(str(category_id))

        products = _summaries(
            self.session.execute(
                select(Product).where(Product.category_id == category.id).order_by(Product.name)
            ).scalars()
        )
        return CategoryDetailDTO(
            category=CategoryDTO.from_model(category, product_count=len(products)),
            products=products,
        )

    # =========================================================================
    # Suppliers
    # =========================================================================

    def list_suppliers(
        self,
        search: str | None = None,
        page: int = 1,
        limit: int | None = None,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> Page[SupplierDTO]:
        """Suppliers matching ``search`` on name, email or phone."""
        page, limit = self._resolve_paging(page, limit)
        order_by = self._resolve_order_by(SUPPLIER_SORT_COLUMNS, sort_by, order)

        conditions = []
        if search:
            conditions.append(
                or_(
                    Supplier.name.icontains(search, autoescape=True),
                    Supplier.email.icontains(search, autoescape=True),
                    Supplier.phone.icontains(search, autoescape=True),
                )
            )

        total = self.session.execute(
            select(func.count()).select_from(Supplier).where(*conditions)
        ).scalar_one()

        counts = (
            select(Product.supplier_id, func.count(Product.id).label("product_count"))
            .group_by(Product.supplier_id)
            .subquery()
        )
        stmt = (
            select(Supplier, func.coalesce(counts.c.product_count, 0))
            .outerjoin(counts, counts.c.supplier_id == Supplier.id)
            .where(*conditions)
            .order_by(order_by, Supplier.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = self.session.execute(stmt).all()

        return Page(
            items=tuple(SupplierDTO.from_model(s, product_count=n) for s, n in rows),
            total=total,
            page=page,
            limit=limit,
        )

    def get_supplier_detail(self, supplier_id: UUID | str) -> SupplierDetailDTO:
        """A supplier with a summary line for each product bought from it."""
        supplier = self._get_supplier(supplier_id)

        products = _summaries(
            self.session.execute(
                select(Product).where(Product.supplier_id == supplier.id).order_by(Product.name)
            ).scalars()
        )
        return SupplierDetailDTO(
            supplier=SupplierDTO.from_model(supplier, product_count=len(products)),
            products=products,
        )

    def supplier_stats(self, supplier_id: UUID | str) -> SupplierStatsDTO:
        """
        Aggregate figures over a supplier's products.

        Low stock here counts every product at or below its reorder point,
        whatever its status.
        """
        supplier = self._get_supplier(supplier_id)
        of_supplier = Product.supplier_id == supplier.id

        total, total_quantity, avg_price, avg_cost = self.session.execute(
            select(
                func.count(Product.id),
                func.sum(Product.quantity),
                func.avg(Product.price),
                func.avg(Product.cost_price),
            ).where(of_supplier)
        ).one()

        low_stock = self.session.execute(
            select(func.count())
            .select_from(Product)
            .where(of_supplier, Product.quantity <= Product.reorder_point)
        ).scalar_one()

        by_status = {
            ProductStatus(status): n
            for status, n in self.session.execute(
                select(Product.status, func.count(Product.id))
                .where(of_supplier)
                .group_by(Product.status)
            ).all()
        }

        return SupplierStatsDTO(
            supplier_id=supplier.id,
            total_products=total,
            total_quantity=int(total_quantity or 0),
            average_price=_money(avg_price),
            average_cost_price=_money(avg_cost),
            low_stock_products=low_stock,
            products_by_status=by_status,
        )

    def _get_supplier(self, supplier_id: UUID | str) -> Supplier:
        supplier = self.session.get(Supplier, coerce_id(supplier_id, SupplierNotFoundError))
        if supplier is None:
            raise SupplierNotFoundError(str(supplier_id))
        return supplier
