"""
ProductDirectory -- read side of the product catalog.

Responsibility:
    Filtered, paged and sorted product listings; single-product detail with
    recent movements; low-stock and expiring-soon reports.

Architecture position:
    Kernel > Selectors.  Read-only; runs inside whatever session the caller
    opened.  The expiring-soon window is measured from the injected clock.

Invariants enforced:
    - Low stock means ``quantity <= reorder_point`` on an ACTIVE product.
    - Expiring soon means an ACTIVE product with
      ``now <= expiry_date <= now + window``.

Failure modes:
    - ProductNotFoundError from get_product().
    - InvalidQueryError for bad paging or sorting parameters.
"""

from datetime import timedelta
from types import MappingProxyType
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from pharmacy_kernel.domain.clock import Clock
from pharmacy_kernel.domain.dtos import Page, ProductDetailDTO, ProductDTO, ProductQuery
from pharmacy_kernel.domain.values import ProductStatus
from pharmacy_kernel.exceptions import InvalidQueryError, ProductNotFoundError
from pharmacy_kernel.models.product import Product
from pharmacy_kernel.selectors.base import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, BaseSelector
from pharmacy_kernel.services.audit_log_store import AuditLogStore
from pharmacy_kernel.services.base import coerce_id

PRODUCT_SORT_COLUMNS = MappingProxyType({
    "name": Product.name,
    "created_at": Product.created_at,
    "quantity": Product.quantity,
    "price": Product.price,
})

DEFAULT_RECENT_LOG_LIMIT = 10
DEFAULT_EXPIRING_WINDOW_DAYS = 30


class ProductDirectory(BaseSelector[Product]):
    """Product queries returning ProductDTO projections."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
        recent_log_limit: int = DEFAULT_RECENT_LOG_LIMIT,
        expiring_window_days: int = DEFAULT_EXPIRING_WINDOW_DAYS,
    ):
        super().__init__(session, clock, default_page_size, max_page_size)
        self.recent_log_limit = recent_log_limit
        self.expiring_window_days = expiring_window_days

    def _base_query(self):
        return select(Product).options(
            joinedload(Product.category),
            joinedload(Product.supplier),
        )

    def list_products(self, query: ProductQuery | None = None) -> Page[ProductDTO]:
        """
        One page of products matching the query.

        Search is a case-insensitive substring match on name, generic name
        and sku.  Ties on the sort column are broken by id so pages do not
        overlap.
        """
        query = query or ProductQuery()
        page, limit = self._resolve_paging(query.page, query.limit)
        order_by = self._resolve_order_by(PRODUCT_SORT_COLUMNS, query.sort_by, query.order)

        conditions = []
        if query.search:
            conditions.append(
                or_(
                    Product.name.icontains(query.search, autoescape=True),
                    Product.generic_name.icontains(query.search, autoescape=True),
                    Product.sku.icontains(query.search, autoescape=True),
                )
            )
        if query.category_id is not None:
            conditions.append(Product.category_id == query.category_id)
        if query.status is not None:
            try:
                status = ProductStatus(query.status)
            except ValueError:
                raise InvalidQueryError("status", query.status, "unknown product status") from None
            conditions.append(Product.status == status.value)
        if query.expiring_before is not None:
            conditions.append(Product.expiry_date <= query.expiring_before)

        total = self.session.execute(
            select(func.count()).select_from(Product).where(*conditions)
        ).scalar_one()

        stmt = (
            self._base_query()
            .where(*conditions)
            .order_by(order_by, Product.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        products = self.session.execute(stmt).scalars().all()

        return Page(
            items=tuple(ProductDTO.from_model(p) for p in products),
            total=total,
            page=page,
            limit=limit,
        )

    def get_product(
        self,
        product_id: UUID | str,
        log_limit: int | None = None,
    ) -> ProductDetailDTO:
        """
        A product with its most recent log entries, newest first.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
        """
        pid = coerce_id(product_id, ProductNotFoundError)
        product = self.session.execute(
            self._base_query().where(Product.id == pid)
        ).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(str(pid))

        movements = AuditLogStore(self.session, self.clock).list_by_product(
            pid,
            limit=log_limit if log_limit is not None else self.recent_log_limit,
        )
        return ProductDetailDTO(
            product=ProductDTO.from_model(product),
            recent_movements=tuple(movements),
        )

    def find_by_sku(self, sku: str) -> ProductDTO | None:
        product = self.session.execute(
            self._base_query().where(Product.sku == sku)
        ).scalar_one_or_none()
        return ProductDTO.from_model(product) if product else None

    def low_stock(self) -> list[ProductDTO]:
        """ACTIVE products at or below their reorder point, emptiest first."""
        stmt = (
            self._base_query()
            .where(
                Product.quantity <= Product.reorder_point,
                Product.status == ProductStatus.ACTIVE.value,
            )
            .order_by(Product.quantity.asc(), Product.name)
        )
        return [ProductDTO.from_model(p) for p in self.session.execute(stmt).scalars()]

    def expiring_soon(self, window_days: int | None = None) -> list[ProductDTO]:
        """ACTIVE products expiring within the window, soonest first."""
        days = window_days if window_days is not None else self.expiring_window_days
        now = self.clock.now()
        stmt = (
            self._base_query()
            .where(
                Product.status == ProductStatus.ACTIVE.value,
                Product.expiry_date.is_not(None),
                Product.expiry_date >= now,
                Product.expiry_date <= now + timedelta(days=days),
            )
            .order_by(Product.expiry_date.asc())
        )
        return [ProductDTO.from_model(p) for p in self.session.execute(stmt).scalars()]
