"""CatalogSelector tests: listings with product counts, details and stats."""

from decimal import Decimal
from uuid import uuid4

import pytest

from pharmacy_kernel.domain.values import ProductStatus
from pharmacy_kernel.exceptions import CategoryNotFoundError, InvalidQueryError, SupplierNotFoundError
from pharmacy_kernel.selectors.catalog_selector import CatalogSelector


@pytest.fixture
def catalog(database, clock):
    def _run(fn):
        with database.session_scope() as session:
            return fn(CatalogSelector(session, clock))

    return _run


class TestCategoryListing:
    def test_counts_products(self, category, create_category, create_product, catalog):
        empty = create_category("Empty")
        create_product()
        create_product()

        page = catalog(lambda c: c.list_categories(sort_by="name", order="asc"))

        counts = {c.name: c.product_count for c in page.items}
        assert counts == {category.name: 2, empty.name: 0}

    def test_search_name_or_description(self, create_category, catalog):
        create_category("Antibiotics", "Bacterial infections")
        create_category("Vitamins", "Daily supplements")

        by_desc = catalog(lambda c: c.list_categories(search="bacterial"))

        assert [c.name for c in by_desc.items] == ["Antibiotics"]
        assert by_desc.total == 1

    def test_unknown_sort_field(self, catalog):
        with pytest.raises(InvalidQueryError):
            catalog(lambda c: c.list_categories(sort_by="product_count"))

    def test_detail_lists_products(self, category, create_product, catalog):
        create_product(name="Zeta", quantity=0)
        create_product(name="Alpha", quantity=4)

        detail = catalog(lambda c: c.get_category_detail(category.id))

        assert detail.category.product_count == 2
        assert [(p.name, p.quantity, p.status) for p in detail.products] == [
            ("Alpha", 4, ProductStatus.ACTIVE),
            ("Zeta", 0, ProductStatus.OUT_OF_STOCK),
        ]

    def test_detail_unknown(self, catalog):
        with pytest.raises(CategoryNotFoundError):
            catalog(lambda c: c.get_category_detail(uuid4()))


class TestSupplierListing:
    def test_search_email_and_phone(self, create_supplier, catalog):
        create_supplier("Acme", email="hello@acme.example", phone="555-1000")
        create_supplier("Bolt", email="bolt@bolt.example", phone="555-2000")

        by_email = catalog(lambda c: c.list_suppliers(search="ACME.example"))
        by_phone = catalog(lambda c: c.list_suppliers(search="2000"))

        assert [s.name for s in by_email.items] == ["Acme"]
        assert [s.name for s in by_phone.items] == ["Bolt"]

    def test_paging(self, create_supplier, catalog):
        for name in ("A", "B", "C"):
            create_supplier(name)

        page = catalog(lambda c: c.list_suppliers(page=2, limit=2, sort_by="name", order="asc"))

        assert [s.name for s in page.items] == ["C"]
        assert page.total == 3
        assert page.total_pages == 2

    def test_detail_unknown(self, catalog):
        with pytest.raises(SupplierNotFoundError):
            catalog(lambda c: c.get_supplier_detail(uuid4()))


class TestSupplierStats:
    def test_aggregates(self, supplier, create_product, catalog):
        create_product(quantity=2, reorder_point=5, price=Decimal("10.00"), cost_price=Decimal("4.00"))
        create_product(quantity=20, reorder_point=5, price=Decimal("20.00"), cost_price=Decimal("8.00"))
        create_product(quantity=0, reorder_point=5, price=Decimal("30.00"), cost_price=Decimal("12.00"))

        stats = catalog(lambda c: c.supplier_stats(supplier.id))

        assert stats.total_products == 3
        assert stats.total_quantity == 22
        assert stats.average_price == Decimal("20.00")
        assert stats.average_cost_price == Decimal("8.00")
        assert stats.low_stock_products == 2
        assert stats.products_by_status == {
            ProductStatus.ACTIVE: 2,
            ProductStatus.OUT_OF_STOCK: 1,
        }

    def test_supplier_without_products(self, create_supplier, catalog):
        idle = create_supplier("Idle")

        stats = catalog(lambda c: c.supplier_stats(idle.id))

        assert stats.total_products == 0
        assert stats.total_quantity == 0
        assert stats.average_price == Decimal("0.00")
        assert stats.products_by_status == {}
