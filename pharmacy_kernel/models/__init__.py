"""ORM models for the pharmacy kernel."""

from pharmacy_kernel.models.catalog import Category, Supplier
from pharmacy_kernel.models.inventory_log import InventoryLogEntry
from pharmacy_kernel.models.product import Product

__all__ = [
    "Category",
    "Supplier",
    "Product",
    "InventoryLogEntry",
]
