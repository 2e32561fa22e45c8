"""Read side of the kernel: product directory and catalog listings."""

from pharmacy_kernel.selectors.base import BaseSelector
from pharmacy_kernel.selectors.catalog_selector import CatalogSelector
from pharmacy_kernel.selectors.product_directory import ProductDirectory

__all__ = [
    "BaseSelector",
    "CatalogSelector",
    "ProductDirectory",
]
