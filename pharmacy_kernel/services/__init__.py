"""Write side of the kernel: the coordinator plus flush-only services."""

from pharmacy_kernel.services.audit_log_store import AuditLogStore
from pharmacy_kernel.services.base import BaseService
from pharmacy_kernel.services.category_service import CategoryService
from pharmacy_kernel.services.inventory_coordinator import InventoryCoordinator
from pharmacy_kernel.services.supplier_service import SupplierService

__all__ = [
    "AuditLogStore",
    "BaseService",
    "CategoryService",
    "InventoryCoordinator",
    "SupplierService",
]
