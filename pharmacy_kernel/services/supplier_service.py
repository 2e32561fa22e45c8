"""
Service layer for suppliers.

Suppliers are the vendors products are bought from.  Email, when given, is
unique and must look like an address.  A supplier cannot be removed while
any product still points at it.
"""

import re
from uuid import UUID

from sqlalchemy import func, select

from pharmacy_kernel.domain.dtos import SupplierDTO
from pharmacy_kernel.exceptions import (
    DuplicateRecordError,
    RecordInUseError,
    SupplierNotFoundError,
    ValidationError,
)
from pharmacy_kernel.logging_config import get_logger
from pharmacy_kernel.models.catalog import Supplier
from pharmacy_kernel.models.product import Product
from pharmacy_kernel.services.base import BaseService, coerce_id

logger = get_logger("services.supplier")

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_UNSET = object()


class SupplierService(BaseService[Supplier]):
    """
    Create, edit and remove suppliers.

    All public methods return SupplierDTO, never the ORM entity.
    """

    def _get_by_id(self, supplier_id: UUID | str) -> Supplier:
        supplier = self.session.get(Supplier, coerce_id(supplier_id, SupplierNotFoundError))
        if supplier is None:
            raise SupplierNotFoundError(str(supplier_id))
        return supplier

    def _validate(self, name: object, email: str | None) -> None:
        errors = []
        if not isinstance(name, str) or not name.strip():
            errors.append("Supplier name is required")
        if email is not None and not _EMAIL_PATTERN.match(email):
            errors.append("Invalid email format")
        if errors:
            raise ValidationError("; ".join(errors))

    def _ensure_email_free(self, email: str | None, exclude_id: UUID | None = None) -> None:
        if email is None:
            return
        stmt = select(Supplier.id).where(Supplier.email == email)
        if exclude_id is not None:
            stmt = stmt.where(Supplier.id != exclude_id)
        if self.session.execute(stmt.limit(1)).first() is not None:
            raise DuplicateRecordError("Supplier", "email", email)

    def get_supplier(self, supplier_id: UUID | str) -> SupplierDTO:
        """
        Raises:
            SupplierNotFoundError: If the supplier doesn't exist.
        """
        return SupplierDTO.from_model(self._get_by_id(supplier_id))

    def create_supplier(
        self,
        name: str,
        email: str | None = None,
        phone: str | None = None,
        address: str | None = None,
    ) -> SupplierDTO:
        """
        Create a new supplier.

        Raises:
            ValidationError: Empty name or malformed email.
            DuplicateRecordError: Email already used by another supplier.
        """
        self._validate(name, email)
        self._ensure_email_free(email)

        now = self.clock.now()
        supplier = Supplier(
            name=name,
            email=email,
            phone=phone,
            address=address,
            created_at=now,
            updated_at=now,
        )
        self.session.add(supplier)
        self.session.flush()

        logger.info(
            "supplier_created",
            extra={"supplier_id": str(supplier.id), "supplier_name": name},
        )
        return SupplierDTO.from_model(supplier)

    def update_supplier(
        self,
        supplier_id: UUID | str,
        name: str | None = None,
        email: str | None | object = _UNSET,
        phone: str | None | object = _UNSET,
        address: str | None | object = _UNSET,
    ) -> SupplierDTO:
        """
        Partial update.  Optional contact fields left out are unchanged;
        passing None clears them.
        """
        supplier = self._get_by_id(supplier_id)

        new_email = supplier.email if email is _UNSET else email
        self._validate(name if name is not None else supplier.name, new_email)
        if new_email != supplier.email:
            self._ensure_email_free(new_email, exclude_id=supplier.id)

        if name is not None:
            supplier.name = name
        supplier.email = new_email
        if phone is not _UNSET:
            supplier.phone = phone
        if address is not _UNSET:
            supplier.address = address

        supplier.updated_at = self.clock.now()
        self.session.flush()

        logger.info("supplier_updated", extra={"supplier_id": str(supplier.id)})
        return SupplierDTO.from_model(supplier)

    def delete_supplier(self, supplier_id: UUID | str) -> None:
        """
        Remove a supplier that no product references.

        Raises:
            SupplierNotFoundError: If the supplier doesn't exist.
            RecordInUseError: Products are still bought from it.
        """
        supplier = self._get_by_id(supplier_id)

        product_count = self.session.execute(
            select(func.count()).select_from(Product).where(Product.supplier_id == supplier.id)
        ).scalar_one()
        if product_count:
            raise RecordInUseError("Supplier", str(supplier.id), product_count)

        self.session.delete(supplier)
        self.session.flush()

        logger.info("supplier_deleted", extra={"supplier_id": str(supplier.id)})
