"""
Service layer for product categories.

Categories group products for browsing and reporting.  A category cannot be
removed while any product still points at it.
"""

from uuid import UUID

from sqlalchemy import func, select

from pharmacy_kernel.domain.dtos import CategoryDTO
from pharmacy_kernel.exceptions import (
    CategoryNotFoundError,
    DuplicateRecordError,
    RecordInUseError,
    ValidationError,
)
from pharmacy_kernel.logging_config import get_logger
from pharmacy_kernel.models.catalog import Category
from pharmacy_kernel.models.product import Product
from pharmacy_kernel.services.base import BaseService, coerce_id

logger = get_logger("services.category")

_UNSET = object()


def _require_name(name: object) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Category name is required")
    return name


class CategoryService(BaseService[Category]):
    """
    Create, rename and remove categories.

    All public methods return CategoryDTO, never the ORM entity.
    """

    def _get_by_id(self, category_id: UUID | str) -> Category:
        category = self.session.get(Category, coerce_id(category_id, CategoryNotFoundError))
        if category is None:
            raise CategoryNotFoundError(str(category_id))
        return category

    def _ensure_name_free(self, name: str, exclude_id: UUID | None = None) -> None:
        stmt = select(Category.id).where(Category.name == name)
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        if self.session.execute(stmt.limit(1)).first() is not None:
            raise DuplicateRecordError("Category", "name", name)

    def get_category(self, category_id: UUID | str) -> CategoryDTO:
        """
        Raises:
            CategoryNotFoundError: If the category doesn't exist.
        """
        return CategoryDTO.from_model(self._get_by_id(category_id))

    def create_category(self, name: str, description: str | None = None) -> CategoryDTO:
        """
        Create a new category.

        Raises:
            ValidationError: Empty name.
            DuplicateRecordError: Name already taken.
        """
        _require_name(name)
        self._ensure_name_free(name)

        now = self.clock.now()
        category = Category(
            name=name,
            description=description,
            created_at=now,
            updated_at=now,
        )
        self.session.add(category)
        self.session.flush()

        logger.info(
            "category_created",
            extra={"category_id": str(category.id), "category_name": name},
        )
        return CategoryDTO.from_model(category)

    def update_category(
        self,
        category_id: UUID | str,
        name: str | None = None,
        description: str | None | object = _UNSET,
    ) -> CategoryDTO:
        """
        Rename a category or change its description.

        Passing ``description=None`` clears it; omitting it leaves it as is.
        """
        category = self._get_by_id(category_id)

        if name is not None and name != category.name:
            _require_name(name)
            self._ensure_name_free(name, exclude_id=category.id)
            category.name = name
        if description is not _UNSET:
            category.description = description

        category.updated_at = self.clock.now()
        self.session.flush()

        logger.info("category_updated", extra={"category_id": str(category.id)})
        return CategoryDTO.from_model(category)

    def delete_category(self, category_id: UUID | str) -> None:
        """
        Remove a category that no product references.

        Raises:
            CategoryNotFoundError: If the category doesn't exist.
            RecordInUseError: Products still belong to it.
        """
        category = self._get_by_id(category_id)

        product_count = self.session.execute(
            select(func.count()).select_from(Product).where(Product.category_id == category.id)
        ).scalar_one()
        if product_count:
            raise RecordInUseError("Category", str(category.id), product_count)

        self.session.delete(category)
        self.session.flush()

        logger.info("category_deleted", extra={"category_id": str(category.id)})
