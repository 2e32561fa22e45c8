"""
Module: pharmacy_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors, plus the
    paging and sorting rules shared by every listing.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/ except for read-only helpers.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but never
      add, delete, flush or commit.
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
    - Listing parameters are checked before any query runs.

Failure modes:
    - InvalidQueryError for page < 1, limit outside 1..max_page_size, an
      unknown sort field or an unknown order.
"""

from abc import ABC
from typing import Any, Generic, Mapping, TypeVar

from sqlalchemy.orm import Session

from pharmacy_kernel.db.base import Base
from pharmacy_kernel.domain.clock import Clock, SystemClock
from pharmacy_kernel.exceptions import InvalidQueryError

ModelType = TypeVar("ModelType", bound=Base)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs.  They MUST NOT mutate any data.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        """
        Args:
            session: SQLAlchemy session for database operations.
            clock: Time source for date windows.  Defaults to SystemClock.
            default_page_size: Limit used when a listing names none.
            max_page_size: Largest limit a listing accepts.
        """
        self.session = session
        self.clock = clock or SystemClock()
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def _resolve_paging(self, page: int, limit: int | None) -> tuple[int, int]:
        """Return (page, limit) after range checks."""
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise InvalidQueryError("page", page, "must be an integer >= 1")
        if limit is None:
            limit = self.default_page_size
        if (
            isinstance(limit, bool)
            or not isinstance(limit, int)
            or not 1 <= limit <= self.max_page_size
        ):
            raise InvalidQueryError(
                "limit", limit, f"must be an integer between 1 and {self.max_page_size}"
            )
        return page, limit

    @staticmethod
    def _resolve_order_by(
        sort_columns: Mapping[str, Any], sort_by: str, order: str
    ) -> Any:
        """Map a sort field name and direction onto an ORDER BY clause."""
        column = sort_columns.get(sort_by)
        if column is None:
            raise InvalidQueryError(
                "sort_by", sort_by, "must be one of " + ", ".join(sort_columns)
            )
        if order == "asc":
            return column.asc()
        if order == "desc":
            return column.desc()
        raise InvalidQueryError("order", order, "must be 'asc' or 'desc'")
