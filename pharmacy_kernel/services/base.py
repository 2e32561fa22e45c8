"""
BaseService -- abstract base for kernel services that write.

Responsibility:
    Provides the common constructor and session-handling contract for the
    catalog services and the audit log store.  Each receives a SQLAlchemy
    ``Session`` and an injected ``Clock``, and persists through
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's unit of
      work and never commit or roll back.  Database.session_scope() (used
      by InventoryCoordinator or by the caller directly) owns commit and
      rollback.

Failure modes:
    - A subclass that commits on its own breaks the both-or-neither
      guarantee between the product row and its log entry.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from pharmacy_kernel.db.base import Base
from pharmacy_kernel.domain.clock import Clock, SystemClock
from pharmacy_kernel.exceptions import NotFoundError

ModelType = TypeVar("ModelType", bound=Base)


def coerce_id(value: UUID | str, not_found: type[NotFoundError]) -> UUID:
    """
    Accept a UUID or its string form.

    A string that is not a UUID cannot name an existing record, so it is
    reported with the caller's not-found error.
    """
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise not_found(str(value)) from None


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for write-side kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide listing queries -- those belong in
          ``pharmacy_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        """
        Args:
            session: SQLAlchemy session for database operations.
            clock: Time source for timestamps.  Defaults to SystemClock.
        """
        self.session = session
        self.clock = clock or SystemClock()
