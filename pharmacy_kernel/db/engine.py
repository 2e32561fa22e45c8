"""
Module: pharmacy_kernel.db.engine
Responsibility: SQLAlchemy engine construction, session factory ownership, and
    the transactional unit-of-work scope.  A ``Database`` object is the single
    storage handle; it is built once by the application and passed explicitly
    to every component that needs storage.
Architecture position: Kernel > DB.  May import from db/base.py,
    db/immutability.py and models/ (for create_tables only).

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED; stock movements take an explicit row
      lock (SELECT ... FOR UPDATE) on the product they change.
    - session_scope() commits only if the whole block succeeds; any exception
      rolls back everything done inside it.
    - Transaction conflicts (lock timeouts, serialization failures, deadlocks,
      optimistic version mismatches, constraint races) leave the scope as
      ConflictError.  They are never retried here.

Failure modes:
    - ConflictError as described above.
    - Any other exception raised inside the scope propagates unchanged after
      rollback.

Backends:
    PostgreSQL (psycopg2) is the production backend.  File-based SQLite is
    accepted for local runs and tests; SQLite ignores FOR UPDATE, so
    concurrent movements there are protected by the product version check
    alone.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import QueuePool

from pharmacy_kernel.db.immutability import register_immutability_listeners
from pharmacy_kernel.exceptions import ConflictError
from pharmacy_kernel.logging_config import get_logger

logger = get_logger("db.engine")

# serialization_failure, deadlock_detected, lock_not_available
_PG_CONFLICT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})

_SQLITE_CONFLICT_MESSAGES = ("database is locked", "database table is locked")


def translate_conflict(exc: BaseException) -> ConflictError | None:
    """
    Classify a storage exception as a transaction conflict.

    Returns a ConflictError for lock, serialization, deadlock, version and
    constraint-race failures, or None when the exception is something else
    and must propagate as-is.
    """
    if isinstance(exc, ConflictError):
        return None
    if isinstance(exc, StaleDataError):
        return ConflictError("row was modified by a concurrent transaction")
    if isinstance(exc, IntegrityError):
        return ConflictError(f"integrity constraint violated: {exc.orig}")
    if isinstance(exc, DBAPIError):
        pgcode = getattr(exc.orig, "pgcode", None)
        if pgcode in _PG_CONFLICT_SQLSTATES:
            return ConflictError(f"transaction aborted by database (SQLSTATE {pgcode})")
        message = str(exc.orig).lower()
        if any(m in message for m in _SQLITE_CONFLICT_MESSAGES):
            return ConflictError(message)
    return None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Injected storage handle: one engine plus its session factory.

    Contract:
        Components receive a Database (or a Session opened from it) through
        their constructor.  There is no module-level engine.

    Guarantees:
        - Sessions are created with expire_on_commit=False, so DTOs built
          inside a scope stay readable after it closes.
        - Immutability listeners for the inventory log are registered.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._session_factory: sessionmaker[Session] = sessionmaker(
            bind=engine, expire_on_commit=False
        )
        register_immutability_listeners()

    @classmethod
    def from_url(
        cls,
        database_url: str,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
    ) -> "Database":
        """
        Build a Database from a connection URL.

        Args:
            database_url: postgresql://... for production, sqlite:///path for
                local runs.
            echo: If True, log all SQL statements.
            pool_size: Number of connections to keep in the pool (PostgreSQL).
            max_overflow: Max connections beyond pool_size (PostgreSQL).
            pool_pre_ping: Test connections before use (PostgreSQL).
            pool_timeout: Seconds to wait for a pooled connection (PostgreSQL).
            pool_recycle: Seconds after which a connection is recycled (PostgreSQL).
        """
        url = make_url(database_url)
        dialect = url.get_backend_name()

        if dialect == "postgresql":
            engine = create_engine(
                url,
                echo=echo,
                poolclass=QueuePool,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=pool_pre_ping,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                isolation_level="READ COMMITTED",
            )
        else:
            engine = create_engine(url, echo=echo)
            if dialect == "sqlite":
                event.listen(engine, "connect", _enable_sqlite_foreign_keys)

        logger.info(
            "engine_initialized",
            extra={
                "dialect": dialect,
                "pool_size": pool_size if dialect == "postgresql" else None,
                "echo": echo,
            },
        )
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    def is_postgres(self) -> bool:
        return self.dialect_name == "postgresql"

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Postconditions: On normal exit the session is committed and closed.
            On exception it is rolled back and closed, and the exception is
            re-raised (as ConflictError when translate_conflict classifies it).

        Usage:
            with database.session_scope() as session:
                session.add(entity)
                # Commits on successful exit, rolls back on exception
        """
        session = self._session_factory()
        logger.debug("transaction_started")
        try:
            yield session
            session.commit()
            logger.debug("transaction_committed")
        except Exception as exc:
            session.rollback()
            conflict = translate_conflict(exc)
            if conflict is not None:
                logger.warning(
                    "transaction_conflict",
                    extra={"reason": conflict.reason, "cause": type(exc).__name__},
                )
                raise conflict from exc
            logger.warning("transaction_rolled_back", exc_info=True)
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """Create all tables defined by the kernel models."""
        from pharmacy_kernel.db.base import Base
        import pharmacy_kernel.models  # noqa: F401

        Base.metadata.create_all(self._engine)
        logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})

    def drop_tables(self) -> None:
        """Drop all tables. Use with caution - primarily for testing."""
        from pharmacy_kernel.db.base import Base
        import pharmacy_kernel.models  # noqa: F401

        Base.metadata.drop_all(self._engine)
        logger.info("tables_dropped")

    def dispose(self) -> None:
        """Release all pooled connections."""
        self._engine.dispose()
