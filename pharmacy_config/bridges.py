"""
Config -> Kernel Bridges.

Functions that turn PharmacySettings into kernel objects.  They live here
because the kernel must NEVER import pharmacy_config.

Usage:
    from pharmacy_config import get_active_config
    from pharmacy_config.bridges import build_coordinator, build_database

    settings = get_active_config()
    configure_logging_from(settings)
    database = build_database(settings)
    coordinator = build_coordinator(settings, database)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from pharmacy_config.schema import PharmacySettings
from pharmacy_kernel.db.engine import Database
from pharmacy_kernel.domain.clock import Clock
from pharmacy_kernel.logging_config import configure_logging
from pharmacy_kernel.selectors.catalog_selector import CatalogSelector
from pharmacy_kernel.selectors.product_directory import ProductDirectory
from pharmacy_kernel.services.inventory_coordinator import InventoryCoordinator


def configure_logging_from(settings: PharmacySettings) -> None:
    """Install the JSON log handler at the configured level."""
    configure_logging(level=settings.logging.level.upper())


def build_database(settings: PharmacySettings) -> Database:
    db = settings.database
    return Database.from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )


def build_coordinator(
    settings: PharmacySettings,
    database: Database,
    clock: Clock | None = None,
) -> InventoryCoordinator:
    return InventoryCoordinator(
        database,
        clock=clock,
        initial_stock_reason=settings.inventory.initial_stock_reason,
        default_reorder_point=settings.inventory.default_reorder_point,
    )


def build_product_directory(
    settings: PharmacySettings,
    session: Session,
    clock: Clock | None = None,
) -> ProductDirectory:
    inv = settings.inventory
    return ProductDirectory(
        session,
        clock=clock,
        default_page_size=inv.default_page_size,
        max_page_size=inv.max_page_size,
        recent_log_limit=inv.recent_log_limit,
        expiring_window_days=inv.expiring_window_days,
    )


def build_catalog_selector(
    settings: PharmacySettings,
    session: Session,
    clock: Clock | None = None,
) -> CatalogSelector:
    inv = settings.inventory
    return CatalogSelector(
        session,
        clock=clock,
        default_page_size=inv.default_page_size,
        max_page_size=inv.max_page_size,
    )
