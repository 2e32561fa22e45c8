"""
Pharmacy settings schema.

Typed, frozen view of the YAML configuration.  The loader parses raw YAML
into these types; the validator checks them; bridges turn them into kernel
objects.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection and pool parameters for ``Database.from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class InventorySettings:
    """Business defaults for the coordinator and the product directory."""

    expiring_window_days: int = 30
    recent_log_limit: int = 10
    default_page_size: int = 10
    max_page_size: int = 100
    default_reorder_point: int = 10
    initial_stock_reason: str = "Initial stock"


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PharmacySettings:
    """The complete runtime configuration."""

    database: DatabaseSettings
    inventory: InventorySettings
    logging: LoggingSettings
    source: str = ""
    checksum: str = ""
