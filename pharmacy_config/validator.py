"""
Settings Validator (``pharmacy_config.validator``).

Checks types and ranges of parsed settings.  Every problem is collected so a
single run reports all of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pharmacy_config.schema import PharmacySettings

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


@dataclass
class ConfigValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_int(result: ConfigValidationResult, name: str, value: object, minimum: int) -> None:
    if not _is_int(value):
        result.add_error(f"{name} must be an integer, got {value!r}")
    elif value < minimum:
        result.add_error(f"{name} must be >= {minimum}, got {value}")


def validate_settings(settings: PharmacySettings) -> ConfigValidationResult:
    result = ConfigValidationResult()

    db = settings.database
    if not isinstance(db.url, str) or "://" not in db.url:
        result.add_error(f"database.url must be a connection URL, got {db.url!r}")
    if not isinstance(db.echo, bool):
        result.add_error(f"database.echo must be a boolean, got {db.echo!r}")
    _require_int(result, "database.pool_size", db.pool_size, 1)
    _require_int(result, "database.max_overflow", db.max_overflow, 0)
    _require_int(result, "database.pool_timeout", db.pool_timeout, 1)
    _require_int(result, "database.pool_recycle", db.pool_recycle, -1)

    inv = settings.inventory
    _require_int(result, "inventory.expiring_window_days", inv.expiring_window_days, 0)
    _require_int(result, "inventory.recent_log_limit", inv.recent_log_limit, 1)
    _require_int(result, "inventory.default_page_size", inv.default_page_size, 1)
    _require_int(result, "inventory.max_page_size", inv.max_page_size, 1)
    _require_int(result, "inventory.default_reorder_point", inv.default_reorder_point, 0)
    if (
        _is_int(inv.default_page_size)
        and _is_int(inv.max_page_size)
        and inv.default_page_size > inv.max_page_size
    ):
        result.add_error("inventory.default_page_size must not exceed inventory.max_page_size")
    if not isinstance(inv.initial_stock_reason, str) or not inv.initial_stock_reason.strip():
        result.add_error("inventory.initial_stock_reason must be a non-empty string")

    level = settings.logging.level
    if not isinstance(level, str) or level.upper() not in _LOG_LEVELS:
        result.add_error(f"logging.level must be a standard level name, got {level!r}")

    return result
