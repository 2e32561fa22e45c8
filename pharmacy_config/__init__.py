"""
pharmacy_config -- single public entrypoint for runtime settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_config()``.  Reads a YAML file (the packaged
    ``sets/default.yaml`` unless told otherwise), applies environment
    overrides, validates, and returns a frozen ``PharmacySettings``.

Architecture position:
    Configuration -- sits above ``pharmacy_kernel``.  The kernel MUST NEVER
    import from ``pharmacy_config``; ``pharmacy_config.bridges`` translates
    settings into kernel objects.

Failure modes:
    - ``FileNotFoundError`` -- the named settings file does not exist.
    - ``ValueError`` -- unknown keys or failed validation; the message lists
      every problem found.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from pharmacy_config.loader import apply_env_overrides, load_yaml_file, parse_settings
from pharmacy_config.schema import (
    DatabaseSettings,
    InventorySettings,
    LoggingSettings,
    PharmacySettings,
)
from pharmacy_config.validator import validate_settings

_logger = logging.getLogger("pharmacy_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseSettings",
    "InventorySettings",
    "LoggingSettings",
    "PharmacySettings",
    "get_active_config",
]


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> PharmacySettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML settings file.  Defaults to the packaged
            sets/default.yaml.
        environ: Environment mapping for overrides.  Defaults to os.environ.

    Returns:
        Validated, frozen PharmacySettings.

    Raises:
        FileNotFoundError: If config_path does not exist.
        ValueError: If parsing or validation fails.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    env = os.environ if environ is None else environ

    raw = apply_env_overrides(load_yaml_file(path), env)
    settings = parse_settings(raw, source=str(path))

    validation = validate_settings(settings)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )

    _logger.info(
        "PHARMACY_CONFIG_TRACE",
        extra={
            "trace_type": "PHARMACY_CONFIG_TRACE",
            "source": settings.source,
            "checksum": settings.checksum,
            "dialect": settings.database.url.split(":", 1)[0],
            "log_level": settings.logging.level,
        },
    )
    return settings
