"""
Configuration Loader (``pharmacy_config.loader``).

Responsibility
--------------
Reads a YAML settings file, applies environment overrides and parses the
result into ``pharmacy_config.schema`` dataclasses.  Callers go through
``pharmacy_config.get_active_config()`` rather than using this directly.

Invariants enforced
-------------------
* Unknown sections and keys are rejected, so a typo never silently falls
  back to a default.
* ``compute_checksum`` is deterministic for the same effective settings.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown or missing keys  -> ``ValueError``.
"""

from __future__ import annotations

import copy
import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from pharmacy_config.schema import (
    DatabaseSettings,
    InventorySettings,
    LoggingSettings,
    PharmacySettings,
)

_SECTIONS = {
    "database": DatabaseSettings,
    "inventory": InventorySettings,
    "logging": LoggingSettings,
}

# Environment variable -> (section, key).  Earlier entries win.
ENV_OVERRIDES: tuple[tuple[str, str, str], ...] = (
    ("PHARMACY_DATABASE_URL", "database", "url"),
    ("DATABASE_URL", "database", "url"),
    ("PHARMACY_LOG_LEVEL", "logging", "level"),
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def apply_env_overrides(
    data: dict[str, Any], environ: Mapping[str, str]
) -> dict[str, Any]:
    """Return a copy of ``data`` with environment overrides applied."""
    result = copy.deepcopy(data)
    applied: set[tuple[str, str]] = set()
    for var, section, key in ENV_OVERRIDES:
        if (section, key) in applied:
            continue
        value = environ.get(var)
        if value:
            result.setdefault(section, {})[key] = value
            applied.add((section, key))
    return result


def _parse_section(name: str, raw: Any, cls: type) -> Any:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"{name}: section must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"{name}: unknown keys {', '.join(unknown)}")
    try:
        return cls(**raw)
    except TypeError as exc:
        raise ValueError(f"{name}: {exc}") from None


def parse_settings(data: dict[str, Any], source: str = "") -> PharmacySettings:
    """Parse a raw settings mapping into PharmacySettings."""
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"unknown configuration sections: {', '.join(unknown)}")
    if not (data.get("database") or {}).get("url"):
        raise ValueError("database.url is required")

    return PharmacySettings(
        database=_parse_section("database", data.get("database"), DatabaseSettings),
        inventory=_parse_section("inventory", data.get("inventory"), InventorySettings),
        logging=_parse_section("logging", data.get("logging"), LoggingSettings),
        source=source,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of the effective settings."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
