"""Database layer - storage handle, base classes, and log immutability."""

from pharmacy_kernel.db.base import UUID, Base, TrackedBase, UTCDateTime, UUIDString
from pharmacy_kernel.db.engine import Database, translate_conflict

__all__ = [
    "Database",
    "translate_conflict",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
]
