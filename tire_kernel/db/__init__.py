"""Database layer - engine, base classes, and append-only enforcement."""

from tire_kernel.db.base import UUID, Base, TimestampedBase, UUIDString
from tire_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
    standalone_read,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "standalone_read",
    "create_tables",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UUID",
]
