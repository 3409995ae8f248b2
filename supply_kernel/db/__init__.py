"""Database layer: declarative base, column types, engine and session management."""

from supply_kernel.db.base import Base, TrackedBase, UTCDateTime, UUIDString
from supply_kernel.db.engine import (
    build_engine,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUIDString",
    "build_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
