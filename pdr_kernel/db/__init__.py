"""Database layer - engine, base classes and column types."""

from pdr_kernel.db.base import Base, TrackedBase, UTCDateTime, UUIDString
from pdr_kernel.db.engine import (
    create_tables,
    database_url_from_env,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUIDString",
    "create_tables",
    "database_url_from_env",
    "drop_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
