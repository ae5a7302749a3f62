"""Database layer - engine, base classes, constraint toggles and immutability."""

from asset_kernel.db.base import Base, IdType, TrackedBase
from asset_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "IdType",
]
