"""Storage layer for persistent data."""

from zkmerkle.storage.database import (
    DatabaseManager,
    TreeSnapshot,
    Base,
    get_db_manager,
    reset_db_manager,
)

__all__ = [
    "DatabaseManager",
    "TreeSnapshot",
    "Base",
    "get_db_manager",
    "reset_db_manager",
]
