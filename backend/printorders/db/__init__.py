"""Database package with session management and row-level helpers."""

from printorders.db.row_lock import RowLock, RowLockedError, RowLocker, RowNotFoundError
from printorders.db.session import Database
from printorders.db.verified_write import WriteNotVerified, verify_write

__all__ = [
    "Database",
    "RowLock",
    "RowLocker",
    "RowLockedError",
    "RowNotFoundError",
    "WriteNotVerified",
    "verify_write",
]
