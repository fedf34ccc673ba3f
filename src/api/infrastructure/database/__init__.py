"""Database infrastructure - shared engine, session and error primitives."""

from infrastructure.database.exceptions import (
    DatabaseError,
    StorageTimeoutError,
    StorageUnavailableError,
    TransactionError,
    translate_storage_errors,
)

__all__ = [
    "DatabaseError",
    "StorageTimeoutError",
    "StorageUnavailableError",
    "TransactionError",
    "translate_storage_errors",
]
