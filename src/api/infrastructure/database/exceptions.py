"""Storage exceptions shared by all bounded contexts.

Repositories raise these instead of driver-specific errors so the
application layer can tell "denied" apart from "degraded".
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class StorageUnavailableError(DatabaseError):
    """Raised when the relational store cannot be reached or fails a statement."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class StorageTimeoutError(StorageUnavailableError):
    """Raised when a store call exceeds its time bound."""

    pass


class TransactionError(DatabaseError):
    """Raised when transaction operations fail."""

    pass


@contextmanager
def translate_storage_errors(operation: str) -> Iterator[None]:
    """Re-raise connectivity and timeout failures as storage exceptions.

    Integrity errors and other programming errors pass through unchanged.

    Args:
        operation: Short name of the repository call, kept on the exception
    """
    try:
        yield
    except (PoolTimeoutError, TimeoutError) as e:
        raise StorageTimeoutError(
            f"Storage call '{operation}' timed out", operation=operation
        ) from e
    except (OperationalError, InterfaceError) as e:
        if "timeout" in str(e).lower() or "canceling statement" in str(e).lower():
            raise StorageTimeoutError(
                f"Storage call '{operation}' timed out", operation=operation
            ) from e
        raise StorageUnavailableError(
            f"Storage call '{operation}' failed: {e.__class__.__name__}",
            operation=operation,
        ) from e
    except DBAPIError as e:
        if e.connection_invalidated:
            raise StorageUnavailableError(
                f"Storage connection lost during '{operation}'",
                operation=operation,
            ) from e
        raise
    except OSError as e:
        raise StorageUnavailableError(
            f"Storage unreachable during '{operation}'", operation=operation
        ) from e
