"""Error taxonomy shared by the portal services."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    PERSISTENCE_FAILED = "persistence_failed"


class PortalError(Exception):
    """Base class for request-scoped service failures.

    ``message`` is safe to show to the end user; ``kind`` drives how the
    HTTP layer reports the failure.
    """

    kind: ErrorKind = ErrorKind.PERSISTENCE_FAILED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(PortalError):  # Session, position, topic, question or candidate missing
    kind = ErrorKind.NOT_FOUND


class ValidationFailedError(PortalError):  # Incomplete submission or invalid input
    kind = ErrorKind.VALIDATION_FAILED


class PersistenceFailedError(PortalError):  # Store read/write failure
    kind = ErrorKind.PERSISTENCE_FAILED


@contextmanager
def persistence_errors(message: str) -> Iterator[None]:
    """Re-raise a ``sqlite3.Error`` from the block as ``PersistenceFailedError(message)``."""

    try:
        yield
    except sqlite3.Error as exc:
        logger.exception(message)
        raise PersistenceFailedError(message) from exc


__all__ = [
    "ErrorKind",
    "PortalError",
    "NotFoundError",
    "ValidationFailedError",
    "PersistenceFailedError",
    "persistence_errors",
]
