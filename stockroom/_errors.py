"""
Error taxonomy.

Store and transaction code raises these; the executor and the action
boundary turn them into Result values. `is_transient` is the one place
that decides whether an error is worth another attempt.
"""

from __future__ import annotations


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class StockroomError(Exception):
    """Base class for every error raised by stockroom."""

    transient: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ═══════════════════════════════════════════════════════════════════════════════
# Transient — safe to retry
# ═══════════════════════════════════════════════════════════════════════════════


class TransientStoreError(StockroomError):
    """Store unavailable, timed out or interrupted."""

    transient = True

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class TransactionConflict(TransientStoreError):
    """A document in the read-set changed before commit."""

    def __init__(self, path: str) -> None:
        super().__init__(f"transaction conflict on {path}")
        self.path = path


# ═══════════════════════════════════════════════════════════════════════════════
# Permanent
# ═══════════════════════════════════════════════════════════════════════════════


class NotFound(StockroomError):
    def __init__(self, collection: str, document_id: str) -> None:
        super().__init__(f"{collection}/{document_id} does not exist")
        self.collection = collection
        self.document_id = document_id


class InsufficientStock(StockroomError):
    def __init__(self, product_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"insufficient stock for {product_id}: "
            f"requested {requested}, available {available}"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidDocument(StockroomError):
    """Input or stored data that does not form a valid record."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


class ConfigurationError(StockroomError):
    """Startup cannot proceed: missing store config, failed sign-in."""


# ═══════════════════════════════════════════════════════════════════════════════
# Classification
# ═══════════════════════════════════════════════════════════════════════════════


def is_transient(error: BaseException) -> bool:
    """True if retrying the operation may succeed."""
    if isinstance(error, StockroomError):
        return error.transient
    return isinstance(error, (ConnectionError, TimeoutError))


__all__ = (
    "StockroomError",
    "TransientStoreError",
    "TransactionConflict",
    "NotFound",
    "InsufficientStock",
    "InvalidDocument",
    "ConfigurationError",
    "is_transient",
)
