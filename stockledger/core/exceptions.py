"""
Domain exceptions for the stock ledger.

Provides specific exception types for different error scenarios.
"""

from typing import Any


class LedgerError(Exception):
    """Base exception for all stock ledger errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Lookup Exceptions
class NotFoundError(LedgerError):
    """Base exception for missing records."""

    pass


class InventoryItemNotFoundError(NotFoundError):
    """Inventory item not found."""

    def __init__(self, inventory_id: int | str):
        super().__init__(
            f"Inventory item not found: {inventory_id}",
            code="INVENTORY_ITEM_NOT_FOUND",
            details={"inventory_id": inventory_id},
        )


class MovementNotFoundError(NotFoundError):
    """Stock movement not found."""

    def __init__(self, movement_id: int):
        super().__init__(
            f"Stock movement not found: {movement_id}",
            code="MOVEMENT_NOT_FOUND",
            details={"movement_id": movement_id},
        )


# Business rejections
class MovementRejectedError(LedgerError):
    """Base exception for movements the ledger refuses to record."""

    pass


class InvalidQuantityError(MovementRejectedError):
    """Quantity is zero, negative, or not a finite number."""

    def __init__(self, quantity: Any, movement_type: str | None = None):
        super().__init__(
            f"Invalid quantity: {quantity}",
            code="INVALID_QUANTITY",
            details={"quantity": quantity, "movement_type": movement_type},
        )


class InsufficientStockError(MovementRejectedError):
    """A decreasing movement would take the balance below zero."""

    def __init__(
        self,
        inventory_id: int,
        requested: float,
        available: float,
    ):
        shortfall = requested - available
        super().__init__(
            f"Insufficient stock for item {inventory_id}: "
            f"requested {requested}, available {available}",
            code="INSUFFICIENT_STOCK",
            details={
                "inventory_id": inventory_id,
                "requested": requested,
                "available": available,
                "shortfall": shortfall,
            },
        )
        self.shortfall = shortfall


class BatchValidationFailedError(MovementRejectedError):
    """At least one movement of a batch was rejected; nothing was recorded."""

    def __init__(
        self,
        failing_index: int,
        reason: str,
        failures: list[dict[str, Any]] | None = None,
    ):
        super().__init__(
            f"Batch rejected at movement #{failing_index}: {reason}",
            code="BATCH_VALIDATION_FAILED",
            details={
                "failing_index": failing_index,
                "reason": reason,
                "failures": failures or [],
            },
        )
        self.failing_index = failing_index
        self.reason = reason


# Approval Exceptions
class AlreadyApprovedError(LedgerError):
    """Movement already carries a sign-off."""

    def __init__(self, movement_id: int, approved_by: str | None = None):
        super().__init__(
            f"Stock movement {movement_id} is already approved",
            code="ALREADY_APPROVED",
            details={"movement_id": movement_id, "approved_by": approved_by},
        )


# Concurrency
class ConcurrencyConflictError(LedgerError):
    """
    Internal signal: the balance changed under a writer.

    Retried by the ledger and never surfaced to callers.
    """

    def __init__(self, inventory_id: int | None, reason: str = "version mismatch"):
        super().__init__(
            f"Concurrent update on inventory item {inventory_id}: {reason}",
            code="CONCURRENCY_CONFLICT",
            details={"inventory_id": inventory_id, "reason": reason},
        )


# Storage Exceptions
class StorageError(LedgerError):
    """Base exception for storage operations."""

    pass


class DuplicateItemCodeError(StorageError):
    """Another inventory item already uses this code."""

    def __init__(self, item_code: str):
        super().__init__(
            f"Item code already in use: {item_code}",
            code="DUPLICATE_ITEM_CODE",
            details={"item_code": item_code},
        )


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


class LedgerUnavailableError(StorageError):
    """The ledger could not complete a write; nothing was applied."""

    def __init__(self, operation: str, reason: str | None = None):
        super().__init__(
            f"Ledger unavailable during {operation}" + (f" - {reason}" if reason else ""),
            code="LEDGER_UNAVAILABLE",
            details={"operation": operation, "reason": reason},
        )


# Validation Exceptions
class ValidationError(LedgerError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class ConfigurationError(LedgerError):
    """Configuration error."""

    pass
