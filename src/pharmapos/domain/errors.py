"""Shared domain error messages and error types."""

from typing import Optional, Sequence


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""

    def __init__(
        self,
        message: str,
        missing_fields: Optional[Sequence[str]] = None,
        invalid_fields: Optional[Sequence[str]] = None,
    ):
        super().__init__(message)
        self.missing_fields = list(missing_fields or [])
        self.invalid_fields = list(invalid_fields or [])


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as an illegal status transition."""


class InsufficientStockError(ConflictError):
    """A decrement would take a product below zero while that is disallowed."""


class PersistenceError(DomainError):
    """The store failed inside a unit of work; everything was rolled back."""


class SegmentUpdateError(DomainError):
    """Segment recomputation failed. Logged, never raised out of a sale."""


def product_not_found(product_id: int) -> str:
    """Return message for missing product."""
    return f"Product {product_id} not found"


def customer_not_found(customer_id: int) -> str:
    """Return message for missing customer."""
    return f"Customer {customer_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def missing_sale_fields(fields: Sequence[str]) -> str:
    """Return message for a sale missing required fields."""
    return f"Missing required fields: {', '.join(fields)}"


def invalid_sale_fields(fields: Sequence[str]) -> str:
    """Return message for a sale with malformed fields."""
    return f"Invalid fields: {', '.join(fields)}"


def transaction_already_voided(transaction_id: int) -> str:
    """Return message when a refund targets a voided transaction."""
    return f"Transaction {transaction_id} has already been refunded"


def transaction_wrong_status(transaction_id: int, status: str, expected: str) -> str:
    """Return message for an illegal status transition."""
    return f"Transaction {transaction_id} is '{status}', expected '{expected}'"


def insufficient_stock(product_id: int, requested: int) -> str:
    """Return message when stock cannot cover a decrement."""
    return (
        f"Insufficient stock for product {product_id}: "
        f"cannot remove {requested} unit{'s' if requested != 1 else ''}"
    )


def invalid_segment(segment: str, valid: Sequence[str]) -> str:
    """Return message for an unknown segment name."""
    return f"Invalid segment '{segment}'. Segment must be one of: {', '.join(valid)}"


def store_failure(operation: str, error: Exception) -> str:
    """Return message wrapping a store failure."""
    return f"Database operation failed during {operation}: {error}"
