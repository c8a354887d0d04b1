"""Input validation package."""

from finance_tracker.validation.validator import (
    TransactionValidator,
    ValidationError,
    parse_amount,
)

__all__ = ["TransactionValidator", "ValidationError", "parse_amount"]
