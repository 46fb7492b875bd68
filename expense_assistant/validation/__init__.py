"""Validation package."""

from expense_assistant.validation.validator import (
    DEFAULT_RECEIPT_THRESHOLD,
    RECEIPT_FIELD,
    ExpenseValidator,
    validate_expense,
)

__all__ = [
    "DEFAULT_RECEIPT_THRESHOLD",
    "RECEIPT_FIELD",
    "ExpenseValidator",
    "validate_expense",
]
