"""
Data Models Package

This package contains all Pydantic models used by the Expense Assistant.
All data flowing through the form must conform to these schemas.
"""

from expense_assistant.models.expense import (
    CURRENCIES,
    EDITABLE_FIELDS,
    EXPENSE_CATEGORIES,
    PROTECTED_FIELDS,
    AttachmentState,
    ExpenseCategory,
    ExpenseRecord,
    HighlightSet,
    ParsedSuggestion,
    SubmissionState,
    SubmissionStatus,
    ValidationIssue,
    ValidationResult,
    format_amount,
)
from expense_assistant.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "CURRENCIES",
    "EDITABLE_FIELDS",
    "EXPENSE_CATEGORIES",
    "PROTECTED_FIELDS",
    "AttachmentState",
    "ExpenseCategory",
    "ExpenseRecord",
    "HighlightSet",
    "ParsedSuggestion",
    "SubmissionState",
    "SubmissionStatus",
    "ValidationIssue",
    "ValidationResult",
    "format_amount",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
