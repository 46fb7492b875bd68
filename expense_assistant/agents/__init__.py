"""AI Agents package."""

from expense_assistant.agents.extraction_agent import (
    EXPENSE_SCHEMA,
    RECEIPT_PARSED_FALLBACK,
    ExpenseExtractionAgent,
    ExtractionError,
    InputInvalidError,
    ResponseUnparseableError,
    ServiceUnavailableError,
    check_description,
    check_receipt_upload,
    parse_suggestion_response,
    sanitize_fields,
    summarize_suggestion,
)

__all__ = [
    "EXPENSE_SCHEMA",
    "RECEIPT_PARSED_FALLBACK",
    "ExpenseExtractionAgent",
    "ExtractionError",
    "InputInvalidError",
    "ResponseUnparseableError",
    "ServiceUnavailableError",
    "check_description",
    "check_receipt_upload",
    "parse_suggestion_response",
    "sanitize_fields",
    "summarize_suggestion",
]
