"""
Core Data Models for the Expense Assistant

These models define the schemas for everything the expense form holds:
1. The expense record being composed
2. AI suggestions waiting to be merged
3. The optional receipt attachment
4. Submission and validation outcomes

DESIGN DECISION: Python attributes are snake_case, but every model also
accepts and emits the camelCase names used by the AI schema and the
webhook form (employeeName, expenseCategory, ...) through an alias generator.
"""

import base64
import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    The values are the exact strings shown to users, sent to the AI
    as the allowed enum, and posted to the webhook.
    """
    FOOD_EXPENSE = "Food Expense"
    TRAVEL = "Travel"
    ACCOMMODATION = "Accommodation"
    OTHER_OFFICE_EXPENSES = "Other office expenses"

    def __str__(self) -> str:
        return self.value


class SubmissionStatus(str, Enum):
    """Where the submit action currently stands."""
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


EXPENSE_CATEGORIES: list[ExpenseCategory] = list(ExpenseCategory)

# Offered in the currency picker; the record itself accepts any code
CURRENCIES: list[str] = ["INR", "USD", "EUR", "GBP"]

# Identity fields are set once per session and never touched by AI output
PROTECTED_FIELDS = frozenset({"employee_name", "employee_id"})

EDITABLE_FIELDS = (
    "expense_category",
    "project",
    "expense_title",
    "expense_date",
    "currency",
    "amount",
    "comment",
)


def normalize_date(value: Any) -> Any:
    """Reduce a date, datetime or ISO string to its YYYY-MM-DD part."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return value.split("T")[0]
    return value


def format_amount(amount: Optional[float]) -> str:
    """Render an amount the way users typed it: 1800 not 1800.0, unset as ''."""
    if amount is None:
        return ""
    if float(amount).is_integer():
        return str(int(amount))
    return repr(float(amount))


class _ExpenseFieldsModel(BaseModel):
    """Shared validators for anything carrying expense field values."""

    @field_validator('expense_category', mode='before', check_fields=False)
    @classmethod
    def empty_category_is_unset(cls, v: Any) -> Any:
        if v == "":
            return None
        return v

    @field_validator('expense_date', mode='before', check_fields=False)
    @classmethod
    def date_only(cls, v: Any) -> Any:
        return normalize_date(v)

    @field_validator('currency', check_fields=False)
    @classmethod
    def uppercase_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v is not None else v

    @field_validator('amount', mode='before', check_fields=False)
    @classmethod
    def empty_amount_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        if isinstance(v, bool):
            raise ValueError("Amount must be a number")
        return v

    @field_validator('amount', check_fields=False)
    @classmethod
    def finite_amount(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not math.isfinite(v):
            raise ValueError("Amount must be a finite number")
        if v is not None and v < 0:
            raise ValueError("Amount cannot be negative")
        return v


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class ExpenseRecord(_ExpenseFieldsModel):
    """
    The expense currently being composed.

    The record is immutable; every change produces a new record via
    with_changes(), so the form controller is the only place that can
    swap in a new state.

    Unset is distinct from empty-but-present for two fields:
    - expense_category is None until the user (or AI) picks one
    - amount is None until provided; 0.0 is a real amount
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    # Identity (pre-populated, never AI-overridable)
    employee_name: str = ""
    employee_id: str = ""

    expense_category: Optional[ExpenseCategory] = None
    project: str = ""
    expense_title: str = ""
    expense_date: str = Field(
        default_factory=lambda: date.today().isoformat(),
        description="Date of the expense, YYYY-MM-DD"
    )
    currency: str = Field(
        default="INR",
        description="Currency code of the amount"
    )
    amount: Optional[float] = Field(
        default=None,
        description="Amount spent; None means not provided"
    )
    comment: str = ""

    @classmethod
    def blank(
        cls,
        employee_name: str = "",
        employee_id: str = "",
        currency: str = "INR",
    ) -> "ExpenseRecord":
        """A fresh record for a new session (today's date, no amount)."""
        return cls(
            employee_name=employee_name,
            employee_id=employee_id,
            currency=currency,
        )

    def with_changes(self, **changes: Any) -> "ExpenseRecord":
        """Return a validated copy with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)


class ParsedSuggestion(_ExpenseFieldsModel):
    """
    A partial expense returned by AI extraction.

    CRITICAL: This is PROPOSED data. Only fields the AI actually
    returned (and that passed sanitisation) are set; identity
    fields are not part of a suggestion at all.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    expense_category: Optional[ExpenseCategory] = None
    project: Optional[str] = None
    expense_title: Optional[str] = None
    expense_date: Optional[str] = None
    currency: Optional[str] = None
    amount: Optional[float] = None
    comment: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        """Fields that were actually provided, by attribute name."""
        return self.model_dump(exclude_unset=True)

    def applied_fields(self) -> frozenset[str]:
        return frozenset(self.changes())

    @property
    def is_empty(self) -> bool:
        return not self.model_fields_set


# =============================================================================
# ATTACHMENT MODEL
# =============================================================================

class AttachmentState(BaseModel):
    """
    A receipt image attached to the expense.

    The preview is derived from the content, so there is never a
    preview without a file (or a file without a preview).
    """
    model_config = ConfigDict(frozen=True)

    filename: str = Field(
        ...,
        min_length=1,
        description="Original filename, preserved on submission"
    )
    content: bytes = Field(
        ...,
        description="Raw file bytes"
    )
    mime_type: str = Field(
        ...,
        description="MIME type reported for the upload"
    )

    @field_validator('mime_type')
    @classmethod
    def lowercase_mime_type(cls, v: str) -> str:
        return v.lower()

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def preview(self) -> str:
        """Data URL suitable for an <img> tag."""
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


# =============================================================================
# TRANSIENT UI STATE
# =============================================================================

class HighlightSet(BaseModel):
    """
    Field names recently filled in by the AI.

    Purely cosmetic. The set is only considered active until
    expires_at (a monotonic clock reading).
    """
    model_config = ConfigDict(frozen=True)

    field_names: frozenset[str] = Field(default_factory=frozenset)
    expires_at: float = 0.0

    def active_at(self, now: float) -> frozenset[str]:
        if now >= self.expires_at:
            return frozenset()
        return self.field_names


class SubmissionState(BaseModel):
    """Submission progress plus the message shown in the result dialog."""
    model_config = ConfigDict(frozen=True)

    status: SubmissionStatus = SubmissionStatus.IDLE
    message: Optional[str] = None

    @property
    def is_in_flight(self) -> bool:
        return self.status == SubmissionStatus.SUBMITTING

    @property
    def needs_dismissal(self) -> bool:
        return self.status in (SubmissionStatus.SUCCESS, SubmissionStatus.ERROR)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single failed check on the expense form."""

    field: str = Field(
        ...,
        description="Field with the issue (or 'receipt' for the receipt rule)"
    )
    label: str = Field(
        ...,
        description="Name of the field as the user sees it"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


class ValidationResult(BaseModel):
    """
    Outcome of validating the form at submit time.

    Valid when there are no issues. Issues are kept in check order
    so the message shown to the user is stable.
    """

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def missing_fields(self) -> list[str]:
        return [issue.field for issue in self.issues]

    @property
    def labels(self) -> list[str]:
        return [issue.label for issue in self.issues]
