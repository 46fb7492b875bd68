"""
Expense Form Validation

Runs at submit time, before anything leaves the client.

REQUIRED-PRESENCE CHECKS (all run, none short-circuit), in order:
- Expense category
- Project / cost center
- Expense title
- Expense date
- Amount (unset fails; 0 is a real amount and passes)
- Comment

CONDITIONAL CHECK:
- Amount strictly above the receipt threshold needs a receipt attached.
  No currency conversion is done; the threshold applies to the raw number.

IMPORTANT: Validation NEVER fixes anything.
It reports every problem so the user can fix them in one pass.
"""

from typing import Optional

from expense_assistant.config import AppSettings, get_settings
from expense_assistant.models.expense import (
    ExpenseRecord,
    ValidationIssue,
    ValidationResult,
)


DEFAULT_RECEIPT_THRESHOLD = 500.0

RECEIPT_FIELD = "receipt"

# (attribute, label shown to the user)
_REQUIRED_FIELDS = (
    ("expense_category", "Expense Category"),
    ("project", "Project / Cost Center"),
    ("expense_title", "Expense Title"),
    ("expense_date", "Expense Date"),
    ("amount", "Amount"),
    ("comment", "Comment"),
)


def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    return False


def validate_expense(
    record: ExpenseRecord,
    has_attachment: bool,
    receipt_threshold: float = DEFAULT_RECEIPT_THRESHOLD,
) -> ValidationResult:
    """
    Validate an expense record.

    Pure function: same record and attachment flag, same result.

    Returns:
        ValidationResult with issues in check order (empty when valid)
    """
    issues = []

    for field_name, label in _REQUIRED_FIELDS:
        if _is_missing(getattr(record, field_name)):
            issues.append(ValidationIssue(
                field=field_name,
                label=label,
                message=f"{label} is required",
            ))

    if (
        record.amount is not None
        and record.amount > receipt_threshold
        and not has_attachment
    ):
        issues.append(ValidationIssue(
            field=RECEIPT_FIELD,
            label="Upload Receipt",
            message=(
                f"A receipt is required for amounts above "
                f"{receipt_threshold:g}"
            ),
        ))

    return ValidationResult(issues=issues)


class ExpenseValidator:
    """
    Validates the expense form with thresholds taken from settings.
    """

    def __init__(self, app_settings: Optional[AppSettings] = None):
        self._settings = app_settings or get_settings().app

    @property
    def receipt_threshold(self) -> float:
        return self._settings.receipt_required_above

    def receipt_required(self, record: ExpenseRecord) -> bool:
        """True when the current amount means a receipt must be attached."""
        return record.amount is not None and record.amount > self.receipt_threshold

    def validate(
        self,
        record: ExpenseRecord,
        has_attachment: bool,
    ) -> ValidationResult:
        return validate_expense(
            record,
            has_attachment,
            receipt_threshold=self.receipt_threshold,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> Optional[str]:
        """
        The single message shown when submit is blocked.

        Returns None when the result is valid.
        """
        if result.is_valid:
            return None
        return f"Please complete all required fields: {', '.join(result.labels)}."
