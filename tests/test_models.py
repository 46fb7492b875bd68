"""
Tests for the Expense Assistant

Test strategy:
1. Unit tests for individual components (models, merge, validator)
2. Flow tests for the form controller (with fake AI and webhook)
3. No real API calls in tests (use fakes and mocked transports)
"""

import pytest
from datetime import date, datetime
from uuid import uuid4

from expense_assistant.models.expense import (
    CURRENCIES,
    EDITABLE_FIELDS,
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
    normalize_date,
)
from expense_assistant.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestExpenseRecord:
    """Tests for the expense record model."""

    def test_blank_record_defaults(self):
        """Test a fresh record: today's date, no category, no amount."""
        record = ExpenseRecord.blank(
            employee_name="Asha Rao",
            employee_id="asha@example.com",
        )
        assert record.employee_name == "Asha Rao"
        assert record.employee_id == "asha@example.com"
        assert record.expense_category is None
        assert record.amount is None
        assert record.currency == "INR"
        assert record.expense_date == date.today().isoformat()
        assert record.project == ""
        assert record.comment == ""

    def test_record_accepts_camel_case_names(self):
        """Test that wire names populate the record."""
        record = ExpenseRecord.model_validate({
            "employeeName": "Asha Rao",
            "expenseCategory": "Travel",
            "expenseTitle": "Taxi",
            "amount": 650,
        })
        assert record.employee_name == "Asha Rao"
        assert record.expense_category == ExpenseCategory.TRAVEL
        assert record.expense_title == "Taxi"
        assert record.amount == 650.0

    def test_record_is_immutable(self):
        """Test that records cannot be mutated in place."""
        record = ExpenseRecord.blank()
        with pytest.raises(ValueError):
            record.project = "Apollo"

    def test_with_changes_returns_new_record(self):
        """Test with_changes leaves the original untouched."""
        record = ExpenseRecord.blank()
        changed = record.with_changes(project="Apollo")
        assert changed.project == "Apollo"
        assert record.project == ""

    def test_date_time_component_is_stripped(self):
        """Test that ISO timestamps keep only their date part."""
        record = ExpenseRecord.blank().with_changes(expense_date="2024-07-10T00:00:00Z")
        assert record.expense_date == "2024-07-10"

    def test_date_object_is_normalized(self):
        """Test that date objects become ISO strings."""
        record = ExpenseRecord.blank().with_changes(expense_date=date(2024, 3, 12))
        assert record.expense_date == "2024-03-12"

    def test_empty_category_is_unset(self):
        """Test that selecting the empty option clears the category."""
        record = ExpenseRecord.blank().with_changes(expense_category="Travel")
        cleared = record.with_changes(expense_category="")
        assert cleared.expense_category is None

    def test_unknown_category_rejected(self):
        """Test that only the four categories are accepted."""
        with pytest.raises(ValueError):
            ExpenseRecord.blank().with_changes(expense_category="Unknown")

    def test_amount_accepts_numeric_string(self):
        """Test that a typed amount is parsed."""
        record = ExpenseRecord.blank().with_changes(amount="1800.50")
        assert record.amount == 1800.5

    def test_empty_amount_is_unset(self):
        """Test that clearing the amount box unsets it."""
        record = ExpenseRecord.blank().with_changes(amount=100)
        assert record.with_changes(amount="").amount is None
        assert record.with_changes(amount=None).amount is None

    def test_zero_amount_is_kept(self):
        """Test that 0 is a real amount, distinct from unset."""
        record = ExpenseRecord.blank().with_changes(amount=0)
        assert record.amount == 0.0

    def test_non_numeric_amount_rejected(self):
        """Test that garbage amounts are rejected."""
        with pytest.raises(ValueError):
            ExpenseRecord.blank().with_changes(amount="abc")

    def test_negative_amount_rejected(self):
        """Test amounts below zero are rejected."""
        with pytest.raises(ValueError):
            ExpenseRecord.blank().with_changes(amount=-0.01)
        with pytest.raises(ValueError):
            ParsedSuggestion(amount=-50)

    def test_non_finite_amount_rejected(self):
        """Test that NaN and infinity are rejected."""
        with pytest.raises(ValueError):
            ExpenseRecord.blank().with_changes(amount=float("nan"))
        with pytest.raises(ValueError):
            ExpenseRecord.blank().with_changes(amount=float("inf"))

    def test_currency_is_uppercased(self):
        """Test currency normalization."""
        record = ExpenseRecord.blank().with_changes(currency="usd")
        assert record.currency == "USD"

    def test_unknown_fields_rejected(self):
        """Test that records only carry declared fields."""
        with pytest.raises(ValueError):
            ExpenseRecord.blank().with_changes(vendor="Taj")


class TestHelpers:
    """Tests for the small formatting helpers."""

    def test_normalize_date(self):
        """Test normalize_date across input types."""
        assert normalize_date("2024-07-10T10:15:00+05:30") == "2024-07-10"
        assert normalize_date("2024-07-10") == "2024-07-10"
        assert normalize_date(datetime(2024, 7, 10, 9, 30)) == "2024-07-10"
        assert normalize_date(None) is None

    def test_format_amount(self):
        """Test amounts render without a trailing .0."""
        assert format_amount(None) == ""
        assert format_amount(1800.0) == "1800"
        assert format_amount(0.0) == "0"
        assert format_amount(99.5) == "99.5"

    def test_field_groups(self):
        """Test identity fields are not editable."""
        assert PROTECTED_FIELDS.isdisjoint(EDITABLE_FIELDS)
        assert "INR" in CURRENCIES


class TestParsedSuggestion:
    """Tests for AI suggestion model."""

    def test_only_provided_fields_are_changes(self):
        """Test that unset fields are not part of the suggestion."""
        suggestion = ParsedSuggestion(expense_title="Taj", amount=1800)
        assert suggestion.changes() == {"expense_title": "Taj", "amount": 1800.0}
        assert suggestion.applied_fields() == frozenset({"expense_title", "amount"})

    def test_empty_suggestion(self):
        """Test that a suggestion with nothing set is empty."""
        assert ParsedSuggestion().is_empty is True
        assert ParsedSuggestion(comment="").is_empty is False

    def test_identity_fields_ignored(self):
        """Test that a suggestion cannot carry identity fields."""
        suggestion = ParsedSuggestion.model_validate({
            "employeeName": "Mallory",
            "project": "Apollo",
        })
        assert suggestion.changes() == {"project": "Apollo"}


class TestAttachmentState:
    """Tests for the receipt attachment model."""

    def test_preview_is_data_url(self):
        """Test that the preview is derived from the file bytes."""
        attachment = AttachmentState(
            filename="receipt.png",
            content=b"\x89PNG",
            mime_type="IMAGE/PNG",
        )
        assert attachment.mime_type == "image/png"
        assert attachment.size_bytes == 4
        assert attachment.preview == "data:image/png;base64,iVBORw=="

    def test_filename_required(self):
        """Test that an attachment needs a filename."""
        with pytest.raises(ValueError):
            AttachmentState(filename="", content=b"x", mime_type="image/png")


class TestTransientState:
    """Tests for highlight and submission state."""

    def test_highlight_active_until_deadline(self):
        """Test highlight expiry against a clock reading."""
        highlights = HighlightSet(
            field_names=frozenset({"amount"}),
            expires_at=12.5,
        )
        assert highlights.active_at(10.0) == frozenset({"amount"})
        assert highlights.active_at(12.5) == frozenset()

    def test_empty_highlight_default(self):
        """Test the default highlight set is inactive."""
        assert HighlightSet().active_at(0.0) == frozenset()

    def test_submission_state_flags(self):
        """Test in-flight and dismissal flags per status."""
        assert SubmissionState().needs_dismissal is False
        assert SubmissionState(status=SubmissionStatus.SUBMITTING).is_in_flight is True
        assert SubmissionState(status=SubmissionStatus.SUCCESS).needs_dismissal is True
        assert SubmissionState(status=SubmissionStatus.ERROR).needs_dismissal is True


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_valid_when_no_issues(self):
        """Test is_valid property."""
        assert ValidationResult().is_valid is True

    def test_issue_accessors(self):
        """Test missing_fields and labels keep check order."""
        result = ValidationResult(issues=[
            ValidationIssue(field="project", label="Project / Cost Center",
                            message="Project / Cost Center is required"),
            ValidationIssue(field="comment", label="Comment",
                            message="Comment is required"),
        ])
        assert result.is_valid is False
        assert result.missing_fields == ["project", "comment"]
        assert result.labels == ["Project / Cost Center", "Comment"]


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECEIPT_UPLOADED,
            description="Test receipt uploaded",
        )
        assert event.event_type == AuditEventType.RECEIPT_UPLOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.SUBMISSION_SENT,
            description="Expense submitted",
            details={"category": "Travel", "amount": 650.0},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "submission_sent"
        assert log_dict["details"]["category"] == "Travel"
        assert log_dict["correlation_id"] is None

    def test_audit_event_builder_receipt_uploaded(self):
        """Test AuditEventBuilder.receipt_uploaded."""
        correlation_id = uuid4()

        event = AuditEventBuilder.receipt_uploaded(
            filename="receipt.jpg",
            file_size=1024,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.RECEIPT_UPLOADED
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_stale_result(self):
        """Test stale results are recorded as warnings."""
        event = AuditEventBuilder.stale_result_discarded(
            source="receipt",
            correlation_id=uuid4(),
        )
        assert event.event_type == AuditEventType.STALE_RESULT_DISCARDED
        assert event.severity == AuditSeverity.WARNING

    def test_audit_event_builder_submission_failed(self):
        """Test failed submissions carry the error."""
        event = AuditEventBuilder.submission_failed(
            error_type="NetworkError",
            error_message="Could not submit",
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "Could not submit"


class TestExpenseCategories:
    """Tests for expense category enum."""

    def test_all_categories_exist(self):
        """Test that expected categories exist."""
        expected = [
            "Food Expense", "Travel", "Accommodation", "Other office expenses",
        ]
        assert [c.value for c in ExpenseCategory] == expected

    def test_category_renders_as_label(self):
        """Test str() gives the label shown in pickers, not the member name."""
        assert str(ExpenseCategory.TRAVEL) == "Travel"
        assert f"{ExpenseCategory.FOOD_EXPENSE}" == "Food Expense"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
