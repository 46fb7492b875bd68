"""Tests for merging AI suggestions into the expense record."""

import pytest

from expense_assistant.merge import merge
from expense_assistant.models.expense import (
    ExpenseCategory,
    ExpenseRecord,
    ParsedSuggestion,
)


@pytest.fixture
def record():
    return ExpenseRecord.blank(
        employee_name="Asha Rao",
        employee_id="E-1042",
    ).with_changes(
        project="Apollo",
        expense_title="Typed by hand",
        comment="Client visit",
    )


class TestMerge:
    """Tests for the latest-suggestion-wins merge."""

    def test_suggested_fields_overwrite(self, record):
        """Test suggested values replace current ones, manual edits included."""
        suggestion = ParsedSuggestion(
            expense_title="Taj Palace",
            amount=1800,
            expense_category=ExpenseCategory.FOOD_EXPENSE,
        )
        merged, applied = merge(record, suggestion)

        assert merged.expense_title == "Taj Palace"
        assert merged.amount == 1800.0
        assert merged.expense_category == ExpenseCategory.FOOD_EXPENSE
        assert applied == frozenset({"expense_title", "amount", "expense_category"})

    def test_unsuggested_fields_kept(self, record):
        """Test that fields absent from the suggestion are untouched."""
        merged, _ = merge(record, ParsedSuggestion(amount=650))
        assert merged.project == "Apollo"
        assert merged.comment == "Client visit"

    def test_identity_fields_never_change(self, record):
        """Test identity fields survive even a raw mapping that names them."""
        merged, applied = merge(record, {
            "employee_name": "Mallory",
            "employee_id": "E-0000",
            "currency": "USD",
        })
        assert merged.employee_name == "Asha Rao"
        assert merged.employee_id == "E-1042"
        assert merged.currency == "USD"
        assert applied == frozenset({"currency"})

    def test_empty_suggestion_is_noop(self, record):
        """Test merging nothing returns the same record and no fields."""
        merged, applied = merge(record, ParsedSuggestion())
        assert merged is record
        assert applied == frozenset()

        merged, applied = merge(record, {})
        assert merged is record
        assert applied == frozenset()

    def test_empty_string_is_applied(self, record):
        """Test that an explicitly empty value still overwrites."""
        merged, applied = merge(record, ParsedSuggestion(comment=""))
        assert merged.comment == ""
        assert applied == frozenset({"comment"})

    def test_original_record_untouched(self, record):
        """Test merge returns a new record."""
        merge(record, ParsedSuggestion(project="Zeus"))
        assert record.project == "Apollo"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
