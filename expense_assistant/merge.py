"""
Merge Policy

How an AI suggestion lands on the expense being composed:
- Every suggested field overwrites the current value, unconditionally
  (the latest suggestion wins, even over manual edits)
- Employee identity is never overwritten
- The returned field set is exactly what was applied

An empty suggestion is a true no-op: the same record object comes
back, so callers can skip re-rendering.
"""

from typing import Any, Mapping, Union

from expense_assistant.models.expense import (
    EDITABLE_FIELDS,
    ExpenseRecord,
    ParsedSuggestion,
)


def merge(
    current: ExpenseRecord,
    suggestion: Union[ParsedSuggestion, Mapping[str, Any]],
) -> tuple[ExpenseRecord, frozenset[str]]:
    """
    Apply a suggestion to a record.

    Args:
        current: The record as it stands
        suggestion: A ParsedSuggestion, or a raw mapping of attribute
                    names to values (identity keys are ignored)

    Returns:
        (merged_record, applied_field_names)
    """
    if isinstance(suggestion, ParsedSuggestion):
        changes = suggestion.changes()
    else:
        changes = dict(suggestion)

    applied = {
        name: value
        for name, value in changes.items()
        if name in EDITABLE_FIELDS
    }

    if not applied:
        return current, frozenset()

    return current.with_changes(**applied), frozenset(applied)
