"""
Form Orchestrator for the Expense Assistant

This module owns the expense form's session state and defines the
flows that change it:
1. Manual edit (field → record)
2. Describe (text → AI → merge → highlight)
3. Receipt upload (image → attach → AI → merge → highlight → description)
4. Submit (validate → webhook → success/error → reset)

DESIGN DECISION: All mutable state lives in ONE FormState owned by the
controller. Every mutation goes through a controller method; the UI only
reads state and calls methods. Remote failures are caught here and turned
into messages, so nothing from an adapter can crash the session.

CONCURRENCY: single-threaded asyncio. The AI loading flag gates a second
extraction and the submitting status gates a second submit. Each
extraction is tagged with the form generation (advanced by a reset);
receipt extractions are also tagged with the receipt generation
(advanced by uploading or removing a receipt). Late results from an
older generation are discarded.
"""

import time
from typing import Any, Callable, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from expense_assistant.agents import (
    ExpenseExtractionAgent,
    ExtractionError,
    InputInvalidError,
    check_description,
    check_receipt_upload,
    summarize_suggestion,
)
from expense_assistant.audit import AuditLogger, create_correlation_id
from expense_assistant.config import AppSettings, get_settings
from expense_assistant.merge import merge
from expense_assistant.models.expense import (
    EDITABLE_FIELDS,
    PROTECTED_FIELDS,
    AttachmentState,
    ExpenseRecord,
    HighlightSet,
    ParsedSuggestion,
    SubmissionState,
    SubmissionStatus,
)
from expense_assistant.services.webhook import (
    SubmissionError,
    WebhookSubmissionService,
)
from expense_assistant.validation import ExpenseValidator


SUBMISSION_SUCCESS_MESSAGE = "Your expense has been submitted successfully."
UNKNOWN_AI_ERROR = "An unknown error occurred."
UNKNOWN_SUBMISSION_ERROR = "An unknown submission error occurred."


class FormState(BaseModel):
    """Everything the expense form holds for one session."""
    record: ExpenseRecord
    attachment: Optional[AttachmentState] = None
    description: str = ""

    is_ai_loading: bool = False
    ai_error: Optional[str] = None

    submission: SubmissionState = Field(default_factory=SubmissionState)
    highlights: HighlightSet = Field(default_factory=HighlightSet)


class ExpenseFormController:
    """
    Orchestrates the expense form.

    Flow:
    1. Fill → manual edits and/or AI suggestions (latest wins)
    2. Review → highlighted fields show what the AI changed
    3. Submit → validate, then deliver to the webhook
    4. Dismiss → result acknowledged; the form is fresh after success

    Identity fields come from settings and can never be edited.
    """

    def __init__(
        self,
        extraction_agent: Optional[ExpenseExtractionAgent] = None,
        submission_service: Optional[WebhookSubmissionService] = None,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._settings = app_settings or get_settings().app
        self._agent = extraction_agent or ExpenseExtractionAgent(
            app_settings=self._settings,
        )
        self._submitter = submission_service or WebhookSubmissionService()
        self._validator = validator or ExpenseValidator(self._settings)
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock or time.monotonic

        self._generation = 0
        self._receipt_generation = 0
        self._revision = 0
        self._state = FormState(record=self._blank_record())

    # =========================================================================
    # READ-ONLY VIEW
    # =========================================================================

    @property
    def state(self) -> FormState:
        """Snapshot of the form state (mutating it has no effect)."""
        return self._state.model_copy()

    @property
    def record(self) -> ExpenseRecord:
        return self._state.record

    @property
    def attachment(self) -> Optional[AttachmentState]:
        return self._state.attachment

    @property
    def description(self) -> str:
        return self._state.description

    @property
    def is_ai_loading(self) -> bool:
        return self._state.is_ai_loading

    @property
    def ai_error(self) -> Optional[str]:
        return self._state.ai_error

    @property
    def submission(self) -> SubmissionState:
        return self._state.submission

    @property
    def revision(self) -> int:
        """Bumped whenever the record changes other than by a manual edit."""
        return self._revision

    @property
    def receipt_required(self) -> bool:
        return self._validator.receipt_required(self._state.record)

    def active_highlights(self) -> frozenset[str]:
        """Fields filled by the latest suggestion, until the highlight expires."""
        highlights = self._state.highlights
        active = highlights.active_at(self._clock())
        if not active and highlights.field_names:
            self._state.highlights = HighlightSet()
        return active

    # =========================================================================
    # MANUAL EDITS
    # =========================================================================

    def update_field(self, name: str, value: Any) -> None:
        """
        Apply a manual edit.

        Raises:
            InputInvalidError: identity/unknown field, or a value outside
                               the field's domain (e.g. non-numeric amount)
        """
        if name in PROTECTED_FIELDS:
            raise InputInvalidError(f"{name} is fixed for this session")
        if name not in EDITABLE_FIELDS:
            raise InputInvalidError(f"Unknown field: {name}")

        try:
            self._state.record = self._state.record.with_changes(**{name: value})
        except PydanticValidationError as e:
            raise InputInvalidError(f"Invalid value for {name}") from e

    def set_description(self, text: str) -> None:
        self._state.description = text

    def dismiss_ai_error(self) -> None:
        self._state.ai_error = None

    # =========================================================================
    # AI FLOWS
    # =========================================================================

    async def generate_from_text(self) -> bool:
        """
        Fill the form from the free-text description.

        Returns True if a suggestion was merged.
        """
        if self._state.is_ai_loading:
            return False

        self._state.ai_error = None
        correlation_id = create_correlation_id()
        description = self._state.description

        try:
            check_description(description, self._settings.max_description_chars)
        except InputInvalidError as e:
            self._reject_input("description", str(e), correlation_id)
            return False

        suggestion = await self._run_extraction(
            source="description",
            correlation_id=correlation_id,
            call=lambda: self._agent.extract_from_text(description),
        )
        if suggestion is None:
            return False

        self._audit_logger.log_description_parsed(
            fields=sorted(suggestion.applied_fields()),
            correlation_id=correlation_id,
        )
        self._apply_suggestion(suggestion, "description", correlation_id)
        return True

    async def upload_receipt(
        self,
        filename: str,
        content: bytes,
        mime_type: str,
    ) -> bool:
        """
        Attach a receipt image and fill the form from it.

        The attachment stays even if extraction fails, so the receipt
        can still be submitted. Returns True if a suggestion was merged.
        """
        if self._state.is_ai_loading:
            return False

        self._state.ai_error = None
        correlation_id = create_correlation_id()

        try:
            check_receipt_upload(
                mime_type,
                len(content),
                self._settings.max_upload_size_bytes,
            )
        except InputInvalidError as e:
            self._reject_input("receipt", str(e), correlation_id)
            return False

        attachment = AttachmentState(
            filename=filename,
            content=content,
            mime_type=mime_type,
        )
        self._state.attachment = attachment
        self._receipt_generation += 1
        self._audit_logger.log_receipt_uploaded(
            filename=filename,
            file_size=attachment.size_bytes,
            correlation_id=correlation_id,
        )

        suggestion = await self._run_extraction(
            source="receipt",
            correlation_id=correlation_id,
            tracks_receipt=True,
            call=lambda: self._agent.extract_from_image(
                attachment.content,
                attachment.mime_type,
            ),
        )
        if suggestion is None:
            return False

        self._audit_logger.log_receipt_parsed(
            fields=sorted(suggestion.applied_fields()),
            correlation_id=correlation_id,
        )
        self._apply_suggestion(suggestion, "receipt", correlation_id)
        self._state.description = summarize_suggestion(suggestion)
        self._revision += 1
        return True

    def remove_receipt(self) -> None:
        """Drop the attachment; any in-flight receipt result becomes stale."""
        attachment = self._state.attachment
        if attachment is None:
            return
        self._state.attachment = None
        self._state.ai_error = None
        self._receipt_generation += 1
        self._audit_logger.log_receipt_removed(attachment.filename)

    async def _run_extraction(
        self,
        source: str,
        correlation_id: UUID,
        call: Callable[[], Any],
        tracks_receipt: bool = False,
    ) -> Optional[ParsedSuggestion]:
        """
        Run one AI call under the loading flag.

        Returns the suggestion, or None if the call failed or its result
        arrived after the form moved on (stale generation). A text
        result survives removal of the receipt; a receipt result does not.
        """
        generation = self._current_generation(tracks_receipt)
        self._state.is_ai_loading = True
        try:
            suggestion = await call()
        except ExtractionError as e:
            self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            if generation == self._current_generation(tracks_receipt):
                self._state.ai_error = str(e)
            return None
        except Exception as e:
            self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=repr(e),
                correlation_id=correlation_id,
            )
            if generation == self._current_generation(tracks_receipt):
                self._state.ai_error = UNKNOWN_AI_ERROR
            return None
        finally:
            self._state.is_ai_loading = False

        if generation != self._current_generation(tracks_receipt):
            self._audit_logger.log_stale_result_discarded(
                source=source,
                correlation_id=correlation_id,
            )
            return None

        return suggestion

    def _current_generation(self, tracks_receipt: bool) -> tuple[int, int]:
        if tracks_receipt:
            return self._generation, self._receipt_generation
        return self._generation, 0

    def _apply_suggestion(
        self,
        suggestion: ParsedSuggestion,
        source: str,
        correlation_id: UUID,
    ) -> frozenset[str]:
        merged, applied = merge(self._state.record, suggestion)
        if not applied:
            return applied

        self._state.record = merged
        # Replacing the set also replaces its deadline, so an older
        # highlight can never clear a newer one early.
        self._state.highlights = HighlightSet(
            field_names=applied,
            expires_at=self._clock() + self._settings.highlight_duration_seconds,
        )
        self._revision += 1
        self._audit_logger.log_suggestion_merged(
            source=source,
            fields=sorted(applied),
            correlation_id=correlation_id,
        )
        return applied

    def _reject_input(self, source: str, reason: str, correlation_id: UUID) -> None:
        self._state.ai_error = reason
        self._audit_logger.log_input_rejected(
            source=source,
            reason=reason,
            correlation_id=correlation_id,
        )

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    async def submit(self) -> SubmissionState:
        """
        Validate and deliver the expense.

        Validation failures never reach the network. On success the
        form is reset; the SUCCESS state stays until dismissed.
        """
        # A pending result must be dismissed before the next attempt
        if self._state.submission.is_in_flight or self._state.submission.needs_dismissal:
            return self._state.submission

        correlation_id = create_correlation_id()
        record = self._state.record
        attachment = self._state.attachment

        result = self._validator.validate(record, has_attachment=attachment is not None)
        if not result.is_valid:
            self._state.submission = SubmissionState(
                status=SubmissionStatus.ERROR,
                message=self._validator.get_user_friendly_summary(result),
            )
            self._audit_logger.log_validation_failed(
                missing_fields=result.missing_fields,
                correlation_id=correlation_id,
            )
            return self._state.submission

        self._state.submission = SubmissionState(status=SubmissionStatus.SUBMITTING)

        try:
            await self._submitter.submit(record, attachment)
        except SubmissionError as e:
            self._fail_submission(type(e).__name__, str(e), correlation_id)
            return self._state.submission
        except Exception as e:
            self._fail_submission(type(e).__name__, repr(e), correlation_id,
                                  message=UNKNOWN_SUBMISSION_ERROR)
            return self._state.submission

        self._audit_logger.log_submission_sent(
            category=record.expense_category.value if record.expense_category else None,
            amount=record.amount,
            currency=record.currency,
            has_receipt=attachment is not None,
            correlation_id=correlation_id,
        )
        self._reset(reason="submitted")
        self._state.submission = SubmissionState(
            status=SubmissionStatus.SUCCESS,
            message=SUBMISSION_SUCCESS_MESSAGE,
        )
        return self._state.submission

    def _fail_submission(
        self,
        error_type: str,
        error_message: str,
        correlation_id: UUID,
        message: Optional[str] = None,
    ) -> None:
        self._state.submission = SubmissionState(
            status=SubmissionStatus.ERROR,
            message=message or error_message,
        )
        self._audit_logger.log_submission_failed(
            error_type=error_type,
            error_message=error_message,
            correlation_id=correlation_id,
        )

    def dismiss_result(self) -> None:
        """Close the success/error dialog."""
        if self._state.submission.needs_dismissal:
            self._state.submission = SubmissionState()

    # =========================================================================
    # RESET
    # =========================================================================

    def reset_form(self) -> None:
        self._reset(reason="user")

    def _reset(self, reason: str) -> None:
        self._state = FormState(
            record=self._blank_record(),
            submission=self._state.submission,
            is_ai_loading=self._state.is_ai_loading,
        )
        self._generation += 1
        self._revision += 1
        self._audit_logger.log_form_reset(reason)

    def _blank_record(self) -> ExpenseRecord:
        return ExpenseRecord.blank(
            employee_name=self._settings.employee_name,
            employee_id=self._settings.employee_id,
            currency=self._settings.default_currency,
        )


def create_form_controller() -> ExpenseFormController:
    """
    Factory function to create a fully wired form controller.

    Reads Gemini, webhook and app settings from the environment.
    """
    settings = get_settings()
    app_settings = settings.app
    audit_logger = AuditLogger()

    return ExpenseFormController(
        extraction_agent=ExpenseExtractionAgent(
            settings=settings.gemini,
            app_settings=app_settings,
        ),
        submission_service=WebhookSubmissionService(settings=settings.webhook),
        validator=ExpenseValidator(app_settings),
        audit_logger=audit_logger,
        app_settings=app_settings,
    )
