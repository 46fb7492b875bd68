"""
Audit Logger

DESIGN DECISION: Every significant action on the form is logged.
This provides:
1. Traceability of AI suggestions versus manual edits
2. Debugging capability for failed remote calls
3. A record of what left the client on submission

The audit logger:
- Writes structured JSON through structlog
- Never raises; a logging failure must not break the form
- Supports correlation IDs to trace related events
"""

from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_assistant.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service for the expense form.

    Keeps the most recent events in memory for the session and writes
    every event to the structured log. History is bounded so a long
    session cannot grow it without limit.
    """

    def __init__(self, keep_history: bool = True, history_limit: int = 200):
        self._logger = structlog.get_logger("expense_assistant.audit")
        self._keep_history = keep_history
        self._events: deque[AuditEvent] = deque(maxlen=history_limit)

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at the level matching its severity."""
        if self._keep_history:
            self._events.append(event)

        log_dict = event.to_log_dict()
        try:
            if event.severity.value == "error":
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Logging must never take the form down with it
            self._logger.error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )

    def log_description_parsed(
        self,
        fields: list[str],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.description_parsed(
            fields=fields,
            correlation_id=correlation_id,
        ))

    def log_receipt_uploaded(
        self,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.receipt_uploaded(
            filename=filename,
            file_size=file_size,
            correlation_id=correlation_id,
        ))

    def log_receipt_parsed(
        self,
        fields: list[str],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.receipt_parsed(
            fields=fields,
            correlation_id=correlation_id,
        ))

    def log_receipt_removed(self, filename: str) -> None:
        self.log(AuditEventBuilder.receipt_removed(filename=filename))

    def log_suggestion_merged(
        self,
        source: str,
        fields: list[str],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.suggestion_merged(
            source=source,
            fields=fields,
            correlation_id=correlation_id,
        ))

    def log_stale_result_discarded(
        self,
        source: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.stale_result_discarded(
            source=source,
            correlation_id=correlation_id,
        ))

    def log_input_rejected(
        self,
        source: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.input_rejected(
            source=source,
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_validation_failed(
        self,
        missing_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.validation_failed(
            missing_fields=missing_fields,
            correlation_id=correlation_id,
        ))

    def log_submission_sent(
        self,
        category: Optional[str],
        amount: Optional[float],
        currency: str,
        has_receipt: bool,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.submission_sent(
            category=category,
            amount=amount,
            currency=currency,
            has_receipt=has_receipt,
            correlation_id=correlation_id,
        ))

    def log_submission_failed(
        self,
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.submission_failed(
            error_type=error_type,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_form_reset(self, reason: str) -> None:
        self.log(AuditEventBuilder.form_reset(reason=reason))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., receipt upload).
    Pass it through all subsequent operations.
    """
    return uuid4()
