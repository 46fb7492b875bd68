"""
Audit Models for the Expense Assistant

Every significant action on the expense form is logged for audit purposes.
This provides:
1. Traceability of what the AI filled in versus what the user typed
2. Debugging information when a remote call fails
3. A record of what was sent to the webhook

DESIGN DECISION: Events are emitted to the structured log only.
Nothing is persisted beyond the current session.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each step of the fill-in and submit flow has its own event type.
    """
    # AI extraction
    DESCRIPTION_PARSED = "description_parsed"
    RECEIPT_UPLOADED = "receipt_uploaded"
    RECEIPT_PARSED = "receipt_parsed"
    RECEIPT_REMOVED = "receipt_removed"
    SUGGESTION_MERGED = "suggestion_merged"
    STALE_RESULT_DISCARDED = "stale_result_discarded"
    INPUT_REJECTED = "input_rejected"

    # Submission
    VALIDATION_FAILED = "validation_failed"
    SUBMISSION_SENT = "submission_sent"
    SUBMISSION_FAILED = "submission_failed"
    FORM_RESET = "form_reset"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action on the form creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g. one upload and its parse)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.receipt_uploaded(filename, size, correlation_id)
        event = AuditEventBuilder.submission_sent(fields, True, correlation_id)
    """

    @staticmethod
    def description_parsed(
        fields: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DESCRIPTION_PARSED,
            correlation_id=correlation_id,
            description=f"Description parsed into {len(fields)} fields",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def receipt_uploaded(
        filename: str,
        file_size: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_UPLOADED,
            correlation_id=correlation_id,
            description=f"Receipt uploaded: {filename}",
            details={
                "filename": filename,
                "file_size_bytes": file_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def receipt_parsed(
        fields: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_PARSED,
            correlation_id=correlation_id,
            description=f"Receipt parsed into {len(fields)} fields",
            details={"fields": fields},
        )

    @staticmethod
    def receipt_removed(filename: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_REMOVED,
            description=f"Receipt removed: {filename}",
            details={"filename": filename},
            is_user_action=True,
        )

    @staticmethod
    def suggestion_merged(
        source: str,
        fields: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUGGESTION_MERGED,
            correlation_id=correlation_id,
            description=f"Applied {len(fields)} AI-suggested fields from {source}",
            details={
                "source": source,
                "fields": fields,
            },
        )

    @staticmethod
    def stale_result_discarded(
        source: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESULT_DISCARDED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Discarded {source} result that arrived after the form changed",
            details={"source": source},
        )

    @staticmethod
    def input_rejected(
        source: str,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INPUT_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Rejected {source} input",
            error_message=reason,
            details={"source": source},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        missing_fields: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(missing_fields)} issues",
            details={"missing_fields": missing_fields},
        )

    @staticmethod
    def submission_sent(
        category: Optional[str],
        amount: Optional[float],
        currency: str,
        has_receipt: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMISSION_SENT,
            correlation_id=correlation_id,
            description=f"Expense submitted: {amount} {currency}",
            details={
                "category": category,
                "amount": amount,
                "currency": currency,
                "has_receipt": has_receipt,
            },
            is_user_action=True,
        )

    @staticmethod
    def submission_failed(
        error_type: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMISSION_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Submission failed: {error_type}",
            error_message=error_message,
            details={"error_type": error_type},
        )

    @staticmethod
    def form_reset(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORM_RESET,
            description=f"Form reset ({reason})",
            details={"reason": reason},
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
