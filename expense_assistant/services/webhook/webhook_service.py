"""
Expense Submission via Webhook

DESIGN DECISION: Submitted expenses go to a single n8n-style webhook as a
multipart form. The webhook owns everything downstream (sheet rows,
approvals, notifications); this service only delivers.

Payload fields, in order:
- Every record field under its camelCase name, as a string
- timestamp: UTC send time, ISO-8601 with milliseconds
- receipt: the attached image with its original filename (if any)
- status: always "Submitted"

RESPONSE HANDLING:
By default a non-2xx answer is a failure. With verify_response disabled
the service behaves fire-and-forget: a request that left the client
without a transport error counts as delivered, and nothing from the
response is read.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx
import structlog

from expense_assistant.config import WebhookSettings, get_settings
from expense_assistant.models.expense import (
    AttachmentState,
    ExpenseRecord,
    format_amount,
)


logger = structlog.get_logger(__name__)

SUBMITTED_STATUS = "Submitted"
RECEIPT_FIELD_NAME = "receipt"


class SubmissionError(Exception):
    """Base exception for submission errors."""
    pass


class ConfigurationError(SubmissionError):
    """The webhook URL is missing or still the placeholder."""
    pass


class NetworkError(SubmissionError):
    """The request could not be delivered."""
    pass


class SubmissionRejectedError(SubmissionError):
    """The webhook answered with a non-success status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a Z suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def record_form_fields(record: ExpenseRecord) -> list[tuple[str, str]]:
    """Every record field under its wire name, coerced to a string."""
    fields = []
    for name, value in record.model_dump(by_alias=True, mode="json").items():
        if name == "amount":
            value = format_amount(record.amount)
        elif value is None:
            value = ""
        fields.append((name, str(value)))
    return fields


def build_submission_payload(
    record: ExpenseRecord,
    attachment: Optional[AttachmentState],
    submitted_at: datetime,
) -> list[tuple[str, Any]]:
    """
    Build the multipart parts for httpx's ``files=`` argument.

    Plain form fields use a ``None`` filename so they are sent as
    ordinary multipart fields; the receipt keeps its own filename.
    """
    parts: list[tuple[str, Any]] = [
        (name, (None, value)) for name, value in record_form_fields(record)
    ]
    parts.append(("timestamp", (None, format_timestamp(submitted_at))))
    if attachment is not None:
        parts.append((
            RECEIPT_FIELD_NAME,
            (attachment.filename, attachment.content, attachment.mime_type),
        ))
    parts.append(("status", (None, SUBMITTED_STATUS)))
    return parts


class WebhookSubmissionService:
    """
    Delivers a finished expense to the configured webhook.

    IMPORTANT BOUNDARIES:
    1. Refuses to run against an unconfigured URL (no network call)
    2. Makes exactly one request per submit; no retries
    3. Uses httpx defaults for timeouts
    """

    def __init__(
        self,
        settings: Optional[WebhookSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._settings = settings or get_settings().webhook
        self._clock = clock or _utc_now

    async def submit(
        self,
        record: ExpenseRecord,
        attachment: Optional[AttachmentState] = None,
    ) -> None:
        """
        Send the expense.

        Returns normally when the webhook accepted it (or, in
        fire-and-forget mode, when the request went out).

        Raises:
            ConfigurationError: webhook URL not configured or malformed
            NetworkError: transport-level failure
            SubmissionRejectedError: non-2xx answer (verify mode only)
        """
        if not self._settings.is_configured:
            logger.error("webhook_not_configured")
            raise ConfigurationError(
                "Submission failed. The webhook URL has not been configured."
            )

        parts = build_submission_payload(record, attachment, self._clock())

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(self._settings.url, files=parts)
        except httpx.InvalidURL as e:
            logger.error("webhook_url_invalid", error=str(e))
            raise ConfigurationError(
                "Submission failed. The webhook URL is not a valid URL."
            ) from e
        except httpx.HTTPError as e:
            logger.error("webhook_request_failed", error=str(e))
            raise NetworkError(
                "Could not submit your expense. Please check your network "
                "connection and webhook configuration."
            ) from e

        if self._settings.verify_response and not response.is_success:
            logger.error("webhook_rejected", status_code=response.status_code)
            raise SubmissionRejectedError(
                response.status_code,
                f"The expense service rejected the submission "
                f"(HTTP {response.status_code}). Please try again later.",
            )

        logger.info(
            "expense_submitted",
            has_receipt=attachment is not None,
            verified=self._settings.verify_response,
        )
