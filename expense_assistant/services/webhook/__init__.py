"""Webhook submission package."""

from expense_assistant.services.webhook.webhook_service import (
    ConfigurationError,
    NetworkError,
    SubmissionError,
    SubmissionRejectedError,
    WebhookSubmissionService,
    build_submission_payload,
)

__all__ = [
    "ConfigurationError",
    "NetworkError",
    "SubmissionError",
    "SubmissionRejectedError",
    "WebhookSubmissionService",
    "build_submission_payload",
]
