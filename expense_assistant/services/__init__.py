"""Services package."""

from expense_assistant.services.webhook import (
    ConfigurationError,
    NetworkError,
    SubmissionError,
    SubmissionRejectedError,
    WebhookSubmissionService,
)

__all__ = [
    # Webhook submission
    "ConfigurationError",
    "NetworkError",
    "SubmissionError",
    "SubmissionRejectedError",
    "WebhookSubmissionService",
]
