"""Configuration package."""

from expense_assistant.config.settings import (
    PLACEHOLDER_WEBHOOK_URL,
    AppSettings,
    GeminiSettings,
    Settings,
    WebhookSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "PLACEHOLDER_WEBHOOK_URL",
    "AppSettings",
    "GeminiSettings",
    "Settings",
    "WebhookSettings",
    "get_settings",
    "validate_all_settings",
]
