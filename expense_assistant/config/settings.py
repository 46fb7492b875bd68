"""
Configuration Management for the Expense Assistant

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Sentinel shipped in the default config; submission refuses to run against it.
PLACEHOLDER_WEBHOOK_URL = "https://n8n.example.com/webhook/your-webhook-id"
PLACEHOLDER_WEBHOOK_HOST = "n8n.example.com"


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class WebhookSettings(BaseSettings):
    """Submission webhook (n8n) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WEBHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default=PLACEHOLDER_WEBHOOK_URL,
        description="URL of the webhook that receives submitted expenses"
    )
    verify_response: bool = Field(
        default=True,
        description=(
            "Treat non-2xx webhook responses as failures. "
            "Disable for fire-and-forget delivery."
        )
    )

    @property
    def is_configured(self) -> bool:
        """False while the URL is empty or still the shipped placeholder."""
        url = self.url.strip()
        return bool(url) and PLACEHOLDER_WEBHOOK_HOST not in url


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Identity of the person filing expenses in this session
    employee_name: str = Field(
        default="",
        description="Employee name pre-filled on every expense"
    )
    employee_id: str = Field(
        default="",
        description="Employee ID (or email) pre-filled on every expense"
    )

    default_currency: str = Field(
        default="INR",
        min_length=3,
        max_length=3,
        description="Currency code a fresh form starts with"
    )

    # Input limits
    max_description_chars: int = Field(
        default=500,
        ge=1,
        description="Maximum length of the free-text expense description"
    )
    max_upload_size_mb: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum receipt upload size in MB"
    )

    # Business rules
    receipt_required_above: float = Field(
        default=500.0,
        ge=0,
        description="Amounts strictly above this need a receipt attached"
    )
    highlight_duration_seconds: float = Field(
        default=2.5,
        gt=0,
        description="How long AI-filled fields stay highlighted"
    )

    @field_validator('default_currency')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.upper()

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def webhook(self) -> WebhookSettings:
        return WebhookSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.gemini
        results["gemini"] = True
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        webhook = settings.webhook
        results["webhook"] = webhook.is_configured
        if not webhook.is_configured:
            results["webhook_error"] = "Webhook URL is not configured"
    except Exception as e:
        results["webhook"] = False
        results["webhook_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
