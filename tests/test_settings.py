"""Tests for environment-driven settings."""

import pytest

from expense_assistant.config import (
    PLACEHOLDER_WEBHOOK_URL,
    AppSettings,
    GeminiSettings,
    WebhookSettings,
)


class TestWebhookSettings:
    """Tests for webhook configuration."""

    def test_placeholder_is_not_configured(self):
        """Test the shipped placeholder URL counts as unconfigured."""
        assert WebhookSettings(url=PLACEHOLDER_WEBHOOK_URL).is_configured is False

    def test_real_url_is_configured(self):
        """Test a real URL is accepted."""
        settings = WebhookSettings(url="https://hooks.example.org/webhook/abc")
        assert settings.is_configured is True
        assert settings.verify_response is True

    def test_loaded_from_environment(self, monkeypatch):
        """Test WEBHOOK_* variables are read."""
        monkeypatch.setenv("WEBHOOK_URL", "https://hooks.example.org/webhook/env")
        monkeypatch.setenv("WEBHOOK_VERIFY_RESPONSE", "false")

        settings = WebhookSettings()
        assert settings.url == "https://hooks.example.org/webhook/env"
        assert settings.verify_response is False


class TestGeminiSettings:
    """Tests for Gemini configuration."""

    def test_api_key_from_environment(self, monkeypatch):
        """Test GEMINI_* variables are read with sensible defaults."""
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")

        settings = GeminiSettings()
        assert settings.api_key == "test-key"
        assert settings.model_name == "gemini-2.5-flash"

    def test_temperature_bounds(self):
        """Test out-of-range temperatures are rejected."""
        with pytest.raises(ValueError):
            GeminiSettings(api_key="k", temperature=1.5)


class TestAppSettings:
    """Tests for application settings."""

    def test_defaults(self):
        """Test limits and business rules defaults."""
        settings = AppSettings(employee_name="Asha Rao")
        assert settings.max_description_chars == 500
        assert settings.max_upload_size_bytes == 5 * 1024 * 1024
        assert settings.receipt_required_above == 500.0

    def test_currency_uppercased(self):
        """Test the default currency is normalized."""
        assert AppSettings(default_currency="usd").default_currency == "USD"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
