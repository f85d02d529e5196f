"""
Unit tests for environment-driven configuration.
"""

import pytest
from pydantic import ValidationError

from config.settings import (
    DatabaseSettings,
    GenerationSettings,
    ProviderSettings,
    Settings,
)

STRONG_KEY = "a-production-grade-secret-key-0123456789"


class TestRetryBudgets:
    def test_development_default(self):
        settings = Settings()

        assert settings.content_max_retries == 2
        assert settings.outline_max_retries == 2
        assert settings.generation.request_cost == 4

    def test_production_default(self):
        settings = Settings(ENVIRONMENT="production", SECRET_KEY=STRONG_KEY)
        assert settings.content_max_retries == 3

    def test_explicit_budgets(self):
        settings = Settings(generation=GenerationSettings(max_retries=5, outline_max_retries=1))

        assert settings.content_max_retries == 5
        assert settings.outline_max_retries == 1

    def test_base_delay_cannot_exceed_cap(self):
        with pytest.raises(ValidationError):
            GenerationSettings(base_delay=5.0, max_delay=1.0)


class TestSecrets:
    def test_weak_secret_rejected(self):
        with pytest.raises(ValidationError):
            Settings(SECRET_KEY="password")

    def test_short_secret_rejected_in_production(self):
        with pytest.raises(ValidationError):
            Settings(ENVIRONMENT="production", SECRET_KEY="short-but-not-weak")

    def test_debug_forbidden_in_production(self):
        with pytest.raises(ValidationError):
            Settings(ENVIRONMENT="production", SECRET_KEY=STRONG_KEY, DEBUG=True)


class TestComponentSettings:
    def test_database_url_parts(self):
        database = DatabaseSettings()

        assert database.host == "localhost"
        assert database.port == 5432
        assert database.database == "test_db"
        assert database.async_url.startswith("postgresql+asyncpg://")

    def test_outline_key_required(self):
        with pytest.raises(ValidationError, match="GEMINI_API_KEY"):
            ProviderSettings(GEMINI_API_KEY=None)

    def test_anthropic_key_required_when_selected(self):
        with pytest.raises(ValidationError, match="ANTHROPIC_API_KEY"):
            ProviderSettings(CONTENT_PROVIDER="anthropic")
