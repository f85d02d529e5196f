"""
Configuration Management System
================================
Implements environment-driven configuration with type-safe validation,
hierarchical overrides, and zero-runtime-cost abstractions through Pydantic.

Architecture: Strategy Pattern + Singleton + Functional Composition
"""

from functools import lru_cache
from typing import Literal, Optional
from urllib.parse import urlparse, urlunparse

from pydantic import Field, PostgresDsn, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL configuration loaded exclusively from environment."""

    url: PostgresDsn = Field(..., alias="DATABASE_URL")
    pool_size: int = Field(default=10, ge=1, le=50, alias="DB_POOL_SIZE")
    max_overflow: int = Field(default=20, ge=0, le=100, alias="DB_MAX_OVERFLOW")
    pool_timeout: int = Field(default=30, ge=1, le=120, alias="DB_POOL_TIMEOUT")
    pool_recycle: int = Field(default=3600, ge=300, alias="DB_POOL_RECYCLE")
    echo_sql: bool = Field(default=False, alias="DB_ECHO_SQL")

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    @property
    def _parsed(self):
        return urlparse(str(self.url))

    @property
    def host(self) -> str:
        return self._parsed.hostname or ""

    @property
    def port(self) -> int:
        return self._parsed.port or 5432

    @property
    def database(self) -> str:
        return self._parsed.path.lstrip("/")

    @property
    def async_url(self) -> str:
        parsed = self._parsed
        scheme = "postgresql+asyncpg"
        return urlunparse(parsed._replace(scheme=scheme))


class ProviderSettings(BaseSettings):
    """Generative provider credentials and model selection."""

    gemini_api_key: Optional[SecretStr] = Field(default=None, alias="GEMINI_API_KEY")
    openai_api_key: Optional[SecretStr] = Field(default=None, alias="OPENAI_API_KEY")
    anthropic_api_key: Optional[SecretStr] = Field(default=None, alias="ANTHROPIC_API_KEY")

    outline_model: str = Field(default="gemini-2.0-flash-001", alias="OUTLINE_MODEL")
    content_provider: Literal["openai", "anthropic"] = Field(
        default="openai", alias="CONTENT_PROVIDER"
    )
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    anthropic_model: str = Field(default="claude-haiku-4-5-20251001", alias="ANTHROPIC_MODEL")
    request_timeout: float = Field(default=120.0, ge=5.0, le=600.0, alias="PROVIDER_TIMEOUT")

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    @model_validator(mode="after")
    def validate_api_keys(self) -> "ProviderSettings":
        if not self.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required for outline generation.")
        if self.content_provider == "openai" and not self.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when CONTENT_PROVIDER=openai.")
        if self.content_provider == "anthropic" and not self.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY is required when CONTENT_PROVIDER=anthropic.")
        return self


class GenerationSettings(BaseSettings):
    """
    Pipeline tunables.

    Delays are seconds. `max_retries` counts retries after the first call,
    so a value of 3 allows four calls in total.
    """

    request_cost: int = Field(default=4, ge=1, le=100)

    # Retry policy (both generator call sites share the classifier)
    max_retries: Optional[int] = Field(default=None, ge=0, le=10)
    base_delay: float = Field(default=0.5, ge=0.0, le=30.0)
    max_delay: float = Field(default=10.0, ge=0.0, le=120.0)
    jitter: float = Field(default=1.0, ge=0.0, le=10.0)
    outline_max_retries: Optional[int] = Field(default=None, ge=0, le=10)
    simplified_max_retries: int = Field(default=1, ge=0, le=10)

    # Outline sampling
    outline_temperature: float = Field(default=0.6, ge=0.0, le=2.0)
    outline_top_k: int = Field(default=40, ge=1, le=100)
    outline_top_p: float = Field(default=0.9, ge=0.0, le=1.0)
    outline_max_tokens: int = Field(default=3000, ge=256, le=32000)
    simplified_max_tokens: int = Field(default=2000, ge=256, le=32000)
    min_outline_chars: int = Field(default=50, ge=1)

    # Content sampling
    content_temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    content_token_ceiling: int = Field(default=4000, ge=256, le=32000)
    tokens_per_word: float = Field(default=1.5, gt=0.0, le=5.0)
    presence_penalty: float = Field(default=0.1, ge=-2.0, le=2.0)
    frequency_penalty: float = Field(default=0.1, ge=-2.0, le=2.0)
    min_content_chars: int = Field(default=500, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="GENERATION_", case_sensitive=False, extra="ignore"
    )

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> "GenerationSettings":
        if self.base_delay > self.max_delay:
            raise ValueError("GENERATION_BASE_DELAY cannot exceed GENERATION_MAX_DELAY")
        return self


class MediaSettings(BaseSettings):
    """Uploaded media URL validation."""

    validate_urls: bool = Field(default=True)
    allowed_hosts: list[str] = Field(
        default=["firebasestorage.googleapis.com", "storage.googleapis.com"]
    )
    head_timeout: float = Field(default=5.0, ge=0.5, le=60.0)

    model_config = SettingsConfigDict(env_prefix="MEDIA_", case_sensitive=False, extra="ignore")


class MonitoringSettings(BaseSettings):
    """Observability and monitoring configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="json")

    # Metrics
    enable_prometheus: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_prefix="MONITORING_", case_sensitive=False, extra="ignore"
    )


class Settings(BaseSettings):
    """
    Master configuration orchestrator.

    Implements hierarchical configuration composition with environment-specific
    overrides and runtime validation.
    """

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )
    debug: bool = Field(default=False, alias="DEBUG")

    # Application metadata
    app_name: str = Field(default="Long-form Generation Engine")
    app_version: str = Field(default="2.2.0")

    # Component configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    media: MediaSettings = Field(default_factory=MediaSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    # Security
    secret_key: SecretStr = Field(..., alias="SECRET_KEY", description="Application secret key")
    cors_origins: list[str] = Field(default=["http://localhost:5173"])
    jwt_algorithm: str = Field(default="HS256")
    jwt_issuer: str = Field(default="longform-engine")
    jwt_audience: str = Field(default="api")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("debug")
    @classmethod
    def validate_debug_mode(cls, v: bool, info) -> bool:
        """Ensure debug mode is disabled in production."""
        if info.data.get("environment") == "production" and v:
            raise ValueError("Debug mode must be disabled in production")
        return v

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: SecretStr, info) -> SecretStr:
        """Require strong, non-default secret key in production."""
        env = info.data.get("environment")
        key = v.get_secret_value()

        weak_secrets = ["change_me_in_production", "secret", "password", "12345"]
        if key.lower() in weak_secrets:
            raise ValueError("SECRET_KEY cannot be a default/weak value.")

        if env == "production" and len(key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters in production")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def content_max_retries(self) -> int:
        """Content retries: explicit setting, else 3 in production and 2 elsewhere."""
        if self.generation.max_retries is not None:
            return self.generation.max_retries
        return 3 if self.is_production else 2

    @property
    def outline_max_retries(self) -> int:
        if self.generation.outline_max_retries is not None:
            return self.generation.outline_max_retries
        return self.content_max_retries


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Singleton factory for global settings access.

    Uses LRU cache to ensure single instance across application lifetime.

    Returns:
        Settings: Validated, immutable settings instance
    """
    return Settings()


# Module-level convenience exports
settings = get_settings()

__all__ = [
    "Settings",
    "DatabaseSettings",
    "ProviderSettings",
    "GenerationSettings",
    "MediaSettings",
    "MonitoringSettings",
    "get_settings",
    "settings",
]
