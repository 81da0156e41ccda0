"""Application settings using Pydantic BaseSettings."""

import os
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_default_db_path() -> str:
    """Get absolute path to default SQLite database."""
    package_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    db_path = os.path.join(package_dir, "data", "llm_gateway.db")
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    environment: str = Field(default="development")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    # Security
    api_keys: str = Field(default="")
    cors_origins: str = Field(default="http://localhost:3000")
    max_request_bytes: int = Field(default=1048576)

    # Database
    database_url: str = Field(default_factory=_get_default_db_path)

    # Provider credentials and endpoints
    openai_api_key: str = Field(default="")
    openai_base_url: Optional[str] = Field(default=None)
    anthropic_api_key: str = Field(default="")
    anthropic_base_url: Optional[str] = Field(default=None)
    google_api_key: str = Field(default="")
    gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com")

    # Generation defaults (read once per adapter construction)
    default_model: str = Field(default="gpt-4-turbo")
    max_tokens: int = Field(default=2000, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    # Transport
    provider_connect_timeout_seconds: float = Field(default=10.0, gt=0)
    provider_timeout_seconds: float = Field(default=30.0, gt=0)

    # Retry policy
    retry_max_attempts: int = Field(default=3)
    retry_initial_delay_seconds: float = Field(default=1.0)
    retry_max_delay_seconds: float = Field(default=30.0)
    retry_backoff_multiplier: float = Field(default=2.0)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def api_keys_list(self) -> List[str]:
        """Parse accepted bearer keys from comma-separated string."""
        if not self.api_keys:
            return []
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        vv = (v or "").strip().lower()
        if vv not in {"development", "staging", "production", "test"}:
            raise ValueError("ENVIRONMENT must be one of: development, staging, production, test")
        return vv

    @model_validator(mode="after")
    def validate_retry_policy(self) -> "Settings":
        if self.retry_max_attempts < 1:
            raise ValueError("RETRY_MAX_ATTEMPTS must be at least 1")
        if self.retry_backoff_multiplier <= 1:
            raise ValueError("RETRY_BACKOFF_MULTIPLIER must be greater than 1")
        if self.retry_initial_delay_seconds < 0 or self.retry_max_delay_seconds < 0:
            raise ValueError("Retry delays must be non-negative")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
