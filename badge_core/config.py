"""
Application configuration using Pydantic settings.

Usage:
    from badge_core.config import get_settings
    settings = get_settings()

For fixed values (default badge set, criteria types), import from
badge_core.constants instead.
"""

import os
import warnings
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTION_ENVS = ("production", "prod")

PLACEHOLDER_SECRETS = frozenset(
    {"change_me", "changeme", "secret", "your-secret-key", "jwt-secret", "supersecret", "development", "test"}
)

# HS256 keys shorter than this are rejected for production
MIN_JWT_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """
    Unified application settings loaded from environment variables and .env file.

    Required for production:
        - WEBHOOK_SECRET (webhooks are rejected without it)
        - JWT_SECRET_KEY (min 32 chars)
        - TOKEN_ENCRYPTION_KEY (recommended, encrypts stored GitHub tokens)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App settings
    app_name: str = "Contribution Badges"
    api_prefix: str = "/api"
    debug: bool = Field(default=False)
    env: str = Field(default="development", validation_alias="ENV")
    max_request_size_mb: int = Field(default=5, validation_alias="MAX_REQUEST_SIZE_MB")

    # Database
    database_url: str = Field(default="sqlite:///contribution_badges.db", validation_alias="DATABASE_URL")
    db_pool_size: int = Field(default=10, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, validation_alias="DB_MAX_OVERFLOW")
    db_pool_pre_ping: bool = Field(default=True, validation_alias="DB_POOL_PRE_PING")
    database_echo: bool = Field(default=False, validation_alias="DATABASE_ECHO")

    # Webhooks
    webhook_secret: Optional[str] = Field(default=None, validation_alias="WEBHOOK_SECRET")

    # GitHub API
    github_api_base: str = Field(default="https://api.github.com", validation_alias="GITHUB_API_BASE")
    github_request_timeout: int = Field(default=30, validation_alias="GITHUB_REQUEST_TIMEOUT")
    pat_token: Optional[str] = Field(default=None, validation_alias="PAT_TOKEN")
    stats_max_pr_pages: int = Field(default=10, validation_alias="STATS_MAX_PR_PAGES")
    stats_max_commit_pages: int = Field(default=5, validation_alias="STATS_MAX_COMMIT_PAGES")
    statistics_source: str = Field(default="ledger", validation_alias="STATISTICS_SOURCE")

    # JWT / Authentication
    jwt_secret_key: str = Field(default="CHANGE_ME", validation_alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60 * 24)

    # Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
    token_encryption_key: Optional[str] = Field(default=None, validation_alias="TOKEN_ENCRYPTION_KEY")

    # CORS
    cors_allowed_origins: str = Field(default="http://localhost:5173", validation_alias="CORS_ALLOWED_ORIGINS")

    # Celery
    celery_broker_url: str = Field(default="redis://localhost:6379/1", validation_alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field(default="redis://localhost:6379/2", validation_alias="CELERY_RESULT_BACKEND")
    batch_award_hour: int = Field(default=3, validation_alias="BATCH_AWARD_HOUR")

    @field_validator("statistics_source")
    @classmethod
    def validate_statistics_source(cls, v: str) -> str:
        value = v.lower()
        if value not in ("ledger", "github"):
            raise ValueError(f"STATISTICS_SOURCE must be 'ledger' or 'github' (got {v!r})")
        return value

    @field_validator("jwt_secret_key", "webhook_secret")
    @classmethod
    def reject_placeholder_secrets(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Placeholder secrets fail in production and warn elsewhere."""
        if not v or v.lower() not in PLACEHOLDER_SECRETS:
            return v
        name = info.field_name.upper()
        if os.getenv("ENV", "development").lower() in PRODUCTION_ENVS:
            raise ValueError(f"{name} cannot be a placeholder value in production")
        warnings.warn(f"{name} is a placeholder value; set a real secret before deploying", UserWarning, stacklevel=2)
        return v

    @property
    def is_production(self) -> bool:
        return self.env.lower() in PRODUCTION_ENVS

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]

    def validate_production_config(self) -> tuple[List[str], List[str]]:
        """
        Validate configuration for production deployment.

        Returns:
            Tuple of (errors, warnings) - errors are fatal, warnings are advisory
        """
        errors = []
        advisories = []

        if not self.webhook_secret:
            errors.append("WEBHOOK_SECRET is required to accept webhook deliveries")

        if self.jwt_secret_key == "CHANGE_ME":
            errors.append("JWT_SECRET_KEY must be set for production")
        elif len(self.jwt_secret_key) < MIN_JWT_SECRET_LENGTH:
            errors.append(f"JWT_SECRET_KEY must be at least {MIN_JWT_SECRET_LENGTH} characters")

        if self.database_url.startswith("sqlite"):
            advisories.append("DATABASE_URL points at SQLite - use PostgreSQL in production")

        if not self.token_encryption_key:
            advisories.append(
                "TOKEN_ENCRYPTION_KEY not set - GitHub access tokens will be stored "
                "in plaintext. Set this key to encrypt tokens at rest."
            )

        if self.statistics_source == "github" and not self.pat_token:
            advisories.append(
                "PAT_TOKEN not set - live statistics fall back to per-user tokens only"
            )

        return errors, advisories


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


__all__ = ["Settings", "get_settings"]
