"""
Application configuration settings using Pydantic Settings.

This module provides centralized configuration management with
environment variable support, validation, and type safety.
"""

import secrets
from typing import List, Optional
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment options."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        validate_assignment=True,
        extra="ignore",
    )

    # Environment Configuration
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Server Configuration
    HOST: str = Field(
        default="0.0.0.0",
        description="Server host address"
    )
    PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    # Logging Configuration
    LOG_LEVEL: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level"
    )
    LOG_FORMAT: str = Field(
        default="json",
        pattern=r"^(json|text)$",
        description="Log output format"
    )

    # Database Configuration
    MONGODB_URI: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DATABASE: str = Field(
        default="fanpage_service",
        min_length=1,
        max_length=64,
        description="MongoDB database name"
    )
    MONGODB_MAX_CONNECTIONS: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="MongoDB maximum connections"
    )
    MONGODB_MIN_CONNECTIONS: int = Field(
        default=10,
        ge=1,
        le=100,
        description="MongoDB minimum connections"
    )

    # Security Configuration
    JWT_SECRET_KEY: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        min_length=32,
        description="JWT verification secret key"
    )
    JWT_ALGORITHM: str = Field(
        default="HS256",
        pattern=r"^(HS256|HS384|HS512)$",
        description="JWT signing algorithm"
    )

    # CORS Configuration
    ALLOWED_ORIGINS: List[str] = Field(
        default=["*"],
        description="CORS allowed origins"
    )

    # Facebook Graph API Configuration
    FACEBOOK_GRAPH_URL: str = Field(
        default="https://graph.facebook.com",
        description="Graph API base URL"
    )
    FACEBOOK_API_VERSION: str = Field(
        default="v23.0",
        pattern=r"^v\d+\.\d+$",
        description="Graph API version"
    )
    FACEBOOK_APP_ID: Optional[str] = Field(
        default=None,
        description="Facebook application ID"
    )
    FACEBOOK_APP_SECRET: Optional[str] = Field(
        default=None,
        description="Facebook application secret"
    )
    FACEBOOK_WEBHOOK_TOKEN: str = Field(
        default="",
        description="Verify token expected on webhook subscription"
    )
    FACEBOOK_VERIFY_SIGNATURE: bool = Field(
        default=False,
        description="Require a valid X-Hub-Signature-256 on webhook deliveries"
    )
    FACEBOOK_PAGE_SIZE: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Default page size for Graph API listings"
    )

    # Synchronization Configuration
    LAZY_PULL_LIMIT: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Records pulled when a requested scope is empty locally"
    )

    # Notification Configuration
    NOTIFICATION_MAX_PER_USER: int = Field(
        default=100,
        ge=2,
        description="Notification count that triggers pruning"
    )
    NOTIFICATION_PRUNE_TARGET: int = Field(
        default=90,
        ge=1,
        description="Notifications left for a user after pruning"
    )

    # Credential Refresh Configuration
    TOKEN_REFRESH_ENABLED: bool = Field(
        default=True,
        description="Schedule the daily credential refresh sweep"
    )
    TOKEN_REFRESH_CRON_HOUR: int = Field(
        default=2,
        ge=0,
        le=23,
        description="UTC hour of the daily credential refresh sweep"
    )
    TOKEN_REFRESH_MAX_AGE_DAYS: int = Field(
        default=50,
        ge=1,
        le=60,
        description="Credential age that triggers a refresh"
    )

    # Realtime Configuration
    WEBSOCKET_IDLE_TIMEOUT: float = Field(
        default=30.0,
        gt=0,
        description="Seconds without client traffic before a socket is idle"
    )

    # Subscription Configuration
    FREE_TIER_MAX_FANPAGES: int = Field(
        default=1,
        ge=0,
        description="Fanpages a user without a package may connect"
    )

    # Monitoring Configuration
    METRICS_ENABLED: bool = Field(
        default=True,
        description="Enable metrics collection"
    )

    @field_validator("FACEBOOK_GRAPH_URL")
    @classmethod
    def validate_graph_url(cls, v):
        """Strip the trailing slash so paths can be joined safely."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid Graph API URL: {v}")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_environment_consistency(self):
        """Validate environment-specific consistency."""
        if self.ENVIRONMENT == Environment.PRODUCTION:
            if self.DEBUG:
                raise ValueError("Debug mode should not be enabled in production")

            if "*" in self.ALLOWED_ORIGINS:
                raise ValueError("Wildcard CORS origins not allowed in production")

            if not self.FACEBOOK_WEBHOOK_TOKEN:
                raise ValueError("FACEBOOK_WEBHOOK_TOKEN is required in production")

        if self.FACEBOOK_VERIFY_SIGNATURE and not self.FACEBOOK_APP_SECRET:
            raise ValueError("FACEBOOK_APP_SECRET is required to verify webhook signatures")

        if self.MONGODB_MIN_CONNECTIONS > self.MONGODB_MAX_CONNECTIONS:
            raise ValueError("MongoDB min connections cannot exceed max connections")

        if self.NOTIFICATION_PRUNE_TARGET >= self.NOTIFICATION_MAX_PER_USER:
            raise ValueError("Notification prune target must be below the per-user maximum")

        return self

    @property
    def graph_api_base_url(self) -> str:
        """Versioned Graph API root."""
        return f"{self.FACEBOOK_GRAPH_URL}/{self.FACEBOOK_API_VERSION}"


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached singleton).

    Returns:
        Settings: Configured application settings instance
    """
    return Settings()
