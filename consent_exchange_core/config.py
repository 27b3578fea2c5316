"""
Centralized configuration management for the consent exchange core.

This module provides a unified configuration system with support for:
- Environment variables
- Feature flags
- Validation using Pydantic
"""

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import (
    AES_KEY_SIZE,
    BCRYPT_ROUNDS,
    DEV_JWT_SECRET,
    JWT_ALGORITHM,
    MIN_JWT_SECRET_LENGTH,
    RSA_KEY_SIZE,
    TOKEN_TTL_SECONDS,
    EnvironmentVariable,
    LogLevel,
    QueueName,
)


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.DATABASE_URL.value, "sqlite:///./consent_exchange.db"
        ),
        description="Database connection string",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")
    development_mode: bool = Field(
        default=False, description="Allow destructive operations such as dropping tables"
    )

    @property
    def is_sqlite(self) -> bool:
        return self.connection_string.startswith("sqlite")

    def __repr__(self) -> str:
        """String representation with masked credentials."""
        masked = self.connection_string
        if "@" in masked:
            scheme, _, rest = masked.partition("://")
            masked = f"{scheme}://***@{rest.split('@', 1)[1]}"
        return f"DatabaseConfig(connection_string='{masked}', echo={self.echo})"


class QueueConfig(BaseModel):
    """Queue configuration for Azure Storage Queues."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.AZURE_STORAGE_CONNECTION.value, ""),
        description="Azure Storage connection string",
    )
    logs_queue_name: str = Field(default=QueueName.LOGS.value, description="Logs queue name")
    batch_size: int = Field(default=10, description="Log entries buffered before a flush")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class FeatureFlags(BaseModel):
    """Feature flags for controlling core behavior."""

    enable_logs_queue: bool = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.ENABLE_LOGS_QUEUE.value, "false"
        ).lower()
        == "true",
        description="Ship structured logs to the Azure logs queue",
    )
    enable_audit_logging: bool = Field(
        default=True, description="Append consent history entries"
    )


class SecurityConfig(BaseModel):
    """Key material and credential settings."""

    rsa_key_size: int = Field(default=RSA_KEY_SIZE, description="System RSA modulus size in bits")
    system_key_path: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.SYSTEM_KEY_PATH.value),
        description="PEM file holding the system private key; generated when unset",
    )
    system_key_password: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.SYSTEM_KEY_PASSWORD.value),
        description="Password protecting the system private key PEM",
    )
    aes_key_size: int = Field(default=AES_KEY_SIZE, description="Data key size in bytes")
    jwt_secret: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.JWT_SECRET_KEY.value, DEV_JWT_SECRET),
        description="HMAC secret for issued tokens",
    )
    jwt_algorithm: str = Field(default=JWT_ALGORITHM, description="Token signing algorithm")
    token_ttl_seconds: int = Field(default=TOKEN_TTL_SECONDS, description="Token lifetime")
    bcrypt_rounds: int = Field(default=BCRYPT_ROUNDS, description="bcrypt cost factor")

    @field_validator("jwt_secret")
    def validate_jwt_secret(cls, v: str) -> str:
        if len(v) < MIN_JWT_SECRET_LENGTH:
            raise ValueError(f"JWT secret must be at least {MIN_JWT_SECRET_LENGTH} characters")
        return v

    @field_validator("aes_key_size")
    def validate_aes_key_size(cls, v: int) -> int:
        if v not in (16, 24, 32):
            raise ValueError("AES key size must be 16, 24 or 32 bytes")
        return v


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_ENV.value, "development"),
        description="Application environment",
    )
    debug: bool = Field(
        default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true",
        description="Debug mode",
    )

    # Sub-configurations
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    queue: QueueConfig = Field(default_factory=QueueConfig, description="Queue configuration")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    features: FeatureFlags = Field(default_factory=FeatureFlags, description="Feature flags")
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )

    # Custom configuration
    custom: Dict[str, Any] = Field(default_factory=dict, description="Custom configuration values")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()

    def get_custom(self, key: str, default: Any = None) -> Any:
        """Get a custom configuration value."""
        return self.custom.get(key, default)


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
