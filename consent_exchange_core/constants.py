"""
Constants and enums for the consent exchange core.

This module centralizes magic strings used throughout the package so that
configuration, logging and persistence agree on the same values.
"""

from enum import Enum


class QueueName(str, Enum):
    """Standard queue names used by the package."""

    LOGS = "logs-queue"
    AUDIT = "audit-queue"


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    DATABASE_URL = "DATABASE_URL"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    SYSTEM_KEY_PATH = "SYSTEM_RSA_KEY_PATH"
    SYSTEM_KEY_PASSWORD = "SYSTEM_RSA_KEY_PASSWORD"
    JWT_SECRET_KEY = "JWT_SECRET_KEY"
    ENABLE_LOGS_QUEUE = "ENABLE_LOGS_QUEUE"


# Cryptographic sizes
RSA_KEY_SIZE = 2048
AES_KEY_SIZE = 32  # bytes, AES-256
GCM_NONCE_SIZE = 12  # bytes, 96-bit nonce recommended for GCM
GCM_TAG_SIZE = 16

# Token defaults
JWT_ALGORITHM = "HS256"
TOKEN_TTL_SECONDS = 24 * 60 * 60
MIN_JWT_SECRET_LENGTH = 32
DEV_JWT_SECRET = "dev-only-insecure-jwt-secret-change-me-0123456789"

BCRYPT_ROUNDS = 12
