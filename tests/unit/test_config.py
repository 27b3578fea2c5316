"""
Tests for the configuration layer.
"""

import pydantic
import pytest

from consent_exchange_core.config import (
    AppConfig,
    DatabaseConfig,
    LoggingConfig,
    SecurityConfig,
    get_config,
    reset_config,
    set_config,
)
from consent_exchange_core.constants import DEV_JWT_SECRET


class TestDatabaseConfig:
    def test_env_connection_string(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://app:pw@db:5432/consent")

        config = DatabaseConfig()

        assert config.connection_string == "postgresql+psycopg://app:pw@db:5432/consent"
        assert config.is_sqlite is False

    def test_repr_masks_credentials(self):
        config = DatabaseConfig(connection_string="postgresql+psycopg://app:secret@db:5432/consent")

        assert "secret" not in repr(config)
        assert "db:5432/consent" in repr(config)

    def test_sqlite_detection(self):
        assert DatabaseConfig(connection_string="sqlite:///:memory:").is_sqlite


class TestLoggingConfig:
    def test_level_is_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self):
        with pytest.raises(pydantic.ValidationError):
            LoggingConfig(level="chatty")


class TestSecurityConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET_KEY", raising=False)

        security = SecurityConfig()

        assert security.jwt_secret == DEV_JWT_SECRET
        assert security.rsa_key_size == 2048
        assert security.aes_key_size == 32
        assert security.jwt_algorithm == "HS256"

    def test_short_jwt_secret(self):
        with pytest.raises(pydantic.ValidationError):
            SecurityConfig(jwt_secret="too-short")

    def test_jwt_secret_from_env(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET_KEY", "x" * 40)

        assert SecurityConfig().jwt_secret == "x" * 40

    @pytest.mark.parametrize("size", [8, 20, 64])
    def test_invalid_aes_key_size(self, size):
        with pytest.raises(pydantic.ValidationError):
            SecurityConfig(aes_key_size=size)


class TestAppConfig:
    def test_feature_flag_from_env(self, monkeypatch):
        monkeypatch.setenv("ENABLE_LOGS_QUEUE", "true")

        assert AppConfig.from_env().features.enable_logs_queue is True

    def test_audit_logging_enabled_by_default(self):
        assert AppConfig().features.enable_audit_logging is True

    def test_global_config_lifecycle(self):
        custom = AppConfig(custom={"region": "eu"})

        set_config(custom)
        assert get_config() is custom
        assert get_config().get_custom("region") == "eu"
        assert get_config().get_custom("missing", "fallback") == "fallback"

        reset_config()
        assert get_config() is not custom
