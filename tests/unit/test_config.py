"""Tests for configuration validation."""

import pytest

from src.core.config import Settings


def test_require_credential_with_valid_value() -> None:
    """Test require_credential returns value when credential is set."""
    settings = Settings(logfire_token="lf-token")

    assert settings.require_credential("logfire_token", "Logfire") == "lf-token"


def test_require_credential_with_none_raises_error() -> None:
    """Test require_credential raises ValueError when credential is None."""
    settings = Settings(logfire_token=None)

    with pytest.raises(ValueError, match="Logfire credential not configured"):
        settings.require_credential("logfire_token", "Logfire")


def test_require_credential_error_message_includes_field_name() -> None:
    """Test error message includes the environment variable name."""
    settings = Settings(secret_key="")

    with pytest.raises(ValueError, match="SECRET_KEY"):
        settings.require_credential("secret_key", "Session signing")


def test_is_production() -> None:
    assert Settings(environment="production").is_production
    assert not Settings(environment="development").is_production


def test_settings_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REALTIME_QUEUE_SIZE", "7")
    monkeypatch.setenv("SQLITE_DB_PATH", "/tmp/other.db")

    settings = Settings()

    assert settings.realtime_queue_size == 7
    assert settings.sqlite_db_path == "/tmp/other.db"
