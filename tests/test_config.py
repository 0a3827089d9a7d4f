"""Tests for core/config.py -- environment parsing and the JWT_SECRET policy."""

import pytest
from pydantic import ValidationError

from core.config import DEV_FALLBACK_SECRET, Settings

_SECRET = "s" * 32


def test_defaults(monkeypatch):
    monkeypatch.delenv("BCRYPT_ROUNDS", raising=False)
    settings = Settings(jwt_secret=_SECRET, _env_file=None)
    assert settings.token_ttl_seconds == 24 * 60 * 60
    assert settings.bcrypt_rounds == 10
    assert settings.rate_limit_max_attempts == 5
    assert settings.rate_limit_window_seconds == 15 * 60
    assert settings.trust_forwarded_headers is False
    assert settings.auth_service_url == "http://localhost:8080"
    assert settings.auth_verify_timeout_seconds == 3.0
    assert settings.cors_allowed_origins == ["http://localhost:3000"]


def test_missing_secret_falls_back_with_warning(caplog):
    with caplog.at_level("WARNING", logger="taskgate.config"):
        settings = Settings(jwt_secret="", _env_file=None)
    assert settings.jwt_secret == DEV_FALLBACK_SECRET
    assert "JWT_SECRET not set" in caplog.text


def test_missing_secret_is_fatal_when_required():
    with pytest.raises(ValidationError, match="JWT_SECRET is required"):
        Settings(jwt_secret="", require_jwt_secret=True, _env_file=None)


def test_short_secret_is_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(jwt_secret="too-short", _env_file=None)


def test_values_come_from_environment(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", _SECRET)
    monkeypatch.setenv("AUTH_SERVICE_URL", "http://auth.internal:9080")
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", '["https://app.example", "https://admin.example"]')
    monkeypatch.setenv("TRUST_FORWARDED_HEADERS", "true")
    settings = Settings(_env_file=None)
    assert settings.jwt_secret == _SECRET
    assert settings.auth_service_url == "http://auth.internal:9080"
    assert settings.cors_allowed_origins == ["https://app.example", "https://admin.example"]
    assert settings.trust_forwarded_headers is True
