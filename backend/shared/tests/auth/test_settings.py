"""Tests for AuthSettings configuration."""

import pytest
from pydantic import ValidationError

from shared.auth.settings import AuthSettings


class TestAuthSettings:
    def test_reads_identity_url_from_env(self, monkeypatch):
        monkeypatch.setenv("AUTH_IDENTITY_URL", "https://id.example.com")
        settings = AuthSettings()
        assert settings.identity_url == "https://id.example.com"

    def test_missing_identity_url_raises(self, monkeypatch):
        monkeypatch.delenv("AUTH_IDENTITY_URL", raising=False)
        with pytest.raises(ValidationError, match="identity_url"):
            AuthSettings()

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AUTH_IDENTITY_API_KEY", raising=False)
        settings = AuthSettings(identity_url="https://id.example.com")
        assert settings.identity_api_key == ""
        assert settings.user_path == "/auth/v1/user"
        assert settings.request_timeout_seconds == 5.0

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError, match="request_timeout_seconds"):
            AuthSettings(identity_url="https://id.example.com", request_timeout_seconds=0)
