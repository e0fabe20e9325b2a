"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from replfailover.core.config import Settings


class TestSettings:
    """Settings tests."""

    def test_defaults(self):
        """Test default transport and polling settings."""
        settings = Settings(addresses=["https://a:8200", "https://b:8200"])

        assert settings.request_timeout_s == 3.0
        assert settings.poll_max_attempts is None
        assert settings.assume_yes is False
        assert settings.mode == "dr"

    def test_addresses_normalized(self):
        """Test trailing slashes and whitespace are stripped."""
        settings = Settings(addresses=[" https://a:8200/ ", "https://b:8200"])

        assert settings.addresses == ["https://a:8200", "https://b:8200"]

    def test_requires_two_addresses(self):
        """Test a single address is rejected."""
        with pytest.raises(ValidationError):
            Settings(addresses=["https://a:8200"])

    def test_rejects_duplicate_addresses(self):
        """Test the same address twice is rejected."""
        with pytest.raises(ValidationError):
            Settings(addresses=["https://a:8200", "https://a:8200/"])

    def test_rejects_non_http_address(self):
        """Test addresses must be http(s) URIs."""
        with pytest.raises(ValidationError):
            Settings(addresses=["a:8200", "https://b:8200"])

    def test_rejects_unknown_mode(self):
        """Test only dr and performance modes are accepted."""
        with pytest.raises(ValidationError):
            Settings(addresses=["https://a:8200", "https://b:8200"], mode="sync")

    def test_poll_bound_must_be_positive(self):
        """Test a zero attempt bound is rejected."""
        with pytest.raises(ValidationError):
            Settings(addresses=["https://a:8200", "https://b:8200"], poll_max_attempts=0)

    def test_token_not_in_repr(self):
        """Test the operation token is kept out of the settings repr."""
        settings = Settings(
            addresses=["https://a:8200", "https://b:8200"],
            operation_token="s.secret",
        )

        assert "s.secret" not in repr(settings)

    def test_configuration_surface(self):
        """Test only the controller's own settings are exposed."""
        assert set(Settings.model_fields) == {
            "log_level",
            "addresses",
            "mode",
            "operation_token",
            "token_kv_mount",
            "tls_skip_verify",
            "request_timeout_s",
            "poll_max_attempts",
            "assume_yes",
        }
