"""Tests for application configuration and signing key loading.

Covers defaults, token lifetime bounds, production security validation, the
signing key providers, log level wiring, and app creation failing closed
without a key.
"""

import logging

import pytest
import structlog
from pydantic import SecretStr, ValidationError

from onboard_api.core.config import (
    _INSECURE_DEFAULT_PASSWORD,
    MIN_TOKEN_SECRET_LENGTH,
    Settings,
)
from onboard_api.core.secrets import (
    SettingsSigningKeyProvider,
    StaticSigningKeyProvider,
)

# Reusable test constants
_SECURE_DB_PASSWORD = "my-secure-production-password-123!"
_TOKEN_SECRET = "s" * 64
_PRODUCTION = "production"


def _settings(**overrides) -> Settings:
    """Settings that ignore any local .env file."""
    return Settings(_env_file=None, **overrides)


class TestDefaults:
    """Tests for default values."""

    def test_token_lifetimes(self):
        s = _settings()

        assert s.onboarding_token_ttl_seconds == 7 * 24 * 60 * 60
        assert s.onboarding_token_max_ttl_seconds == 30 * 24 * 60 * 60

    def test_client_timeouts(self):
        s = _settings()

        assert s.onboard_fetch_timeout_seconds == 2.0
        assert s.onboard_submit_timeout_seconds == 15.0

    def test_database_url_uses_asyncpg(self):
        s = _settings(database_user="u", database_password="p", database_name="db")

        assert s.database_url.startswith("postgresql+asyncpg://u:p@")
        assert s.database_url.endswith("/db")

    def test_secret_is_not_shown_in_repr(self):
        s = _settings(onboarding_token_secret=_TOKEN_SECRET)

        assert _TOKEN_SECRET not in repr(s)


class TestTokenLifetimeValidation:
    """Tests for TTL bounds."""

    def test_rejects_ttl_above_maximum(self):
        with pytest.raises(ValidationError, match="cannot exceed"):
            _settings(
                onboarding_token_ttl_seconds=3601,
                onboarding_token_max_ttl_seconds=3600,
            )

    @pytest.mark.parametrize("ttl", [0, -60])
    def test_rejects_non_positive_ttl(self, ttl: int):
        with pytest.raises(ValidationError, match="must be positive"):
            _settings(onboarding_token_ttl_seconds=ttl)

    def test_rejects_non_positive_client_timeout(self):
        with pytest.raises(ValidationError, match="timeouts must be positive"):
            _settings(onboard_fetch_timeout_seconds=0)

    def test_rejects_wildcard_origin(self):
        with pytest.raises(ValidationError, match="wildcard"):
            _settings(allowed_origins=["*"])

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValidationError, match="LOG_LEVEL"):
            _settings(log_level="chatty")

    def test_log_level_is_case_insensitive(self):
        assert _settings(log_level="debug").log_level == "debug"


class TestProductionSecurityValidation:
    """Tests for production security requirements."""

    def test_allows_secure_production_config(self):
        s = _settings(
            environment=_PRODUCTION,
            database_password=_SECURE_DB_PASSWORD,
            onboarding_token_secret=_TOKEN_SECRET,
        )

        assert s.environment == _PRODUCTION

    def test_rejects_default_password_in_production(self):
        with pytest.raises(ValidationError) as exc_info:
            _settings(
                environment=_PRODUCTION,
                database_password=_INSECURE_DEFAULT_PASSWORD,
                onboarding_token_secret=_TOKEN_SECRET,
            )

        assert "Cannot use default database password in production" in str(
            exc_info.value.errors()[0]["msg"]
        )

    def test_rejects_short_token_secret_in_production(self):
        with pytest.raises(ValidationError, match="ONBOARDING_TOKEN_SECRET"):
            _settings(
                environment=_PRODUCTION,
                database_password=_SECURE_DB_PASSWORD,
                onboarding_token_secret="s" * (MIN_TOKEN_SECRET_LENGTH - 1),
            )

    def test_allows_short_token_secret_in_development(self):
        s = _settings(environment="development", onboarding_token_secret="short")

        assert s.onboarding_token_secret.get_secret_value() == "short"


# =============================================================================
# Signing key providers
# =============================================================================


class TestSigningKeyProviders:
    """Tests for where the signing key comes from."""

    def test_settings_provider_returns_secret_bytes(self):
        provider = SettingsSigningKeyProvider(
            _settings(onboarding_token_secret=_TOKEN_SECRET)
        )

        assert provider.signing_key() == _TOKEN_SECRET.encode("utf-8")

    def test_settings_provider_fails_closed_without_secret(self):
        s = _settings()
        s.onboarding_token_secret = SecretStr("")

        with pytest.raises(RuntimeError, match="ONBOARDING_TOKEN_SECRET"):
            SettingsSigningKeyProvider(s).signing_key()

    def test_static_provider(self):
        assert StaticSigningKeyProvider(b"key").signing_key() == b"key"

    def test_static_provider_rejects_empty_key(self):
        with pytest.raises(ValueError, match="must not be empty"):
            StaticSigningKeyProvider(b"")

    def test_create_app_fails_closed_without_secret(self):
        """No key means no app, rather than tokens signed with an empty key."""
        from onboard_api.main import create_app

        s = _settings()
        s.onboarding_token_secret = SecretStr("")

        with pytest.raises(RuntimeError):
            create_app(signing_key_provider=SettingsSigningKeyProvider(s))


class TestConfigureLogging:
    """Tests for applying LOG_LEVEL."""

    def test_sets_stdlib_and_structlog_level(self):
        from onboard_api.main import configure_logging

        package_logger = logging.getLogger("onboard_api")
        try:
            configure_logging("warning")

            assert package_logger.level == logging.WARNING
            assert structlog.get_config()[
                "wrapper_class"
            ] is structlog.make_filtering_bound_logger(logging.WARNING)
        finally:
            structlog.reset_defaults()
            package_logger.setLevel(logging.NOTSET)
