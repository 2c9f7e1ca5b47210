"""Application configuration loaded from environment variables.

Settings for the database, the onboarding token lifecycle, the onboard HTTP
client and rate limiting. Uses pydantic-settings for validation and .env file
support.
"""

import logging

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "onboarding_dev_password"  # nosec B105

# Minimum length for ONBOARDING_TOKEN_SECRET in production (256 bits = 32 bytes)
MIN_TOKEN_SECRET_LENGTH = 32

_SECONDS_PER_DAY = 24 * 60 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "practice_onboarding"
    database_user: str = "onboarding_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # CORS (Security)
    # Default allows localhost:3000 for the frontend dev server
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Frontend URL (onboarding page the magic link lands on)
    frontend_url: str = "http://localhost:3000"

    # Onboarding tokens
    # The secret is read once at app creation; rotate by restarting with a new value.
    onboarding_token_secret: SecretStr = SecretStr("")
    onboarding_token_ttl_seconds: int = 7 * _SECONDS_PER_DAY
    onboarding_token_max_ttl_seconds: int = 30 * _SECONDS_PER_DAY

    # Onboard client (consumer side of /onboard/{token})
    onboard_api_base_url: str = "http://localhost:8000/api/v1"
    onboard_fetch_timeout_seconds: float = 2.0
    onboard_submit_timeout_seconds: float = 15.0

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_onboard: str = "10/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate token lifetime bounds and production security requirements.

        Checks:
        - Default token TTL must be positive and within the configured maximum
        - Client timeouts must be positive
        - LOG_LEVEL must name a logging level
        - CORS must not use wildcard origin
        - Database password must not be the default in production
        - ONBOARDING_TOKEN_SECRET must be >= 32 chars in production
        """
        if self.onboarding_token_ttl_seconds <= 0:
            msg = (
                "ONBOARDING_TOKEN_TTL_SECONDS must be positive. "
                f"Got: {self.onboarding_token_ttl_seconds}"
            )
            raise ValueError(msg)
        if self.onboarding_token_ttl_seconds > self.onboarding_token_max_ttl_seconds:
            msg = (
                "ONBOARDING_TOKEN_TTL_SECONDS cannot exceed "
                "ONBOARDING_TOKEN_MAX_TTL_SECONDS "
                f"({self.onboarding_token_ttl_seconds} > "
                f"{self.onboarding_token_max_ttl_seconds})"
            )
            raise ValueError(msg)

        if (
            self.onboard_fetch_timeout_seconds <= 0
            or self.onboard_submit_timeout_seconds <= 0
        ):
            msg = "Onboard client timeouts must be positive."
            raise ValueError(msg)

        if self.log_level.upper() not in logging.getLevelNamesMapping():
            msg = f"LOG_LEVEL is not a logging level name. Got: {self.log_level}"
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "Wildcard origins are incompatible with credentialed CORS."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.onboarding_token_secret.get_secret_value()
            if len(secret_value) < MIN_TOKEN_SECRET_LENGTH:
                msg = (
                    f"ONBOARDING_TOKEN_SECRET must be at least "
                    f"{MIN_TOKEN_SECRET_LENGTH} characters in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)

        return self


settings = Settings()
