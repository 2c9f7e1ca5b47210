"""Signing key providers for onboarding tokens.

The key is read once when the application is created and handed to the
token signer and verifier constructors. Nothing mutates it afterwards;
rotating the key means restarting the process with a new value.
"""

from typing import Protocol

from onboard_api.core.config import Settings


class SigningKeyProvider(Protocol):
    """Source of the shared HMAC key for onboarding tokens."""

    def signing_key(self) -> bytes:
        """Return the raw key bytes."""
        ...


class SettingsSigningKeyProvider:
    """Reads the key from ``ONBOARDING_TOKEN_SECRET``.

    Fails closed: an unset secret raises instead of signing with an empty key.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def signing_key(self) -> bytes:
        secret = self._settings.onboarding_token_secret.get_secret_value()
        if not secret:
            raise RuntimeError(
                "ONBOARDING_TOKEN_SECRET environment variable is required. "
                'Generate a random value: python -c "import secrets; '
                'print(secrets.token_hex(32))"'
            )
        return secret.encode("utf-8")


class StaticSigningKeyProvider:
    """Fixed key, for scripts and tests that build their own app."""

    def __init__(self, key: bytes) -> None:
        if not key:
            raise ValueError("Signing key must not be empty")
        self._key = key

    def signing_key(self) -> bytes:
        return self._key
