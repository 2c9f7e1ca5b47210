"""Onboarding token signer.

Produces ``<claims_b64>.<digest_b64>`` tokens (see token_claims). Pure: no
I/O and no persistence. The caller stores the token record (see
onboarding_issuance) and hands the token to the mailer.
"""

import uuid
from datetime import timedelta

from onboard_api.core.clock import Clock, utc_now
from onboard_api.services.onboarding_errors import TokenIssueError
from onboard_api.services.token_claims import (
    IssuedToken,
    OnboardingScope,
    TokenClaims,
    b64url_encode,
    compute_digest,
)


class TokenSigner:
    """Signs onboarding tokens with a fixed HMAC key.

    Immutable after construction, so one instance is shared by every request.
    """

    def __init__(
        self,
        secret: bytes,
        *,
        max_ttl_seconds: int,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the signer.

        Args:
            secret: HMAC-SHA256 key. Must not be empty.
            max_ttl_seconds: Largest TTL this signer will issue.
            clock: Source of the current time (injectable for tests).

        Raises:
            ValueError: If the secret is empty or the max TTL is not positive.
        """
        if not secret:
            raise ValueError("Signing secret must not be empty")
        if max_ttl_seconds <= 0:
            raise ValueError("max_ttl_seconds must be positive")
        self._secret = secret
        self._max_ttl_seconds = max_ttl_seconds
        self._clock = clock

    def sign(
        self,
        subject_id: str,
        scope: OnboardingScope | str,
        ttl_seconds: int,
    ) -> str:
        """Sign a new token and return its string form."""
        return self.issue(subject_id, scope, ttl_seconds).token

    def issue(
        self,
        subject_id: str,
        scope: OnboardingScope | str,
        ttl_seconds: int,
    ) -> IssuedToken:
        """Sign a new token and return it with its claims.

        Args:
            subject_id: Practice id the token is bound to.
            scope: Action the token authorizes.
            ttl_seconds: Lifetime in whole seconds.

        Returns:
            IssuedToken with the token string and the claims to persist.

        Raises:
            TokenIssueError: If any input is out of range.
        """
        if not isinstance(subject_id, str) or not subject_id.strip():
            raise TokenIssueError("subject_id must be a non-empty string")

        try:
            scope_value = OnboardingScope(scope).value
        except ValueError as exc:
            raise TokenIssueError(f"Unknown scope: {scope!r}") from exc

        if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int):
            raise TokenIssueError("ttl_seconds must be an integer")
        if ttl_seconds <= 0:
            raise TokenIssueError("ttl_seconds must be positive")
        if ttl_seconds > self._max_ttl_seconds:
            raise TokenIssueError(
                f"ttl_seconds exceeds maximum of {self._max_ttl_seconds}"
            )

        issued_at = self._clock().replace(microsecond=0)
        claims = TokenClaims(
            token_id=str(uuid.uuid4()),
            subject_id=subject_id,
            scope=scope_value,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=ttl_seconds),
        )

        claims_segment = b64url_encode(claims.to_json())
        digest_segment = compute_digest(self._secret, claims_segment)
        return IssuedToken(token=f"{claims_segment}.{digest_segment}", claims=claims)
