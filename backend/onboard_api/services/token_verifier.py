"""Onboarding token verifier.

Stateless checks only: structure, signature, expiry, scope. Whether the
token was already used is the redemption store's job.

Check order matters. The signature is checked before the claims are
trusted, so a tampered token is reported as InvalidSignatureError even when
its claims would also be expired or mis-scoped.
"""

import hmac
import json

from onboard_api.core.clock import Clock, utc_now
from onboard_api.services.onboarding_errors import (
    ExpiredTokenError,
    InvalidSignatureError,
    MalformedTokenError,
    ScopeMismatchError,
)
from onboard_api.services.token_claims import (
    MAX_TOKEN_LENGTH,
    OnboardingScope,
    TokenClaims,
    b64url_decode,
    compute_digest,
)


def digests_match(supplied: str, expected: str) -> bool:
    """Compare two encoded digest segments in constant time.

    Lengths are compared first; ``hmac.compare_digest`` only ever sees
    equal-length inputs. A supplied digest with non-ASCII characters never
    matches.
    """
    if not supplied.isascii():
        return False
    supplied_bytes = supplied.encode("ascii")
    expected_bytes = expected.encode("ascii")
    if len(supplied_bytes) != len(expected_bytes):
        return False
    return hmac.compare_digest(supplied_bytes, expected_bytes)


class TokenVerifier:
    """Verifies onboarding tokens against a fixed HMAC key."""

    def __init__(self, secret: bytes, *, clock: Clock = utc_now) -> None:
        if not secret:
            raise ValueError("Verification secret must not be empty")
        self._secret = secret
        self._clock = clock

    def verify(
        self,
        token: str,
        expected_scope: OnboardingScope | str,
    ) -> TokenClaims:
        """Verify a token and return its claims.

        Args:
            token: Token string as received in the URL.
            expected_scope: Scope the calling endpoint requires.

        Returns:
            The decoded claims.

        Raises:
            MalformedTokenError: Token is not structurally valid.
            InvalidSignatureError: Digest does not match the claims.
            ExpiredTokenError: Token's expiry has passed.
            ScopeMismatchError: Token was issued for a different scope.
        """
        claims_segment, digest_segment = self._split(token)

        expected_digest = compute_digest(self._secret, claims_segment)
        if not digests_match(digest_segment, expected_digest):
            raise InvalidSignatureError()

        try:
            payload = json.loads(b64url_decode(claims_segment))
            claims = TokenClaims.from_payload(payload)
        except ValueError as exc:
            # JSONDecodeError and UnicodeDecodeError are ValueErrors
            raise MalformedTokenError("Token claims are not valid") from exc

        if claims.expires_at <= self._clock():
            raise ExpiredTokenError()

        scope_value = (
            expected_scope.value
            if isinstance(expected_scope, OnboardingScope)
            else expected_scope
        )
        if claims.scope != scope_value:
            raise ScopeMismatchError()

        return claims

    @staticmethod
    def _split(token: object) -> tuple[str, str]:
        if not isinstance(token, str) or not token:
            raise MalformedTokenError("Token must be a non-empty string")
        if len(token) > MAX_TOKEN_LENGTH:
            raise MalformedTokenError("Token is too long")
        if token.count(".") != 1:
            raise MalformedTokenError("Token must have exactly two segments")

        claims_segment, digest_segment = token.split(".")
        try:
            b64url_decode(claims_segment)
        except ValueError as exc:
            raise MalformedTokenError("Token claims are not base64url") from exc
        # The digest segment stays opaque; any defect in it is a mismatch
        return claims_segment, digest_segment
