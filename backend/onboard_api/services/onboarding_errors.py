"""Onboarding token error taxonomy.

Error Handling Strategy:
    - Verification errors: raised by TokenVerifier before any database access
    - Redemption errors: raised by RedemptionStore after the transaction
      has been rolled back
    - Transport errors: client side only, never raised by the server

The router maps each class to exactly one HTTP status; nothing here knows
about HTTP.
"""


class OnboardingTokenError(Exception):
    """Base class for onboarding token failures.

    Attributes:
        code: Machine-readable code, also recorded in audit events.
        message: Internal description (not shown to link recipients).
    """

    code = "ONBOARDING_TOKEN_ERROR"
    default_message = "Onboarding token rejected"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# =============================================================================
# Verification (stateless)
# =============================================================================


class TokenVerificationError(OnboardingTokenError):
    code = "TOKEN_VERIFICATION_FAILED"
    default_message = "Token failed verification"


class MalformedTokenError(TokenVerificationError):
    code = "MALFORMED_TOKEN"
    default_message = "Token is not structurally valid"


class InvalidSignatureError(TokenVerificationError):
    code = "INVALID_SIGNATURE"
    default_message = "Token signature does not match its claims"


class ExpiredTokenError(TokenVerificationError):
    code = "TOKEN_EXPIRED"
    default_message = "Token has expired"


class ScopeMismatchError(TokenVerificationError):
    code = "SCOPE_MISMATCH"
    default_message = "Token was issued for a different action"


# =============================================================================
# Redemption (stateful)
# =============================================================================


class RedemptionError(OnboardingTokenError):
    code = "REDEMPTION_FAILED"
    default_message = "Token could not be redeemed"


class TokenNotFoundError(RedemptionError):
    code = "TOKEN_NOT_FOUND"
    default_message = "No token record matches the claims"


class TokenAlreadyConsumedError(RedemptionError):
    code = "TOKEN_ALREADY_USED"
    default_message = "Token has already been used"


class TokenExpiredError(RedemptionError):
    code = "TOKEN_EXPIRED"
    default_message = "Token record has expired"


class SubjectNotFoundError(RedemptionError):
    code = "SUBJECT_NOT_FOUND"
    default_message = "Practice or its settings no longer exist"


# =============================================================================
# Issuance / client
# =============================================================================


class TokenIssueError(ValueError):
    """Signer was asked for a token it must not produce."""


class TransportError(OnboardingTokenError):
    """Request to the onboarding API did not complete.

    Attributes:
        kind: ``"timeout"`` or ``"network"``.
    """

    code = "TRANSPORT_ERROR"
    default_message = "Request to the onboarding API failed"

    def __init__(self, kind: str, message: str | None = None) -> None:
        self.kind = kind
        super().__init__(message)
