"""Response envelope models.

Every onboarding response carries a ``success`` flag so the consuming page
can branch on it before looking at anything else.

WHY RESPONSE ENVELOPES:
- Consistent structure across all endpoints
- Easy to distinguish success from error responses
- Type-safe response building in endpoints
"""

from typing import Literal

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response envelope.

    Attributes:
        success: Always False.
        error: Human-readable error message (safe to show).
        code: Machine-readable error code (e.g., "TOKEN_EXPIRED").
        details: Optional list of field-level errors (for validation).
    """

    success: Literal[False] = False
    error: str
    code: str
    details: list[dict] | None = None
