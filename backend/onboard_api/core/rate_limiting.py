"""Rate limiting configuration using slowapi.

Security: Slows down brute-force guessing of onboarding links by limiting
how often one client may hit the token endpoints. Issuance is not limited
here; whatever decides to issue a link owns that.

Usage in routers:
    from onboard_api.core.rate_limiting import limiter

    @router.get("/{token}")
    @limiter.limit(settings.rate_limit_onboard)
    async def get_onboarding_prefill(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from onboard_api.core.config import settings
from onboard_api.core.responses import ErrorResponse

# Global limiter instance keyed on client IP.
# Configured with in-memory storage (suitable for single-instance deployment)
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Security: Returns 429 Too Many Requests with standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Parse retry-after from exception detail (e.g., "10 per 1 minute")
    # Fallback to 60 seconds if parsing fails
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content=ErrorResponse(
            code="RATE_LIMITED",
            error=f"Rate limit exceeded: {exc.detail}",
        ).model_dump(),
        headers={"Retry-After": retry_after},
    )
