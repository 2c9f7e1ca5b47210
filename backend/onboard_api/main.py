"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Log level from settings for stdlib logging and structlog
- Token signer/verifier built once from the signing key
- Exception handlers for API errors
- API v1 router mounting
- Health check endpoint
"""

import logging

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from onboard_api.api.v1.router import router as v1_router
from onboard_api.core.config import settings
from onboard_api.core.errors import APIError
from onboard_api.core.rate_limiting import limiter, rate_limit_exceeded_handler
from onboard_api.core.responses import ErrorResponse
from onboard_api.core.secrets import SettingsSigningKeyProvider, SigningKeyProvider
from onboard_api.services.token_signer import TokenSigner
from onboard_api.services.token_verifier import TokenVerifier

logger = structlog.get_logger()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses.

    Headers added:
    - X-Frame-Options: Prevents clickjacking attacks
    - X-Content-Type-Options: Prevents MIME sniffing
    - Referrer-Policy: Controls referrer information leakage (endpoints may
      set a stricter value, which is kept)
    - Cache-Control: Token responses must never be cached
    - Content-Security-Policy: Restricts resource loading (API returns no HTML)
    - Strict-Transport-Security: Forces HTTPS (production only)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers.setdefault(
            "Referrer-Policy", "strict-origin-when-cross-origin"
        )

        # Onboarding responses carry tokens and practice data
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, max-age=0"

        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        # HSTS only in production (assumes HTTPS via reverse proxy)
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def configure_logging(log_level: str) -> None:
    """Apply LOG_LEVEL to the package's stdlib loggers and to structlog."""
    level = logging.getLevelNamesMapping()[log_level.upper()]
    logging.getLogger("onboard_api").setLevel(level)
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors.

    Args:
        request: The incoming request.
        exc: The APIError that was raised.

    Returns:
        JSONResponse with error envelope and appropriate status code.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.message,
            code=exc.code,
            details=exc.details,
        ).model_dump(),
    )


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors from FastAPI.

    Converts FastAPI's 422 validation errors to a 400 in the standard
    envelope, with one detail entry per failing field.
    """
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error="Request validation failed",
            code="VALIDATION_ERROR",
            details=[
                {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
                for e in exc.errors()
            ],
        ).model_dump(),
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    WHY: Never expose internal error details to clients. Log for debugging.
    """
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="An unexpected error occurred",
            code="INTERNAL_ERROR",
        ).model_dump(),
    )


def create_app(*, signing_key_provider: SigningKeyProvider | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The signing key is read exactly once, here. Rotating it means creating
    a new app (restarting the process).

    Args:
        signing_key_provider: Key source. Defaults to ONBOARDING_TOKEN_SECRET.

    Returns:
        Configured FastAPI application instance.

    Raises:
        RuntimeError: If the default provider finds no secret configured.
    """
    configure_logging(settings.log_level)

    provider = signing_key_provider or SettingsSigningKeyProvider(settings)
    signing_key = provider.signing_key()

    app = FastAPI(
        title="Practice Onboarding API",
        version="1.0.0",
        description="Magic link onboarding for practices",
    )

    app.state.token_signer = TokenSigner(
        signing_key,
        max_ttl_seconds=settings.onboarding_token_max_ttl_seconds,
    )
    app.state.token_verifier = TokenVerifier(signing_key)

    # Middleware order: Starlette uses LIFO, so the LAST added runs FIRST.
    # CORS must run first to handle preflight requests, so add it last.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.state.limiter = limiter

    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health")
    def health_check() -> dict:
        """Health check endpoint for monitoring.

        Returns:
            {"status": "healthy"} if service is running.
        """
        return {"status": "healthy"}

    logger.info("app_created", environment=settings.environment)
    return app


# Used by uvicorn: uvicorn onboard_api.main:app
app = create_app()
