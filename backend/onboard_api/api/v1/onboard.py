"""Onboarding magic link endpoints.

Endpoints:
- GET /onboard/{token}: check the link and return prefill data (or
  redirect a browser to the onboarding page). Does not consume the token.
- POST /onboard/{token}: submit the onboarding form. Consumes the token
  and saves the form in one transaction.

Status codes:
    401 malformed, bad signature, wrong scope, unknown token
    410 expired
    409 already used
    404 practice or settings missing

Every rejection is recorded as an onboarding event before the error is
raised. Events carry at most a token prefix.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from onboard_api.api.deps import DbSession, RedemptionStoreDep, TokenVerifierDep
from onboard_api.core.config import settings
from onboard_api.core.errors import (
    APIError,
    ConflictError,
    GoneError,
    NotFoundError,
    UnauthorizedError,
)
from onboard_api.core.rate_limiting import limiter
from onboard_api.models.practice import Practice, PracticeSettings
from onboard_api.repositories.onboarding_event_repository import (
    EVENT_COMPLETED,
    EVENT_ERROR,
    EVENT_STARTED,
    EVENT_TOKEN_EXPIRED,
    EVENT_TOKEN_INVALID,
    EVENT_TOKEN_REUSED,
    OnboardingEventRepository,
    token_prefix,
)
from onboard_api.repositories.practice_repository import PracticeRepository
from onboard_api.schemas.onboarding import OnboardFormData, OnboardPrefillResponse
from onboard_api.services.onboarding_errors import (
    ExpiredTokenError,
    InvalidSignatureError,
    MalformedTokenError,
    OnboardingTokenError,
    RedemptionError,
    ScopeMismatchError,
    SubjectNotFoundError,
    TokenAlreadyConsumedError,
    TokenExpiredError,
    TokenNotFoundError,
    TokenVerificationError,
)
from onboard_api.services.onboarding_issuance import onboarding_url
from onboard_api.services.token_claims import OnboardingScope

logger = structlog.get_logger()

router = APIRouter()


# ===================================================================
# Error translation
# ===================================================================


def _classify(exc: OnboardingTokenError) -> tuple[str, APIError]:
    """Map a token error to its audit event type and HTTP error."""
    match exc:
        case (
            MalformedTokenError()
            | InvalidSignatureError()
            | ScopeMismatchError()
            | TokenNotFoundError()
        ):
            return EVENT_TOKEN_INVALID, UnauthorizedError()
        case ExpiredTokenError() | TokenExpiredError():
            return EVENT_TOKEN_EXPIRED, GoneError("TOKEN_EXPIRED", "Token expired")
        case TokenAlreadyConsumedError():
            return EVENT_TOKEN_REUSED, ConflictError(
                "TOKEN_ALREADY_USED", "Token already used"
            )
        case SubjectNotFoundError():
            return EVENT_ERROR, NotFoundError("Practice")
        case _:
            return EVENT_ERROR, UnauthorizedError()


async def _reject(
    db: AsyncSession,
    exc: OnboardingTokenError,
    *,
    token: str,
    subject_id: str | None = None,
    token_id: str | None = None,
) -> APIError:
    """Record a rejected token and return the error to raise."""
    event_type, api_error = _classify(exc)

    payload: dict[str, Any] = {"token": token_prefix(token), "reason": exc.code}
    if token_id is not None:
        payload["token_id"] = token_id

    await OnboardingEventRepository.create(
        db,
        event_type=event_type,
        subject_id=subject_id,
        payload=payload,
    )
    await db.commit()

    logger.info(
        "onboarding_token_rejected",
        reason=exc.code,
        status_code=api_error.status_code,
        token_id=token_id,
    )
    return api_error


def _wants_json(request: Request) -> bool:
    return "application/json" in request.headers.get("accept", "")


# ===================================================================
# GET /onboard/{token}
# ===================================================================


@router.get("/{token}", response_model=None)
@limiter.limit(settings.rate_limit_onboard)
async def get_onboarding_prefill(
    request: Request,
    token: str,
    db: DbSession,
    verifier: TokenVerifierDep,
    store: RedemptionStoreDep,
) -> OnboardPrefillResponse | Response:
    """Check an onboarding link without consuming it.

    JSON clients get the prefill snapshot. Browsers following the emailed
    link are redirected to the frontend onboarding page with
    ``Referrer-Policy: no-referrer`` so the token does not leak onwards.
    """
    try:
        claims = verifier.verify(token, OnboardingScope.ONBOARDING)
    except TokenVerificationError as exc:
        raise await _reject(db, exc, token=token) from exc

    try:
        snapshot = await store.inspect(claims.token_id, claims.subject_id)
    except RedemptionError as exc:
        raise await _reject(
            db,
            exc,
            token=token,
            subject_id=claims.subject_id,
            token_id=claims.token_id,
        ) from exc

    await OnboardingEventRepository.create(
        db,
        event_type=EVENT_STARTED,
        subject_id=claims.subject_id,
        payload={"token_id": claims.token_id},
    )
    await db.commit()

    redirect_url = onboarding_url(token)
    if _wants_json(request):
        return OnboardPrefillResponse.from_snapshot(snapshot, redirect_url)

    return RedirectResponse(
        redirect_url,
        status_code=302,
        headers={"Referrer-Policy": "no-referrer"},
    )


# ===================================================================
# POST /onboard/{token}
# ===================================================================


@router.post("/{token}")
@limiter.limit(settings.rate_limit_onboard)
async def complete_onboarding(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    token: str,
    body: OnboardFormData,
    db: DbSession,
    verifier: TokenVerifierDep,
    store: RedemptionStoreDep,
) -> OnboardPrefillResponse:
    """Consume an onboarding link and save the submitted form.

    The token is marked used and the practice/settings are updated in one
    transaction: either both happen or neither does.
    """
    try:
        claims = verifier.verify(token, OnboardingScope.ONBOARDING)
    except TokenVerificationError as exc:
        raise await _reject(db, exc, token=token) from exc

    async def apply_form(
        session: AsyncSession,
        practice: Practice,
        practice_settings: PracticeSettings,
    ) -> None:
        await PracticeRepository.apply_onboarding_form(
            session, practice, practice_settings, body
        )

    try:
        snapshot = await store.redeem(
            claims.token_id,
            claims.subject_id,
            apply=apply_form,
        )
    except RedemptionError as exc:
        raise await _reject(
            db,
            exc,
            token=token,
            subject_id=claims.subject_id,
            token_id=claims.token_id,
        ) from exc

    await OnboardingEventRepository.create(
        db,
        event_type=EVENT_COMPLETED,
        subject_id=claims.subject_id,
        payload={"token_id": claims.token_id},
    )
    await db.commit()

    return OnboardPrefillResponse.from_snapshot(snapshot, onboarding_url(token))
