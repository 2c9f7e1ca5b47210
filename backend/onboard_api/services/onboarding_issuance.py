"""Issue onboarding links.

Signs a token and stores its record in the caller's session. The caller
commits, then hands ``url`` to whatever delivers the message.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from onboard_api.core.config import settings
from onboard_api.repositories.onboarding_token_repository import (
    OnboardingTokenRepository,
)
from onboard_api.services.token_claims import OnboardingScope
from onboard_api.services.token_signer import TokenSigner

logger = structlog.get_logger()


@dataclass(frozen=True)
class IssuedOnboardingLink:
    """Result of issuing an onboarding link.

    Attributes:
        token: Signed token string.
        url: Frontend onboarding URL embedding the token.
        token_id: Id of the stored record.
        expires_at: When the link stops working.
    """

    token: str
    url: str
    token_id: str
    expires_at: datetime


def onboarding_url(token: str, frontend_url: str | None = None) -> str:
    """Build the frontend URL a token is delivered as."""
    base = (frontend_url or settings.frontend_url).rstrip("/")
    return f"{base}/onboard/{token}"


async def issue_onboarding_link(
    db: AsyncSession,
    signer: TokenSigner,
    *,
    practice_id: str,
    scope: OnboardingScope = OnboardingScope.ONBOARDING,
    ttl_seconds: int | None = None,
) -> IssuedOnboardingLink:
    """Sign a token for a practice and store its record.

    Args:
        db: Async database session. Not committed here.
        signer: Token signer built from the application secret.
        practice_id: Practice the link is for.
        scope: Action the link authorizes.
        ttl_seconds: Lifetime; defaults to ONBOARDING_TOKEN_TTL_SECONDS.

    Returns:
        IssuedOnboardingLink for the new token.

    Raises:
        TokenIssueError: If the signer rejects the inputs.
    """
    ttl = settings.onboarding_token_ttl_seconds if ttl_seconds is None else ttl_seconds
    issued = signer.issue(practice_id, scope, ttl)
    await OnboardingTokenRepository.create(db, claims=issued.claims)

    logger.info(
        "onboarding_link_issued",
        token_id=issued.claims.token_id,
        subject_id=issued.claims.subject_id,
        scope=issued.claims.scope,
        expires_at=issued.claims.expires_at.isoformat(),
    )

    return IssuedOnboardingLink(
        token=issued.token,
        url=onboarding_url(issued.token),
        token_id=issued.claims.token_id,
        expires_at=issued.claims.expires_at,
    )
