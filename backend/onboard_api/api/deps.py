"""Shared dependencies for API endpoints.

WHY DEPENDENCY INJECTION:
- The verifier is built once at app creation and read from ``app.state``,
  so the signing key is never re-read per request
- Tests override ``get_db`` to point at their own database
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from onboard_api.core.database import get_db
from onboard_api.services.redemption_store import RedemptionStore
from onboard_api.services.token_verifier import TokenVerifier

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_token_verifier(request: Request) -> TokenVerifier:
    """Return the verifier created by ``create_app``."""
    verifier: TokenVerifier = request.app.state.token_verifier
    return verifier


def get_redemption_store(db: DbSession) -> RedemptionStore:
    """Redemption store bound to the request's database session."""
    return RedemptionStore(db)


TokenVerifierDep = Annotated[TokenVerifier, Depends(get_token_verifier)]
RedemptionStoreDep = Annotated[RedemptionStore, Depends(get_redemption_store)]
