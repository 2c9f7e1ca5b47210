"""Repository for OnboardingToken operations.

Records are inserted once at issuance and updated once at redemption.
Nothing here rewrites ``expires_at`` or clears ``consumed_at``, and nothing
deletes a record.
"""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from onboard_api.models.onboarding_token import OnboardingToken
from onboard_api.services.token_claims import TokenClaims


class OnboardingTokenRepository:
    """Stateless repository for OnboardingToken table operations.

    All methods are static; the session is passed in.
    """

    @staticmethod
    async def create(db: AsyncSession, *, claims: TokenClaims) -> OnboardingToken:
        """Store the record for a freshly signed token.

        Args:
            db: Async database session.
            claims: Claims of the signed token. ``token_id`` becomes the
                primary key.

        Returns:
            Created OnboardingToken.
        """
        record = OnboardingToken(
            id=claims.token_id,
            subject_id=claims.subject_id,
            scope=claims.scope,
            created_at=claims.issued_at,
            expires_at=claims.expires_at,
        )
        db.add(record)
        await db.flush()
        return record

    @staticmethod
    async def get(db: AsyncSession, token_id: str) -> OnboardingToken | None:
        """Look up a record by token id.

        Args:
            db: Async database session.
            token_id: The claims' ``jti``.

        Returns:
            OnboardingToken if found, None otherwise.
        """
        stmt = (
            select(OnboardingToken)
            .where(OnboardingToken.id == token_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_consumed(
        db: AsyncSession,
        *,
        token_id: str,
        subject_id: str,
        now: datetime,
    ) -> bool:
        """Consume a token if, and only if, it is still redeemable.

        Check and set happen in one conditional UPDATE, so two concurrent
        callers can never both see rowcount 1.

        Args:
            db: Async database session.
            token_id: The claims' ``jti``.
            subject_id: The claims' ``sub``. Must match the record.
            now: Consumption time, also the expiry cut-off.

        Returns:
            True if this call consumed the token, False otherwise.
        """
        stmt = (
            update(OnboardingToken)
            .where(
                OnboardingToken.id == token_id,
                OnboardingToken.subject_id == subject_id,
                OnboardingToken.consumed_at.is_(None),
                OnboardingToken.expires_at > now,
            )
            .values(consumed_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1
