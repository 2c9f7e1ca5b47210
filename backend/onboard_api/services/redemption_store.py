"""Exactly-once redemption of onboarding tokens.

The token signature proves a token was issued by us; this module proves it
has not been used. Consumption is a single conditional UPDATE, so mutual
exclusion lives in the database and holds across any number of server
processes. No in-process locks.

WHY THE UPDATE COMES FIRST:
- PostgreSQL: concurrent UPDATEs on the row serialize; losers re-check the
  WHERE clause against the committed row and match nothing
- SQLite: a write-first transaction waits on the busy timeout instead of
  failing on a read-to-write lock upgrade
"""

from collections.abc import Awaitable, Callable
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from onboard_api.core.clock import Clock, as_utc, utc_now
from onboard_api.models.onboarding_token import OnboardingToken
from onboard_api.models.practice import Practice, PracticeSettings
from onboard_api.repositories.onboarding_token_repository import (
    OnboardingTokenRepository,
)
from onboard_api.repositories.practice_repository import PracticeRepository
from onboard_api.schemas.onboarding import (
    PracticeRead,
    PracticeSettingsRead,
    RedemptionSnapshot,
)
from onboard_api.services.onboarding_errors import (
    SubjectNotFoundError,
    TokenAlreadyConsumedError,
    TokenExpiredError,
    TokenNotFoundError,
)

logger = structlog.get_logger()

ApplyHook = Callable[[AsyncSession, Practice, PracticeSettings], Awaitable[None]]
"""Runs inside the redemption transaction after the token is consumed."""


def classify_record(
    record: OnboardingToken | None,
    subject_id: str,
    now: datetime,
) -> None:
    """Raise the redemption error that explains why ``record`` is unusable.

    Returns normally only if the record is unconsumed and unexpired.

    Raises:
        TokenNotFoundError: No record, or it belongs to another subject.
        TokenAlreadyConsumedError: ``consumed_at`` is set.
        TokenExpiredError: ``expires_at`` has passed.
    """
    if record is None or record.subject_id != subject_id:
        raise TokenNotFoundError()
    if record.is_consumed:
        raise TokenAlreadyConsumedError()
    if as_utc(record.expires_at) <= now:
        raise TokenExpiredError()


class RedemptionStore:
    """Consumes token records and reads the snapshot they unlock.

    One instance per database session (per request).
    """

    def __init__(self, db: AsyncSession, *, clock: Clock = utc_now) -> None:
        self._db = db
        self._clock = clock

    async def redeem(
        self,
        token_id: str,
        subject_id: str,
        *,
        apply: ApplyHook | None = None,
    ) -> RedemptionSnapshot:
        """Consume a token exactly once and return the subject's snapshot.

        Args:
            token_id: Verified claims' ``jti``.
            subject_id: Verified claims' ``sub``.
            apply: Optional hook that writes to the practice/settings rows in
                the same transaction, so consumption and the write commit or
                roll back together.

        Returns:
            Snapshot of the practice and settings, after ``apply``.

        Raises:
            TokenNotFoundError: No matching record.
            TokenAlreadyConsumedError: Record was consumed earlier.
            TokenExpiredError: Record expired.
            SubjectNotFoundError: Practice or settings row is missing.
        """
        now = self._clock()
        try:
            consumed = await OnboardingTokenRepository.mark_consumed(
                self._db,
                token_id=token_id,
                subject_id=subject_id,
                now=now,
            )
            if not consumed:
                record = await OnboardingTokenRepository.get(self._db, token_id)
                classify_record(record, subject_id, now)
                # Record looked redeemable yet the UPDATE matched nothing:
                # a concurrent redemption won between the two statements.
                raise TokenAlreadyConsumedError()

            snapshot = await self._load_snapshot(subject_id, apply)
            await self._db.commit()
        except Exception as exc:
            await self._db.rollback()
            logger.info(
                "token_rejected",
                token_id=token_id,
                reason=getattr(exc, "code", type(exc).__name__),
            )
            raise

        logger.info("token_consumed", token_id=token_id, subject_id=subject_id)
        return snapshot

    async def inspect(self, token_id: str, subject_id: str) -> RedemptionSnapshot:
        """Classify a token like ``redeem`` does, without consuming it.

        Raises:
            Same errors as ``redeem``.
        """
        record = await OnboardingTokenRepository.get(self._db, token_id)
        classify_record(record, subject_id, self._clock())
        return await self._load_snapshot(subject_id, None)

    async def _load_snapshot(
        self,
        subject_id: str,
        apply: ApplyHook | None,
    ) -> RedemptionSnapshot:
        rows = await PracticeRepository.get_with_settings(self._db, subject_id)
        if rows is None:
            raise SubjectNotFoundError()
        practice, settings = rows

        if apply is not None:
            await apply(self._db, practice, settings)
            await self._db.flush()
            # Server-side onupdate values are expired by the flush
            await self._db.refresh(practice)
            await self._db.refresh(settings)

        return RedemptionSnapshot(
            practice=PracticeRead.model_validate(practice),
            settings=PracticeSettingsRead.model_validate(settings),
        )
