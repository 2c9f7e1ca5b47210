"""Repository for the onboarding audit trail (append-only)."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from onboard_api.models.onboarding_event import OnboardingEvent

# Event types recorded by the onboarding endpoints
EVENT_TOKEN_INVALID = "onboarding_token_invalid"
EVENT_TOKEN_EXPIRED = "onboarding_token_expired"
EVENT_TOKEN_REUSED = "onboarding_token_reused"
EVENT_STARTED = "onboarding_started"
EVENT_COMPLETED = "onboarding_completed"
EVENT_ERROR = "onboarding_error"


def token_prefix(token: str) -> str:
    """Shorten a token for audit payloads. Full tokens are never stored."""
    return f"{token[:10]}..."


class OnboardingEventRepository:
    """Stateless repository for OnboardingEvent rows.

    The onboarding router only appends. The list_* readers serve audit
    reads by operators and tests; nothing on the request path reads the trail.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        event_type: str,
        subject_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> OnboardingEvent:
        """Append an event.

        Args:
            db: Async database session.
            event_type: One of the EVENT_* constants.
            subject_id: Practice the event concerns, when known.
            payload: Event details. Must not contain a full token.

        Returns:
            Created OnboardingEvent.
        """
        event = OnboardingEvent(
            subject_id=subject_id,
            event_type=event_type,
            payload=payload or {},
        )
        db.add(event)
        await db.flush()
        return event

    @staticmethod
    async def list_for_subject(
        db: AsyncSession,
        subject_id: str,
    ) -> list[OnboardingEvent]:
        """Audit read: a subject's events, oldest first."""
        stmt = (
            select(OnboardingEvent)
            .where(OnboardingEvent.subject_id == subject_id)
            .order_by(OnboardingEvent.created_at, OnboardingEvent.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_by_type(
        db: AsyncSession,
        event_type: str,
    ) -> list[OnboardingEvent]:
        """Audit read: all events of one type, oldest first."""
        stmt = (
            select(OnboardingEvent)
            .where(OnboardingEvent.event_type == event_type)
            .order_by(OnboardingEvent.created_at, OnboardingEvent.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())
