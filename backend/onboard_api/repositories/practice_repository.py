"""Repository for Practice and PracticeSettings.

Token subjects are strings on the wire; practices are keyed by UUID. A
subject that does not parse as a UUID simply has no practice.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from onboard_api.models.practice import Practice, PracticeSettings
from onboard_api.schemas.onboarding import OnboardFormData


def _parse_practice_id(subject_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(subject_id)
    except (ValueError, AttributeError, TypeError):
        return None


class PracticeRepository:
    """Stateless repository for practice reads and the onboarding update."""

    @staticmethod
    async def get(db: AsyncSession, subject_id: str) -> Practice | None:
        """Look up a practice by its subject id string."""
        practice_id = _parse_practice_id(subject_id)
        if practice_id is None:
            return None
        return await db.get(Practice, practice_id)

    @staticmethod
    async def get_with_settings(
        db: AsyncSession,
        subject_id: str,
    ) -> tuple[Practice, PracticeSettings] | None:
        """Load a practice together with its settings row.

        Args:
            db: Async database session.
            subject_id: Practice id as carried in token claims.

        Returns:
            (practice, settings), or None if either row is missing.
        """
        practice_id = _parse_practice_id(subject_id)
        if practice_id is None:
            return None

        stmt = (
            select(Practice, PracticeSettings)
            .join(PracticeSettings, PracticeSettings.practice_id == Practice.id)
            .where(Practice.id == practice_id)
        )
        result = await db.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return row[0], row[1]

    @staticmethod
    async def apply_onboarding_form(
        db: AsyncSession,
        practice: Practice,
        settings: PracticeSettings,
        form: OnboardFormData,
    ) -> None:
        """Write the submitted onboarding form and activate the practice.

        Flushes but does not commit; the caller owns the transaction.
        """
        practice.name = form.practice_name
        practice.email = str(form.practice_email)
        practice.phone = form.practice_phone
        practice.city = form.practice_city
        practice.tz = form.practice_timezone
        practice.status = "active"

        settings.quiet_hours_start = form.quiet_hours_start
        settings.quiet_hours_end = form.quiet_hours_end
        settings.daily_cap = form.daily_cap
        settings.review_link = str(form.review_link)
        settings.default_locale = form.default_locale

        await db.flush()
