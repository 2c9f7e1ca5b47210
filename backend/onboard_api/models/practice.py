"""Practice and practice settings models.

Business data an onboarding link lets its recipient review and correct.
Only the columns the onboarding form reads or writes are modelled here.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from onboard_api.models.base import Base, JSONType, TimestampMixin


class Practice(Base):
    """A practice (the subject an onboarding token is issued for).

    Attributes:
        id: UUID primary key. Used as the token's subject id.
        name: Practice display name.
        email: Contact email.
        phone: Contact phone number.
        city: City, if known.
        tz: IANA timezone name.
        status: Lifecycle status ("provisioning" until onboarding completes).
        created_at: Creation timestamp.
    """

    __tablename__ = "practices"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tz: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="America/Los_Angeles",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="provisioning",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class PracticeSettings(Base, TimestampMixin):
    """Messaging settings for a practice.

    Attributes:
        id: UUID primary key.
        practice_id: Owning practice (unique, one row per practice).
        review_link: Public review URL sent to patients.
        quiet_hours_start: First hour (0-23) of the quiet window.
        quiet_hours_end: Last hour (0-23) of the quiet window.
        daily_cap: Maximum messages per day.
        sms_sender: SMS sender name.
        email_sender: Email sender address.
        default_locale: Locale for outgoing messages.
        brand_assets_json: Logo/colour metadata.
    """

    __tablename__ = "practice_settings"
    __table_args__ = (
        CheckConstraint(
            "quiet_hours_start BETWEEN 0 AND 23 AND quiet_hours_end BETWEEN 0 AND 23",
            name="ck_practice_settings_quiet_hours",
        ),
        CheckConstraint(
            "daily_cap BETWEEN 1 AND 1000",
            name="ck_practice_settings_daily_cap",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    practice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("practices.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    review_link: Mapped[str | None] = mapped_column(Text(), nullable=True)
    quiet_hours_start: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    quiet_hours_end: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    daily_cap: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    sms_sender: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email_sender: Mapped[str | None] = mapped_column(String(255), nullable=True)
    default_locale: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
        default="en",
    )
    brand_assets_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )
