"""Onboarding event model - append-only audit trail of token outcomes."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from onboard_api.models.base import Base, JSONType


class OnboardingEvent(Base):
    """One recorded onboarding outcome.

    Payloads never hold a complete token string.

    Attributes:
        id: UUID primary key.
        subject_id: Practice the event concerns, when known.
        event_type: e.g. ``"onboarding_token_reused"``.
        payload: Event-specific details.
        created_at: When the event was recorded.
    """

    __tablename__ = "onboarding_events"
    __table_args__ = (Index("idx_onboarding_events_subject_id", "subject_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    subject_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
