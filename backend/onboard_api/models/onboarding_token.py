"""Onboarding token model - magic link consumption tracking.

One row per issued token. The signed token carries the row id, so tampering
is caught by the signature and replay is caught here.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from onboard_api.models.base import Base


class OnboardingToken(Base):
    """Persisted state of one onboarding magic link.

    ``consumed_at`` moves from NULL to a timestamp exactly once and never
    back. ``expires_at`` is written on insert only.

    Attributes:
        id: Token id embedded in the signed claims (uuid4 string).
        subject_id: Practice the token was issued for.
        scope: Action the token authorizes (``"onboarding"`` etc.).
        created_at: Issuance timestamp (the claims' issued-at).
        expires_at: Hard expiry, authoritative over the token's own claim.
        consumed_at: When the token was redeemed. NULL until then.
    """

    __tablename__ = "onboarding_tokens"
    __table_args__ = (
        CheckConstraint(
            "expires_at > created_at",
            name="ck_onboarding_tokens_expiry_after_issue",
        ),
        Index("idx_onboarding_tokens_subject_id", "subject_id"),
        Index("idx_onboarding_tokens_expires_at", "expires_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
    )
    subject_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    scope: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    consumed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    @property
    def is_consumed(self) -> bool:
        """Check if the token has been redeemed."""
        return self.consumed_at is not None
