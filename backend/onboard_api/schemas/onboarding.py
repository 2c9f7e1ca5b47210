"""Onboarding API request/response schemas.

Read models project the practice and settings rows into the snapshot the
onboarding page prefills from. OnboardFormData is the body of
POST /onboard/{token} and rejects unexpected fields.
"""

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    model_validator,
)

# =============================================================================
# Snapshot
# =============================================================================


class PracticeRead(BaseModel):
    """Practice fields shown on the onboarding page."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str | None
    phone: str | None
    city: str | None
    tz: str
    status: str
    created_at: datetime


class PracticeSettingsRead(BaseModel):
    """Settings fields shown on the onboarding page."""

    model_config = ConfigDict(from_attributes=True)

    practice_id: uuid.UUID
    review_link: str | None
    quiet_hours_start: int
    quiet_hours_end: int
    daily_cap: int
    sms_sender: str | None
    email_sender: str | None
    default_locale: str
    brand_assets_json: dict[str, Any] | None
    updated_at: datetime


class RedemptionSnapshot(BaseModel):
    """Read-only projection returned by a successful inspect or redeem.

    Attributes:
        practice: The token subject.
        settings: The subject's messaging settings.
    """

    practice: PracticeRead
    settings: PracticeSettingsRead


class OnboardPrefillResponse(BaseModel):
    """Body of a successful GET or POST /onboard/{token}.

    Attributes:
        success: Always True.
        subject: The practice the token was issued for.
        snapshot: Its settings.
        redirect_url: Frontend page that renders the onboarding form.
    """

    success: Literal[True] = True
    subject: PracticeRead
    snapshot: PracticeSettingsRead
    redirect_url: str

    @classmethod
    def from_snapshot(
        cls,
        snapshot: RedemptionSnapshot,
        redirect_url: str,
    ) -> "OnboardPrefillResponse":
        return cls(
            subject=snapshot.practice,
            snapshot=snapshot.settings,
            redirect_url=redirect_url,
        )


# =============================================================================
# Form
# =============================================================================


class OnboardFormData(BaseModel):
    """Request schema for POST /onboard/{token}.

    Attributes:
        practice_name: Display name, 1-255 chars.
        practice_email: Contact email.
        practice_phone: Contact phone, 10-20 chars.
        practice_city: City, 1-100 chars.
        practice_timezone: IANA timezone name.
        quiet_hours_start: First quiet hour (0-23), before quiet_hours_end.
        quiet_hours_end: Last quiet hour (0-23).
        daily_cap: Messages per day, 1-1000.
        review_link: Public review URL (http or https).
        default_locale: Locale code, 2-5 chars.
    """

    model_config = ConfigDict(extra="forbid")

    practice_name: str = Field(min_length=1, max_length=255)
    practice_email: EmailStr
    practice_phone: str = Field(min_length=10, max_length=20)
    practice_city: str = Field(min_length=1, max_length=100)
    practice_timezone: str = Field(min_length=1, max_length=64)
    quiet_hours_start: int = Field(ge=0, le=23)
    quiet_hours_end: int = Field(ge=0, le=23)
    daily_cap: int = Field(ge=1, le=1000)
    review_link: HttpUrl
    default_locale: str = Field(min_length=2, max_length=5)

    @model_validator(mode="after")
    def check_quiet_hours_order(self) -> "OnboardFormData":
        if self.quiet_hours_start >= self.quiet_hours_end:
            msg = "Quiet hours start must be before end time"
            raise ValueError(msg)
        return self
