"""Pydantic request/response schemas for API endpoints."""

from onboard_api.schemas.onboarding import (
    OnboardFormData,
    OnboardPrefillResponse,
    PracticeRead,
    PracticeSettingsRead,
    RedemptionSnapshot,
)

__all__ = [
    "OnboardFormData",
    "OnboardPrefillResponse",
    "PracticeRead",
    "PracticeSettingsRead",
    "RedemptionSnapshot",
]
