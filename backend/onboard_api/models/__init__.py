"""SQLAlchemy ORM models for the onboarding service.

All models are exported from this module for convenient imports:
    from onboard_api.models import OnboardingToken, Practice, ...

Models are organized by domain:
- practice.py: Practice, PracticeSettings (business data read for prefill)
- onboarding_token.py: OnboardingToken (consumption tracking)
- onboarding_event.py: OnboardingEvent (audit trail)
"""

from onboard_api.models.base import Base, TimestampMixin
from onboard_api.models.onboarding_event import OnboardingEvent
from onboard_api.models.onboarding_token import OnboardingToken
from onboard_api.models.practice import Practice, PracticeSettings

__all__ = [
    "Base",
    "OnboardingEvent",
    "OnboardingToken",
    "Practice",
    "PracticeSettings",
    "TimestampMixin",
]
