"""Tests for the onboarding form schema.

OnboardFormData is the POST /onboard/{token} body. It forbids unknown
fields so a form cannot set columns it does not own (e.g. status).
"""

import pytest
from pydantic import ValidationError

from onboard_api.schemas.onboarding import OnboardFormData

_VALID = {
    "practice_name": "Sunrise Dental",
    "practice_email": "frontdesk@sunrisedental.com",
    "practice_phone": "+15035550100",
    "practice_city": "Portland",
    "practice_timezone": "America/Los_Angeles",
    "quiet_hours_start": 8,
    "quiet_hours_end": 20,
    "daily_cap": 50,
    "review_link": "https://g.page/sunrise-dental",
    "default_locale": "en",
}


class TestOnboardFormData:
    """Tests for field constraints."""

    def test_valid_form(self):
        form = OnboardFormData.model_validate(_VALID)

        assert form.practice_name == "Sunrise Dental"
        assert str(form.review_link) == "https://g.page/sunrise-dental"

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError, match="Extra inputs are not permitted"):
            OnboardFormData.model_validate({**_VALID, "status": "active"})

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("practice_name", ""),
            ("practice_name", "x" * 256),
            ("practice_email", "not-an-email"),
            ("practice_phone", "12345"),
            ("practice_city", ""),
            ("practice_timezone", ""),
            ("quiet_hours_start", -1),
            ("quiet_hours_end", 24),
            ("daily_cap", 0),
            ("daily_cap", 1001),
            ("review_link", "not a url"),
            ("review_link", "ftp://g.page/sunrise-dental"),
            ("default_locale", "e"),
            ("default_locale", "en-US-x"),
        ],
    )
    def test_field_constraints(self, field: str, value: object):
        with pytest.raises(ValidationError):
            OnboardFormData.model_validate({**_VALID, field: value})

    @pytest.mark.parametrize("field", list(_VALID))
    def test_every_field_is_required(self, field: str):
        data = {key: value for key, value in _VALID.items() if key != field}

        with pytest.raises(ValidationError):
            OnboardFormData.model_validate(data)

    @pytest.mark.parametrize(("start", "end"), [(20, 8), (9, 9)])
    def test_quiet_hours_must_be_ordered(self, start: int, end: int):
        with pytest.raises(ValidationError, match="Quiet hours start must be before"):
            OnboardFormData.model_validate(
                {**_VALID, "quiet_hours_start": start, "quiet_hours_end": end}
            )

    def test_daily_cap_bounds_inclusive(self):
        assert OnboardFormData.model_validate({**_VALID, "daily_cap": 1}).daily_cap == 1
        assert (
            OnboardFormData.model_validate({**_VALID, "daily_cap": 1000}).daily_cap
            == 1000
        )
