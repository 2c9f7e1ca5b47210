"""Tests for OnboardClient and OnboardLinkFlow using httpx.MockTransport.

Covers:
- fetch: request shape, retry-once-on-timeout, network failures
- submit: no retry, outcome-unknown message on timeout
- flow: state transitions and guarded actions
"""

import uuid

import httpx
import pytest

from onboard_api.services.client_state import (
    NETWORK_ERROR_MESSAGE,
    SUBMIT_TIMEOUT_MESSAGE,
    TIMEOUT_MESSAGE,
    ClientState,
)
from onboard_api.services.onboard_client import (
    InvalidFlowStateError,
    OnboardClient,
    OnboardLinkFlow,
)

_BASE_URL = "http://api.test/api/v1"
_TOKEN = "eyJleHAiOjF9.c2lnbmF0dXJl"
_FORM = {
    "practice_name": "Sunrise Dental",
    "practice_email": "frontdesk@sunrise-dental.example",
    "practice_phone": "+15035550100",
    "practice_city": "Portland",
    "practice_timezone": "America/Los_Angeles",
    "quiet_hours_start": 8,
    "quiet_hours_end": 20,
    "daily_cap": 60,
    "review_link": "https://g.page/sunrise-dental",
    "default_locale": "en",
}


def _prefill_body() -> dict:
    practice_id = str(uuid.uuid4())
    return {
        "success": True,
        "subject": {
            "id": practice_id,
            "name": "Sunrise Dental",
            "email": None,
            "phone": None,
            "city": None,
            "tz": "America/Los_Angeles",
            "status": "provisioning",
            "created_at": "2026-01-01T00:00:00Z",
        },
        "snapshot": {
            "practice_id": practice_id,
            "review_link": None,
            "quiet_hours_start": 8,
            "quiet_hours_end": 20,
            "daily_cap": 50,
            "sms_sender": None,
            "email_sender": None,
            "default_locale": "en",
            "brand_assets_json": None,
            "updated_at": "2026-01-01T00:00:00Z",
        },
        "redirect_url": f"http://localhost:3000/onboard/{_TOKEN}",
    }


class _Recorder:
    """MockTransport handler that replays canned responses and records requests."""

    def __init__(self, *responses) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def _client(handler: _Recorder) -> OnboardClient:
    return OnboardClient(
        _BASE_URL,
        fetch_timeout=2.0,
        submit_timeout=15.0,
        transport=httpx.MockTransport(handler),
    )


def _timeout() -> httpx.ReadTimeout:
    return httpx.ReadTimeout("timed out")


# =============================================================================
# fetch
# =============================================================================


class TestFetch:
    """Tests for the read path."""

    async def test_valid_response(self):
        handler = _Recorder(httpx.Response(200, json=_prefill_body()))

        resolution = await _client(handler).fetch(_TOKEN)

        assert resolution.state is ClientState.VALID
        request = handler.requests[0]
        assert request.method == "GET"
        assert str(request.url) == f"{_BASE_URL}/onboard/{_TOKEN}"
        assert request.headers["accept"] == "application/json"

    @pytest.mark.parametrize(
        ("status_code", "state"),
        [
            (401, ClientState.INVALID),
            (409, ClientState.USED),
            (410, ClientState.EXPIRED),
            (500, ClientState.ERROR),
        ],
    )
    async def test_error_statuses(self, status_code: int, state: ClientState):
        handler = _Recorder(
            httpx.Response(status_code, json={"success": False, "error": "x"})
        )

        assert (await _client(handler).fetch(_TOKEN)).state is state

    async def test_non_json_body(self):
        """A 200 with an HTML body is an error, not valid."""
        handler = _Recorder(httpx.Response(200, text="<html>ok</html>"))

        assert (await _client(handler).fetch(_TOKEN)).state is ClientState.ERROR

    @pytest.mark.parametrize("token", ["", "   "])
    async def test_blank_token_makes_no_request(self, token: str):
        handler = _Recorder(httpx.Response(200, json=_prefill_body()))

        resolution = await _client(handler).fetch(token)

        assert resolution.state is ClientState.INVALID
        assert handler.requests == []

    async def test_timeout_retried_once_then_succeeds(self):
        handler = _Recorder(_timeout(), httpx.Response(200, json=_prefill_body()))

        resolution = await _client(handler).fetch(_TOKEN)

        assert resolution.state is ClientState.VALID
        assert len(handler.requests) == 2

    async def test_two_timeouts_give_error(self):
        handler = _Recorder(_timeout())

        resolution = await _client(handler).fetch(_TOKEN)

        assert resolution.state is ClientState.ERROR
        assert resolution.message == TIMEOUT_MESSAGE
        assert resolution.retryable is True
        assert len(handler.requests) == 2

    async def test_network_error_not_retried(self):
        handler = _Recorder(httpx.ConnectError("connection refused"))

        resolution = await _client(handler).fetch(_TOKEN)

        assert resolution.state is ClientState.ERROR
        assert resolution.message == NETWORK_ERROR_MESSAGE
        assert len(handler.requests) == 1


# =============================================================================
# submit
# =============================================================================


class TestSubmit:
    """Tests for the write path."""

    async def test_submit_posts_form_json(self):
        handler = _Recorder(httpx.Response(200, json=_prefill_body()))

        resolution = await _client(handler).submit(_TOKEN, _FORM)

        assert resolution.state is ClientState.VALID
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.read() == httpx.Request("POST", "/", json=_FORM).read()

    async def test_submit_timeout_not_retried(self):
        """A timed-out submit may have succeeded, so it is never resent."""
        handler = _Recorder(_timeout())

        resolution = await _client(handler).submit(_TOKEN, _FORM)

        assert resolution.state is ClientState.ERROR
        assert resolution.message == SUBMIT_TIMEOUT_MESSAGE
        assert len(handler.requests) == 1

    async def test_submit_conflict_is_used(self):
        handler = _Recorder(httpx.Response(409, json={"success": False}))

        assert (await _client(handler).submit(_TOKEN, _FORM)).state is ClientState.USED


# =============================================================================
# OnboardLinkFlow
# =============================================================================


class TestOnboardLinkFlow:
    """Tests for page flow transitions."""

    async def test_starts_loading(self):
        flow = OnboardLinkFlow(_client(_Recorder(httpx.Response(200))), _TOKEN)

        assert flow.state is ClientState.LOADING
        assert flow.resolution.message == "Loading..."

    async def test_load_then_submit(self):
        handler = _Recorder(
            httpx.Response(200, json=_prefill_body()),
            httpx.Response(200, json=_prefill_body()),
        )
        flow = OnboardLinkFlow(_client(handler), _TOKEN)

        await flow.load()
        resolution = await flow.submit(_FORM)

        assert resolution.state is ClientState.VALID
        assert [r.method for r in handler.requests] == ["GET", "POST"]

    async def test_retry_from_error_reloads(self):
        handler = _Recorder(
            httpx.ConnectError("down"),
            httpx.Response(200, json=_prefill_body()),
        )
        flow = OnboardLinkFlow(_client(handler), _TOKEN)

        assert (await flow.load()).state is ClientState.ERROR
        assert (await flow.retry()).state is ClientState.VALID

    @pytest.mark.parametrize("status_code", [401, 409, 410])
    async def test_retry_refused_for_dead_ends(self, status_code: int):
        """Invalid, used and expired links need a new link, not a retry."""
        handler = _Recorder(httpx.Response(status_code, json={"success": False}))
        flow = OnboardLinkFlow(_client(handler), _TOKEN)
        await flow.load()

        with pytest.raises(InvalidFlowStateError):
            await flow.retry()
        assert len(handler.requests) == 1

    async def test_submit_refused_unless_valid(self):
        handler = _Recorder(httpx.Response(410, json={"success": False}))
        flow = OnboardLinkFlow(_client(handler), _TOKEN)

        with pytest.raises(InvalidFlowStateError):
            await flow.submit(_FORM)

        await flow.load()
        with pytest.raises(InvalidFlowStateError):
            await flow.submit(_FORM)
