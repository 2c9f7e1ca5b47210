"""HTTP client for the onboarding endpoints, and the page flow built on it.

Every call is bounded by a timeout. The read path (GET) is retried once on
timeout because it never changes server state. The write path (POST) is
never retried: after a timeout the token may already be consumed, so the
outcome is reported as unknown and left to the user.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from onboard_api.core.config import settings
from onboard_api.services.client_state import (
    NETWORK_ERROR_MESSAGE,
    SUBMIT_TIMEOUT_MESSAGE,
    TIMEOUT_MESSAGE,
    ClientState,
    HttpOutcome,
    NetworkErrorOutcome,
    Resolution,
    TimeoutOutcome,
    TransportOutcome,
    resolution_for,
    resolve,
)
from onboard_api.services.onboarding_errors import TransportError

logger = logging.getLogger(__name__)

# Retries on top of the first GET attempt
_FETCH_TIMEOUT_RETRIES = 1


class InvalidFlowStateError(RuntimeError):
    """Action not allowed in the flow's current state."""


class OnboardClient:
    """Calls GET/POST /onboard/{token} and resolves the page state."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        fetch_timeout: float | None = None,
        submit_timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API root, e.g. ``http://localhost:8000/api/v1``.
            fetch_timeout: Seconds allowed per GET attempt.
            submit_timeout: Seconds allowed for the POST.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self._base_url = (base_url or settings.onboard_api_base_url).rstrip("/")
        self._fetch_timeout = (
            fetch_timeout
            if fetch_timeout is not None
            else settings.onboard_fetch_timeout_seconds
        )
        self._submit_timeout = (
            submit_timeout
            if submit_timeout is not None
            else settings.onboard_submit_timeout_seconds
        )
        self._transport = transport

    async def fetch(self, token: str) -> Resolution:
        """Check a token and load the prefill data without consuming it."""
        if not token or not token.strip():
            return resolution_for(ClientState.INVALID)

        outcome: TransportOutcome = TimeoutOutcome()
        for attempt in range(_FETCH_TIMEOUT_RETRIES + 1):
            outcome = await self._send(
                "GET",
                token,
                timeout=self._fetch_timeout,
                headers={"Accept": "application/json"},
            )
            if not isinstance(outcome, TimeoutOutcome):
                break
            logger.info("Onboard fetch timed out (attempt %d)", attempt + 1)
        return resolve(outcome)

    async def submit(
        self,
        token: str,
        form: BaseModel | dict[str, Any],
    ) -> Resolution:
        """Submit the onboarding form, consuming the token."""
        if not token or not token.strip():
            return resolution_for(ClientState.INVALID)

        body = form.model_dump(mode="json") if isinstance(form, BaseModel) else form
        outcome = await self._send(
            "POST",
            token,
            timeout=self._submit_timeout,
            headers={"Accept": "application/json"},
            json=body,
        )
        if isinstance(outcome, TimeoutOutcome):
            logger.warning("Onboard submit timed out; outcome unknown")
            outcome = TimeoutOutcome(SUBMIT_TIMEOUT_MESSAGE)
        return resolve(outcome)

    async def _send(
        self,
        method: str,
        token: str,
        *,
        timeout: float,
        headers: dict[str, str],
        json: Any = None,
    ) -> TransportOutcome:
        """Perform one request and classify what happened."""
        try:
            resp = await self._request(
                method, token, timeout=timeout, headers=headers, json=json
            )
        except TransportError as exc:
            logger.warning("Onboard %s failed (%s)", method, exc.kind)
            if exc.kind == "timeout":
                return TimeoutOutcome(exc.message)
            return NetworkErrorOutcome(exc.message)

        try:
            body = resp.json()
        except ValueError:
            body = None
        return HttpOutcome(status_code=resp.status_code, body=body)

    async def _request(
        self,
        method: str,
        token: str,
        *,
        timeout: float,
        headers: dict[str, str],
        json: Any = None,
    ) -> httpx.Response:
        """Send the request.

        Raises:
            TransportError: On timeout or connection failure.
        """
        url = f"{self._base_url}/onboard/{quote(token.strip(), safe='')}"
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=timeout,
            ) as client:
                return await client.request(method, url, headers=headers, json=json)
        except httpx.TimeoutException as exc:
            raise TransportError("timeout", TIMEOUT_MESSAGE) from exc
        except httpx.TransportError as exc:
            raise TransportError("network", NETWORK_ERROR_MESSAGE) from exc


class OnboardLinkFlow:
    """State of one onboarding page visit.

    Starts in LOADING. ``load`` resolves the link. ``retry`` is allowed only
    from ERROR; other failures need a new link. ``submit`` is allowed only
    from VALID.
    """

    def __init__(self, client: OnboardClient, token: str) -> None:
        self._client = client
        self._token = token
        self.resolution = resolution_for(ClientState.LOADING)

    @property
    def state(self) -> ClientState:
        return self.resolution.state

    async def load(self) -> Resolution:
        self.resolution = await self._client.fetch(self._token)
        return self.resolution

    async def retry(self) -> Resolution:
        if self.state is not ClientState.ERROR:
            raise InvalidFlowStateError(
                f"Cannot retry from '{self.state.value}'; request a new link"
            )
        self.resolution = resolution_for(ClientState.LOADING)
        return await self.load()

    async def submit(self, form: BaseModel | dict[str, Any]) -> Resolution:
        if self.state is not ClientState.VALID:
            raise InvalidFlowStateError(
                f"Cannot submit from '{self.state.value}'"
            )
        self.resolution = await self._client.submit(self._token, form)
        return self.resolution
