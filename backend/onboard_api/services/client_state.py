"""Map onboarding API outcomes to what the onboarding page shows.

Six states, one fixed message each. Only ``ERROR`` offers a retry; the
other failure states are dead ends that need a new link.

Mapping:
    200 + valid prefill body  -> VALID
    200 + anything else       -> ERROR
    401                       -> INVALID
    410                       -> EXPIRED
    409                       -> USED
    other status              -> ERROR
    timeout / network failure -> ERROR

Error bodies are never echoed. For ``ERROR`` only a transport-generated
message may be shown.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, assert_never

from pydantic import ValidationError

from onboard_api.schemas.onboarding import OnboardPrefillResponse

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred. Please try again."
TIMEOUT_MESSAGE = "Request timed out. Please try again."
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."
SUBMIT_TIMEOUT_MESSAGE = (
    "The request timed out and may still have been processed. "
    "Reload this page before trying again."
)


class ClientState(str, Enum):
    """What the onboarding page is showing."""

    LOADING = "loading"
    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"
    USED = "used"
    ERROR = "error"


_STATE_MESSAGES: dict[ClientState, str] = {
    ClientState.LOADING: "Loading...",
    ClientState.VALID: "",
    ClientState.INVALID: (
        "This onboarding link is invalid or corrupted. Please request a new link."
    ),
    ClientState.EXPIRED: (
        "This onboarding link has expired. Please request a new link."
    ),
    ClientState.USED: (
        "This onboarding link has already been used. Please request a new link."
    ),
    ClientState.ERROR: DEFAULT_ERROR_MESSAGE,
}

_STATUS_STATES: dict[int, ClientState] = {
    401: ClientState.INVALID,
    409: ClientState.USED,
    410: ClientState.EXPIRED,
}


# =============================================================================
# Transport outcomes
# =============================================================================


@dataclass(frozen=True)
class HttpOutcome:
    """The server answered. ``body`` is the decoded JSON, or None."""

    status_code: int
    body: Any = None


@dataclass(frozen=True)
class TimeoutOutcome:
    """No answer within the timeout."""

    message: str = TIMEOUT_MESSAGE


@dataclass(frozen=True)
class NetworkErrorOutcome:
    """The request never reached the server or the connection failed."""

    message: str = NETWORK_ERROR_MESSAGE


TransportOutcome = HttpOutcome | TimeoutOutcome | NetworkErrorOutcome


@dataclass(frozen=True)
class Resolution:
    """Resolved page state.

    Attributes:
        state: One of the six client states.
        message: User-safe text for the state.
        prefill: Parsed response body, only for VALID.
        retryable: True only for ERROR.
    """

    state: ClientState
    message: str
    prefill: OnboardPrefillResponse | None = None
    retryable: bool = False


def message_for(state: ClientState, transport_message: str | None = None) -> str:
    """Return the fixed message for a state.

    ``transport_message`` is used only for ERROR.
    """
    if state is ClientState.ERROR and transport_message:
        return transport_message
    return _STATE_MESSAGES[state]


def resolution_for(
    state: ClientState,
    *,
    transport_message: str | None = None,
    prefill: OnboardPrefillResponse | None = None,
) -> Resolution:
    return Resolution(
        state=state,
        message=message_for(state, transport_message),
        prefill=prefill if state is ClientState.VALID else None,
        retryable=state is ClientState.ERROR,
    )


def resolve(outcome: TransportOutcome) -> Resolution:
    """Map a transport outcome to exactly one page state."""
    match outcome:
        case HttpOutcome(status_code=200, body=body):
            try:
                prefill = OnboardPrefillResponse.model_validate(body)
            except ValidationError:
                return resolution_for(ClientState.ERROR)
            return resolution_for(ClientState.VALID, prefill=prefill)
        case HttpOutcome(status_code=status_code):
            return resolution_for(_STATUS_STATES.get(status_code, ClientState.ERROR))
        case TimeoutOutcome(message=message) | NetworkErrorOutcome(message=message):
            return resolution_for(ClientState.ERROR, transport_message=message)
        case _:
            assert_never(outcome)
