"""Onboarding token claims and wire encoding.

Token layout::

    <claims_b64>.<digest_b64>

``claims_b64`` is the base64url (unpadded) encoding of compact, key-sorted
JSON ``{"exp", "iat", "jti", "scope", "sub"}`` with epoch-second timestamps.
``digest_b64`` is the base64url (unpadded) HMAC-SHA256 of the ASCII
``claims_b64`` text.

Shared by TokenSigner and TokenVerifier so both sides agree on the bytes
being signed.
"""

import base64
import binascii
import hashlib
import hmac
import json
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# Upper bound on accepted token length. Real tokens are ~200 characters.
MAX_TOKEN_LENGTH = 1024

_B64URL_RE = re.compile(r"[A-Za-z0-9_-]+")
_CLAIM_KEYS = frozenset({"exp", "iat", "jti", "scope", "sub"})


class OnboardingScope(str, Enum):
    """Actions an onboarding token can authorize."""

    ONBOARDING = "onboarding"
    SETTINGS_UPDATE = "settings_update"


@dataclass(frozen=True)
class TokenClaims:
    """Decoded token payload.

    Attributes:
        token_id: uuid4 string, also the primary key of the token record.
        subject_id: Practice the token was issued for.
        scope: OnboardingScope value.
        issued_at: Issuance time, whole seconds, UTC.
        expires_at: Expiry time, whole seconds, UTC.
    """

    token_id: str
    subject_id: str
    scope: str
    issued_at: datetime
    expires_at: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "exp": int(self.expires_at.timestamp()),
            "iat": int(self.issued_at.timestamp()),
            "jti": self.token_id,
            "scope": self.scope,
            "sub": self.subject_id,
        }

    def to_json(self) -> bytes:
        """Deterministic serialization (sorted keys, no whitespace)."""
        return json.dumps(
            self.to_payload(),
            sort_keys=True,
            separators=(",", ":"),
        ).encode("utf-8")

    @classmethod
    def from_payload(cls, payload: Any) -> "TokenClaims":
        """Build claims from decoded JSON.

        Raises:
            ValueError: If keys are missing or extra, or a value has the
                wrong type.
        """
        if not isinstance(payload, dict) or set(payload) != _CLAIM_KEYS:
            raise ValueError("Claims must contain exactly exp, iat, jti, scope, sub")

        for key in ("jti", "scope", "sub"):
            value = payload[key]
            if not isinstance(value, str) or not value:
                raise ValueError(f"Claim '{key}' must be a non-empty string")

        timestamps = {}
        for key in ("iat", "exp"):
            value = payload[key]
            # bool is an int subclass; JSON true/false is not a timestamp
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"Claim '{key}' must be an integer timestamp")
            try:
                timestamps[key] = datetime.fromtimestamp(value, UTC)
            except (OverflowError, OSError, ValueError) as exc:
                raise ValueError(f"Claim '{key}' is out of range") from exc

        return cls(
            token_id=payload["jti"],
            subject_id=payload["sub"],
            scope=payload["scope"],
            issued_at=timestamps["iat"],
            expires_at=timestamps["exp"],
        )


@dataclass(frozen=True)
class IssuedToken:
    """A signed token together with the claims it carries."""

    token: str
    claims: TokenClaims


def b64url_encode(data: bytes) -> str:
    """Base64url-encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    """Decode unpadded base64url.

    Raises:
        ValueError: If the segment is empty, contains characters outside the
            base64url alphabet, or has an impossible length.
    """
    if not segment or not _B64URL_RE.fullmatch(segment):
        raise ValueError("Segment is not base64url")
    try:
        return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except binascii.Error as exc:
        raise ValueError("Segment is not decodable") from exc


def compute_digest(secret: bytes, claims_segment: str) -> str:
    """Return the encoded HMAC-SHA256 digest segment for ``claims_segment``."""
    mac = hmac.new(secret, claims_segment.encode("ascii"), hashlib.sha256)
    return b64url_encode(mac.digest())
