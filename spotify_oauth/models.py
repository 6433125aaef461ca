"""Data models for Spotify OAuth authentication"""

import datetime
import time
from dataclasses import dataclass
from typing import Any, Dict, NamedTuple, Optional


class PKCEPair(NamedTuple):
    """PKCE code verifier and challenge pair"""
    verifier: str
    challenge: str


class AuthorizationFlow(NamedTuple):
    """Everything one authorization attempt needs to remember"""
    pkce: PKCEPair
    state: str
    url: str


@dataclass(frozen=True)
class Credential:
    """Access/refresh token pair with an absolute expiry

    Attributes:
        access_token: Bearer token presented on API calls
        refresh_token: Token used to renew the access token (may be absent)
        expires_at: UNIX timestamp after which the access token is invalid
    """
    access_token: str
    refresh_token: Optional[str]
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now >= self.expires_at

    def needs_refresh(self, now: Optional[float] = None, margin: float = 300) -> bool:
        """True when the token expires within ``margin`` seconds"""
        now = time.time() if now is None else now
        return self.expires_at < now + margin

    def can_refresh(self) -> bool:
        return bool(self.refresh_token)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credential":
        """Load from a stored dictionary

        Raises:
            ValueError: If the payload is not a usable credential
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")

        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("missing access_token")

        try:
            expires_at = float(data.get("expires_at", 0))
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid expires_at: {data.get('expires_at')!r}") from e

        refresh_token = data.get("refresh_token") or None
        return cls(access_token=access_token, refresh_token=refresh_token, expires_at=expires_at)

    def expires_at_iso(self) -> str:
        return datetime.datetime.fromtimestamp(self.expires_at, datetime.timezone.utc).isoformat()


@dataclass(frozen=True)
class TokenResponse:
    """Parsed token endpoint response"""
    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TokenResponse":
        """Build from the token endpoint JSON

        Raises:
            ValueError: If access_token or expires_in is missing or invalid
        """
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("token response missing access_token")

        try:
            expires_in = int(payload["expires_in"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError("token response missing a numeric expires_in") from e

        return cls(
            access_token=access_token,
            expires_in=expires_in,
            refresh_token=payload.get("refresh_token") or None,
            token_type=payload.get("token_type", "Bearer"),
            scope=payload.get("scope"),
        )

    def to_credential(self, issued_at: float, fallback_refresh_token: Optional[str] = None) -> Credential:
        """Credential expiring ``expires_in`` seconds after ``issued_at``

        Spotify does not always rotate the refresh token; the previous one is
        reused when the response omits it.
        """
        return Credential(
            access_token=self.access_token,
            refresh_token=self.refresh_token or fallback_refresh_token,
            expires_at=issued_at + self.expires_in,
        )
