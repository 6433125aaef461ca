"""OAuth token lifecycle management for Spotify"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from settings import REFRESH_MARGIN_SECONDS, SPOTIFY_CLIENT_ID, TOKEN_REQUEST_TIMEOUT
from .authenticator import Authenticator, ErrorCallback
from .errors import ExchangeFailed
from .models import Credential
from .storage import CredentialStore
from .token_refresh import refresh_access_token

logger = logging.getLogger(__name__)


def _format_duration(seconds: float) -> str:
    seconds = int(abs(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


class TokenManager:
    """Owns the Spotify credential and hands out valid access tokens

    The in-memory credential is the only one callers see; the store is its
    durable copy, written on every change. Renewal is single-flight: one lock
    serializes refreshes and waiters re-check the credential once they hold
    it, so concurrent callers share one refresh grant.
    """

    def __init__(
        self,
        store: Optional[CredentialStore] = None,
        authenticator: Optional[Authenticator] = None,
        client_id: str = SPOTIFY_CLIENT_ID,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
        refresh_margin: float = REFRESH_MARGIN_SECONDS,
        on_error: Optional[ErrorCallback] = None,
    ):
        """Initialize token manager

        Args:
            store: Credential persistence (JSON state file if None)
            authenticator: Runs login attempts (default settings if None)
            client_id: Spotify application client id
            http_client: Client for token requests; created lazily and owned if None
            clock: Returns the current UNIX time
            refresh_margin: Seconds before expiry at which tokens are renewed
            on_error: Error callback for the default authenticator
        """
        self.store = store or CredentialStore()
        self.client_id = client_id
        self.clock = clock
        self.refresh_margin = refresh_margin
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self.authenticator = authenticator or Authenticator(clock=clock, on_error=on_error)
        self._credential: Optional[Credential] = None
        self._loaded = False
        self._refresh_lock = asyncio.Lock()
        self._refresh_count = 0

    async def __aenter__(self) -> "TokenManager":
        self.load()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    @property
    def refresh_count(self) -> int:
        """Number of refresh grants issued by this manager"""
        return self._refresh_count

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=TOKEN_REQUEST_TIMEOUT)
        return self._http_client

    def load(self) -> Optional[Credential]:
        """Resynchronize the in-memory credential from durable storage"""
        self._credential = self.store.load()
        self._loaded = True
        if self._credential is not None:
            logger.info(f"Loaded Spotify credential (expires {self._credential.expires_at_iso()})")
        return self._credential

    def _ensure_loaded(self) -> None:
        if self._credential is None and not self._loaded:
            self.load()

    def _set_credential(self, credential: Credential) -> None:
        self._credential = credential
        self._loaded = True
        if not self.store.save(credential):
            logger.warning("Spotify credential kept in memory only; it will not survive a restart")

    def clear(self) -> None:
        """Forget the credential in memory and in durable storage"""
        self._credential = None
        self._loaded = True
        self.store.clear()

    def _needs_refresh(self, credential: Credential) -> bool:
        return credential.needs_refresh(self.clock(), self.refresh_margin)

    async def get_valid_access_token(self) -> Optional[str]:
        """Get an access token that is valid for at least the refresh margin

        Returns:
            Access token, or None when the caller must treat the user as
            unauthenticated
        """
        if self._credential is None:
            self.load()

        credential = self._credential
        if credential is None:
            return None

        if not self._needs_refresh(credential):
            return credential.access_token

        async with self._refresh_lock:
            # Another caller may have renewed or cleared it while we waited
            credential = self._credential
            if credential is None:
                return None
            if not self._needs_refresh(credential):
                return credential.access_token
            if not credential.can_refresh():
                logger.warning("Spotify access token expired and no refresh token is available")
                return None
            return await self._refresh(credential)

    async def refresh_after_rejection(self, rejected_token: str) -> Optional[str]:
        """Renew the credential after the provider rejected ``rejected_token``

        Returns:
            A different access token to retry with, or None
        """
        async with self._refresh_lock:
            credential = self._credential
            if credential is None:
                return None
            if credential.access_token != rejected_token:
                # Someone already replaced the rejected token
                return credential.access_token
            if not credential.can_refresh():
                logger.warning("Spotify rejected the access token and no refresh token is available")
                self.clear()
                return None
            return await self._refresh(credential)

    async def _refresh(self, credential: Credential) -> Optional[str]:
        """Issue one refresh grant; must be called with the refresh lock held"""
        self._refresh_count += 1
        issued_at = self.clock()
        try:
            tokens = await refresh_access_token(self.client_id, credential.refresh_token, http_client=self._client())
        except ExchangeFailed as e:
            logger.error(f"Failed to refresh Spotify access token: {e}")
            # A rejected refresh invalidates trust in the whole pair
            self.clear()
            return None

        renewed = tokens.to_credential(issued_at, fallback_refresh_token=credential.refresh_token)
        self._set_credential(renewed)
        return renewed.access_token

    async def authenticate(self) -> bool:
        """Run an interactive login and store the resulting credential"""
        credential = await self.authenticator.authenticate(self.client_id)
        if credential is None:
            return False
        self._set_credential(credential)
        return True

    def is_authenticated(self) -> bool:
        """Liveness hint: a credential is held and is valid or renewable"""
        self._ensure_loaded()
        credential = self._credential
        if credential is None:
            return False
        return not credential.is_expired(self.clock()) or credential.can_refresh()

    def get_status(self) -> Dict[str, Any]:
        """Get credential status without exposing secrets"""
        self._ensure_loaded()
        credential = self._credential
        if credential is None:
            return {
                "has_tokens": False,
                "is_expired": True,
                "expires_at": None,
                "time_until_expiry": "No tokens",
                "has_refresh_token": False,
            }

        remaining = credential.expires_at - self.clock()
        if remaining <= 0:
            time_str = f"{_format_duration(remaining)} ago"
        else:
            time_str = _format_duration(remaining)

        return {
            "has_tokens": True,
            "is_expired": remaining <= 0,
            "expires_at": credential.expires_at_iso(),
            "time_until_expiry": time_str,
            "expires_in_seconds": max(0, int(remaining)),
            "has_refresh_token": credential.can_refresh(),
        }

    async def close(self) -> None:
        """Flush the final credential and release owned resources"""
        await self.authenticator.cancel()
        if self._credential is not None:
            self.store.save(self._credential)
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
