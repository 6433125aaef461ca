"""Authenticated HTTP client for Spotify Web API calls"""

import logging
from typing import Any, Optional

import httpx

from settings import API_BASE, API_REQUEST_TIMEOUT
from .authenticator import ErrorCallback
from .errors import AuthorizationExpired, NotAuthenticated, SpotifyAuthError
from .token_manager import TokenManager

logger = logging.getLogger(__name__)


class AuthenticatedClient:
    """Wraps ``httpx.AsyncClient`` with the retry-once-after-refresh rule

    Every request gets a bearer token from the token manager. A 401 triggers
    one refresh and exactly one retry; a second 401 is terminal, clears the
    credential and raises ``AuthorizationExpired``. Other responses are
    returned unchanged and never touch the credential.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = API_BASE,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.token_manager = token_manager
        self.base_url = base_url.rstrip("/")
        self.on_error = on_error
        self._http_client = http_client
        self._owns_http_client = http_client is None

    async def __aenter__(self) -> "AuthenticatedClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=API_REQUEST_TIMEOUT)
        return self._http_client

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _fail(self, error: SpotifyAuthError) -> SpotifyAuthError:
        logger.error(str(error))
        if self.on_error is not None:
            self.on_error(error)
        return error

    async def _send(self, method: str, url: str, token: str, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {token}"
        return await self._client().request(method, url, headers=headers, **kwargs)

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request

        Args:
            method: HTTP method
            path: Path relative to the API base, or an absolute URL
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Returns:
            The provider response (any status except an unrecoverable 401)

        Raises:
            NotAuthenticated: No usable credential is available
            AuthorizationExpired: Still unauthorized after one refresh and retry
        """
        url = self._url(path)

        token = await self.token_manager.get_valid_access_token()
        if token is None:
            raise self._fail(NotAuthenticated())

        response = await self._send(method, url, token, **kwargs)
        if response.status_code != 401:
            return response

        logger.warning(f"Spotify returned 401 for {method} {url}, refreshing token once")
        new_token = await self.token_manager.refresh_after_rejection(token)
        if new_token is None:
            raise self._fail(AuthorizationExpired("Spotify rejected the access token and it could not be renewed"))

        response = await self._send(method, url, new_token, **kwargs)
        if response.status_code == 401:
            # Second rejection after a fresh token: the grant itself is no longer trusted
            self.token_manager.clear()
            raise self._fail(AuthorizationExpired("Spotify rejected the renewed access token"))

        return response

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def aclose(self) -> None:
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
