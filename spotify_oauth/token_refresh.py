"""OAuth token refresh for Spotify"""

import logging
from typing import Optional

import httpx

from .models import TokenResponse
from .token_exchange import post_token_request

logger = logging.getLogger(__name__)


async def refresh_access_token(
    client_id: str,
    refresh_token: str,
    http_client: Optional[httpx.AsyncClient] = None,
) -> TokenResponse:
    """Renew the access token with a refresh-token grant

    The response may omit ``refresh_token``; callers keep the old one then.

    Raises:
        ExchangeFailed: If Spotify rejects the refresh token
    """
    logger.info("Refreshing Spotify access token...")
    tokens = await post_token_request(
        {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_id,
        },
        http_client,
    )
    logger.info("Access token refreshed successfully")
    return tokens
