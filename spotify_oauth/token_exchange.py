"""Spotify OAuth token endpoint requests"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from settings import TOKEN_REQUEST_TIMEOUT, TOKEN_URL
from .errors import ExchangeFailed
from .models import TokenResponse

logger = logging.getLogger(__name__)


async def post_token_request(
    data: Dict[str, str],
    http_client: Optional[httpx.AsyncClient] = None,
) -> TokenResponse:
    """POST a form-encoded grant to the token endpoint

    Args:
        data: Grant parameters
        http_client: Client to send with; a short-lived one is created if None

    Returns:
        Parsed token response

    Raises:
        ExchangeFailed: On transport errors, non-200 responses or unusable payloads
    """
    grant_type = data.get("grant_type")
    headers = {"Content-Type": "application/x-www-form-urlencoded"}

    try:
        if http_client is None:
            async with httpx.AsyncClient(timeout=TOKEN_REQUEST_TIMEOUT) as client:
                response = await client.post(TOKEN_URL, data=data, headers=headers)
        else:
            response = await http_client.post(TOKEN_URL, data=data, headers=headers)
    except httpx.TimeoutException as e:
        raise ExchangeFailed(f"Token request ({grant_type}) timed out: {e}") from e
    except httpx.RequestError as e:
        raise ExchangeFailed(f"Token request ({grant_type}) failed: {e}") from e

    logger.debug(f"Token endpoint responded {response.status_code} for {grant_type}")

    payload: Any
    try:
        payload = response.json()
    except json.JSONDecodeError:
        payload = response.text

    if response.status_code != 200:
        raise ExchangeFailed(
            f"Token request ({grant_type}) rejected with status {response.status_code}: {payload}",
            status_code=response.status_code,
            payload=payload,
        )

    if not isinstance(payload, dict):
        raise ExchangeFailed(
            f"Token response for {grant_type} was not a JSON object",
            status_code=response.status_code,
            payload=payload,
        )

    try:
        return TokenResponse.from_payload(payload)
    except ValueError as e:
        raise ExchangeFailed(str(e), status_code=response.status_code, payload=payload) from e


async def exchange_code_for_tokens(
    client_id: str,
    code: str,
    redirect_uri: str,
    code_verifier: str,
    http_client: Optional[httpx.AsyncClient] = None,
) -> TokenResponse:
    """Exchange an authorization code for access and refresh tokens

    The PKCE verifier proves possession of the original challenge, so no
    client secret is sent. ``redirect_uri`` must be the one used to obtain
    the code. Failures are not retried.
    """
    logger.info("Exchanging authorization code for tokens")
    tokens = await post_token_request(
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": client_id,
            "code_verifier": code_verifier,
        },
        http_client,
    )
    logger.info("Successfully exchanged authorization code for tokens")
    return tokens
