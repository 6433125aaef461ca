"""Spotify OAuth authorization URL construction"""

from typing import Optional
from urllib.parse import urlencode

from settings import AUTHORIZE_URL, SCOPES
from .models import AuthorizationFlow, PKCEPair
from .pkce import create_state, generate_pkce


def build_authorize_url(
    client_id: str,
    redirect_uri: str,
    pkce: PKCEPair,
    state: str,
    scopes: str = SCOPES,
) -> str:
    """Construct the Spotify authorize URL for the PKCE flow

    ``show_dialog`` forces Spotify to prompt for consent again instead of
    silently reusing an earlier approval.
    """
    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "code_challenge_method": "S256",
        "code_challenge": pkce.challenge,
        "state": state,
        "scope": scopes,
        "show_dialog": "true",
    }

    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def create_authorization_flow(
    client_id: str,
    redirect_uri: str,
    scopes: Optional[str] = None,
) -> AuthorizationFlow:
    """Create a fresh PKCE pair, state and authorization URL for one attempt"""
    pkce = generate_pkce()
    state = create_state()
    url = build_authorize_url(client_id, redirect_uri, pkce, state, scopes or SCOPES)
    return AuthorizationFlow(pkce=pkce, state=state, url=url)
