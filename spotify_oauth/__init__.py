"""Spotify OAuth authentication module

Authorization Code + PKCE login through a local callback listener,
credential persistence, single-flight refresh and the retry-once-after-401
client used by every authenticated Spotify call.
"""

from .models import AuthorizationFlow, Credential, PKCEPair, TokenResponse
from .errors import (
    SpotifyAuthError,
    ConfigurationMissing,
    PortUnavailable,
    CallbackError,
    AuthorizationDenied,
    StateMismatch,
    MalformedCallback,
    CallbackTimeout,
    AuthorizationCancelled,
    ExchangeFailed,
    NotAuthenticated,
    AuthorizationExpired,
)
from .pkce import generate_verifier, derive_challenge, generate_pkce, create_state
from .authorization import build_authorize_url, create_authorization_flow
from .callback_server import CallbackListener, PastedRedirectCapture, classify_callback
from .token_exchange import exchange_code_for_tokens
from .token_refresh import refresh_access_token
from .storage import CredentialStore
from .authenticator import Authenticator
from .token_manager import TokenManager
from .api_client import AuthenticatedClient

__all__ = [
    # Models
    "AuthorizationFlow",
    "Credential",
    "PKCEPair",
    "TokenResponse",
    # Errors
    "SpotifyAuthError",
    "ConfigurationMissing",
    "PortUnavailable",
    "CallbackError",
    "AuthorizationDenied",
    "StateMismatch",
    "MalformedCallback",
    "CallbackTimeout",
    "AuthorizationCancelled",
    "ExchangeFailed",
    "NotAuthenticated",
    "AuthorizationExpired",
    # PKCE / authorization
    "generate_verifier",
    "derive_challenge",
    "generate_pkce",
    "create_state",
    "build_authorize_url",
    "create_authorization_flow",
    # Callback capture
    "CallbackListener",
    "PastedRedirectCapture",
    "classify_callback",
    # Token endpoint
    "exchange_code_for_tokens",
    "refresh_access_token",
    # Lifecycle
    "CredentialStore",
    "Authenticator",
    "TokenManager",
    "AuthenticatedClient",
]
