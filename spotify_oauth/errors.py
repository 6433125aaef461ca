"""Classified failures raised by the Spotify OAuth core"""

from typing import Any, Optional


class SpotifyAuthError(Exception):
    """Base class for every authentication failure

    ``user_message`` is the single actionable line shown to the user.
    """

    user_message = "Spotify authentication failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class ConfigurationMissing(SpotifyAuthError):
    """No client id was configured"""

    user_message = "Spotify client id is not configured. Set SPOTIFY_CLIENT_ID and try again."


class PortUnavailable(SpotifyAuthError):
    """The callback listener could not bind its fixed port"""

    user_message = "Could not start the local login listener: the port is already in use."

    def __init__(self, host: str, port: int, reason: Optional[str] = None):
        self.host = host
        self.port = port
        detail = f"Port {port} on {host} is unavailable"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail)


class CallbackError(SpotifyAuthError):
    """An authorization attempt ended without a usable code"""

    user_message = "Spotify authentication failed or was cancelled."


class AuthorizationDenied(CallbackError):
    """The provider redirected back with an ``error`` parameter"""

    def __init__(self, error: str, description: Optional[str] = None):
        self.error = error
        self.description = description
        super().__init__(f"Authorization denied: {error}")


class StateMismatch(CallbackError):
    """The returned state does not belong to this attempt"""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "State parameter mismatch (possible CSRF or stale redirect)")


class MalformedCallback(CallbackError):
    """The redirect carried neither a code nor an error"""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Callback carried no authorization code")


class CallbackTimeout(CallbackError):
    """No redirect arrived before the attempt deadline"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"No authorization callback received within {timeout:g} seconds")


class AuthorizationCancelled(CallbackError):
    """The attempt was disposed before it resolved"""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Authorization attempt was cancelled")


class ExchangeFailed(SpotifyAuthError):
    """The token endpoint rejected a code or refresh token"""

    user_message = "Spotify rejected the login. Please authenticate again."

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)


class NotAuthenticated(SpotifyAuthError):
    """No usable credential is available for an API call"""

    user_message = "Please authenticate with Spotify first."


class AuthorizationExpired(SpotifyAuthError):
    """An API call stayed unauthorized after the single refresh-and-retry"""

    user_message = "Spotify session expired. Please authenticate again."
