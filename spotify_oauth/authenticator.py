"""One Spotify authorization attempt, from browser launch to credential"""

import logging
import time
import webbrowser
from typing import Callable, Optional, Union

import httpx

from settings import CALLBACK_HOST, CALLBACK_MODE, CALLBACK_PATH, CALLBACK_PORT, CALLBACK_TIMEOUT
from .authorization import create_authorization_flow
from .callback_server import CallbackListener, PastedRedirectCapture
from .errors import ConfigurationMissing, SpotifyAuthError
from .models import Credential
from .token_exchange import exchange_code_for_tokens

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[SpotifyAuthError], None]
CALLBACK_MODES = ("listener", "paste")


class Authenticator:
    """Runs the Authorization Code + PKCE flow

    At most one attempt is in flight per instance: starting a new attempt
    disposes the previous capture first, which resolves that attempt as
    cancelled and releases its port.
    """

    def __init__(
        self,
        host: str = CALLBACK_HOST,
        port: int = CALLBACK_PORT,
        path: str = CALLBACK_PATH,
        timeout: Optional[float] = CALLBACK_TIMEOUT,
        mode: str = CALLBACK_MODE,
        browser_opener: Optional[Callable[[str], bool]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
        on_error: Optional[ErrorCallback] = None,
        prompt: Optional[Callable[[str], str]] = None,
    ):
        if mode not in CALLBACK_MODES:
            raise ValueError(f"Unknown callback mode {mode!r}, expected one of {CALLBACK_MODES}")

        self.host = host
        self.port = port
        self.path = path
        self.timeout = timeout
        self.mode = mode
        self.browser_opener = browser_opener or webbrowser.open
        self.http_client = http_client
        self.clock = clock
        self.on_error = on_error
        self.prompt = prompt
        self.last_error: Optional[SpotifyAuthError] = None
        self._attempts = 0
        self._capture: Optional[Union[CallbackListener, PastedRedirectCapture]] = None

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.host}:{self.port}{self.path}"

    @property
    def in_progress(self) -> bool:
        return self._capture is not None

    def _create_capture(self, state: str) -> Union[CallbackListener, PastedRedirectCapture]:
        if self.mode == "paste":
            return PastedRedirectCapture(state, self.redirect_uri, prompt=self.prompt, timeout=self.timeout)
        return CallbackListener(state, host=self.host, port=self.port, path=self.path, timeout=self.timeout)

    def _report(self, error: SpotifyAuthError) -> None:
        self.last_error = error
        logger.error(f"Spotify authentication failed: {error}")
        if self.on_error is not None:
            self.on_error(error)

    def _open_browser(self, url: str) -> None:
        try:
            opened = self.browser_opener(url)
        except webbrowser.Error as e:
            logger.debug(f"Browser launch raised: {e}")
            opened = False

        if opened:
            logger.info("Opened Spotify authorization page in the browser")
        else:
            logger.warning(f"Could not open browser automatically. Open this URL manually:\n{url}")

    async def authenticate(self, client_id: str) -> Optional[Credential]:
        """Run one authorization attempt

        Args:
            client_id: Spotify application client id

        Returns:
            The new credential, or None on any failure (see ``last_error``)
        """
        self._attempts += 1
        attempt = self._attempts
        self.last_error = None

        if not client_id or not client_id.strip():
            self._report(ConfigurationMissing())
            return None

        await self.cancel()

        flow = create_authorization_flow(client_id, self.redirect_uri)
        capture = self._create_capture(flow.state)
        self._capture = capture

        try:
            # The capture must be ready before the browser can redirect back
            await capture.start()
            self._open_browser(flow.url)

            code = await capture.wait_for_callback()

            issued_at = self.clock()
            tokens = await exchange_code_for_tokens(
                client_id,
                code,
                self.redirect_uri,
                flow.pkce.verifier,
                http_client=self.http_client,
            )
            credential = tokens.to_credential(issued_at)
            logger.info(f"Authenticated with Spotify, access token valid until {credential.expires_at_iso()}")
            return credential

        except SpotifyAuthError as e:
            if attempt == self._attempts:
                self._report(e)
            else:
                # A newer attempt owns last_error and the error callback now
                logger.info(f"Superseded Spotify authorization attempt ended: {e}")
            return None

        finally:
            await capture.dispose()
            if self._capture is capture:
                self._capture = None

    async def cancel(self) -> None:
        """Dispose a pending attempt, if any (idempotent)"""
        capture, self._capture = self._capture, None
        if capture is not None:
            logger.info("Cancelling pending Spotify authorization attempt")
            await capture.dispose()
