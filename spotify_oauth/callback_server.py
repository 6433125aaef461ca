"""Capture of the Spotify authorization redirect

Two capture mechanisms share one contract (``start`` / ``wait_for_callback`` /
``dispose``): a short-lived local HTTP listener the browser is redirected to,
and a fallback that asks the user to paste the redirect URL.
"""
import asyncio
import html
import logging
import threading
from typing import Callable, Mapping, Optional
from urllib.parse import parse_qs, urlparse

from aiohttp import web

from settings import CALLBACK_HOST, CALLBACK_PATH, CALLBACK_PORT, CALLBACK_TIMEOUT
from .errors import (
    AuthorizationCancelled,
    AuthorizationDenied,
    CallbackError,
    CallbackTimeout,
    MalformedCallback,
    PortUnavailable,
    StateMismatch,
)

logger = logging.getLogger(__name__)

_PAGE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{title}</title>
  <style>
    body {{
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      display: flex; align-items: center; justify-content: center;
      height: 100vh; margin: 0; color: white;
      background: linear-gradient(135deg, {accent} 0%, #191414 100%);
    }}
    .container {{ text-align: center; background: rgba(0,0,0,0.5); padding: 40px; border-radius: 20px; }}
    .mark {{ color: {accent}; font-size: 64px; margin-bottom: 20px; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="mark">{mark}</div>
    <h1>{title}</h1>
    {body}
  </div>
</body>
</html>
"""


def render_success_page() -> str:
    return _PAGE.format(
        title="Authentication Successful!",
        accent="#1db954",
        mark="&#10003;",
        body="<p>You can close this window and return to the application.</p>",
    )


def render_failure_page(reason: str) -> str:
    return _PAGE.format(
        title="Authentication Failed",
        accent="#ff6b6b",
        mark="&#10007;",
        body=f"<p>Error: {html.escape(reason)}</p><p>Please close this window and try again.</p>",
    )


def classify_callback(params: Mapping[str, str], expected_state: str) -> str:
    """Decide the outcome of a redirect from its query parameters

    An ``error`` wins over everything else, then the state check, then the
    presence of a code.

    Args:
        params: Redirect query parameters
        expected_state: State generated for this attempt

    Returns:
        The authorization code

    Raises:
        AuthorizationDenied: The provider reported an error
        StateMismatch: The state does not belong to this attempt
        MalformedCallback: Neither code nor error was supplied
    """
    error = params.get("error")
    if error:
        raise AuthorizationDenied(error, params.get("error_description"))

    if params.get("state") != expected_state:
        raise StateMismatch()

    code = params.get("code")
    if code:
        return code

    raise MalformedCallback()


def parse_redirect_url(redirect_url: str) -> dict:
    """Return the first value of each query parameter of a redirect URL"""
    parsed = urlparse(str(redirect_url or "").strip())
    return {key: values[0] for key, values in parse_qs(parsed.query).items() if values}


def _consume_exception(future: asyncio.Future) -> None:
    # Outcomes nobody awaited must not be reported as "never retrieved"
    if not future.cancelled():
        future.exception()


class _CallbackCapture:
    """Exactly-once outcome shared by every capture mechanism"""

    def __init__(self, expected_state: str, timeout: Optional[float]):
        self.expected_state = expected_state
        self.timeout = timeout
        self._outcome: Optional[asyncio.Future] = None
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._started = False

    @property
    def done(self) -> bool:
        return self._outcome is not None and self._outcome.done()

    def _check_startable(self) -> None:
        if self._started:
            raise RuntimeError(f"{type(self).__name__} can only be started once")
        self._started = True

    def _arm(self) -> None:
        """Create the pending outcome and start the wall-clock deadline"""
        loop = asyncio.get_running_loop()
        self._outcome = loop.create_future()
        self._outcome.add_done_callback(_consume_exception)
        if self.timeout:
            self._timeout_handle = loop.call_later(self.timeout, self._on_timeout)

    def _resolve(self, code: Optional[str] = None, error: Optional[CallbackError] = None) -> bool:
        """Settle the outcome; returns False when it was already settled"""
        if self._outcome is None or self._outcome.done():
            return False
        if error is not None:
            self._outcome.set_exception(error)
        else:
            self._outcome.set_result(code)
        self._cancel_timer()
        return True

    def _cancel_timer(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

    def _on_timeout(self) -> None:
        self._timeout_handle = None
        if self._resolve(error=CallbackTimeout(self.timeout)):
            logger.warning(f"No authorization callback within {self.timeout:g} seconds")
        self._begin_close()

    def _begin_close(self) -> Optional[asyncio.Future]:
        """Start releasing resources; returns an awaitable for completion"""
        return None

    async def wait_for_callback(self) -> str:
        """Wait for the attempt to resolve

        Returns:
            The authorization code

        Raises:
            CallbackError: The classified reason the attempt failed
        """
        if self._outcome is None:
            raise RuntimeError("Capture has not been started")
        try:
            return await self._outcome
        finally:
            await self.dispose()

    async def dispose(self) -> None:
        """Cancel a pending attempt and release resources (idempotent)"""
        self._resolve(error=AuthorizationCancelled())
        self._cancel_timer()
        closing = self._begin_close()
        if closing is not None:
            await asyncio.shield(closing)


class CallbackListener(_CallbackCapture):
    """Local HTTP server receiving exactly one authorization redirect"""

    def __init__(
        self,
        expected_state: str,
        host: str = CALLBACK_HOST,
        port: int = CALLBACK_PORT,
        path: str = CALLBACK_PATH,
        timeout: Optional[float] = CALLBACK_TIMEOUT,
    ):
        super().__init__(expected_state, timeout)
        self.host = host
        self.port = port
        self.path = path
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self._closing: Optional[asyncio.Future] = None

        # Register callback route; every other path is a plain 404
        self.app.router.add_get(path, self._handle_callback)

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.host}:{self.port}{self.path}"

    async def start(self) -> None:
        """Bind the listener on its fixed port

        Raises:
            PortUnavailable: The port is already bound
        """
        self._check_startable()

        runner = web.AppRunner(self.app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, host=self.host, port=self.port)

        try:
            await site.start()
        except OSError as e:
            await runner.cleanup()
            logger.error(f"Cannot bind OAuth callback listener on {self.host}:{self.port}: {e}")
            raise PortUnavailable(self.host, self.port, str(e)) from e

        self.runner = runner
        self._arm()
        logger.info(f"OAuth callback listener waiting on {self.redirect_uri}")

    async def _handle_callback(self, request: web.Request) -> web.StreamResponse:
        """Handle the browser redirect"""
        if self._outcome is None or self._outcome.done():
            return web.Response(
                text=render_failure_page("This login attempt has already completed."),
                content_type="text/html",
                status=410,
            )

        try:
            code = classify_callback(request.query, self.expected_state)
        except CallbackError as e:
            if isinstance(e, AuthorizationDenied):
                logger.warning(f"Spotify denied authorization: {e.error}")
                reason = e.description or e.error
            else:
                logger.warning(f"Rejected OAuth callback: {e}")
                reason = str(e)
            response = web.Response(text=render_failure_page(reason), content_type="text/html", status=400)
            try:
                await self._send(request, response)
            finally:
                # A browser that hangs up early must not lose the outcome
                self._resolve(error=e)
            return response

        response = web.Response(text=render_success_page(), content_type="text/html")
        try:
            await self._send(request, response)
        finally:
            self._resolve(code=code)
        logger.info("Received authorization code from Spotify")
        return response

    @staticmethod
    async def _send(request: web.Request, response: web.StreamResponse) -> None:
        # Flush the page before the outcome lets the listener shut down
        await response.prepare(request)
        await response.write_eof()

    def _begin_close(self) -> Optional[asyncio.Future]:
        if self._closing is None and self.runner is not None:
            runner, self.runner = self.runner, None
            self._closing = asyncio.ensure_future(runner.cleanup())
            logger.debug(f"Closing OAuth callback listener on port {self.port}")
        return self._closing


class PastedRedirectCapture(_CallbackCapture):
    """Fallback capture: the user pastes the redirect URL from the browser

    Used where the browser cannot reach a loopback listener. ``prompt`` is a
    blocking callable (``input`` by default) run on a daemon thread, so an
    unanswered prompt never keeps the process alive once the attempt ends.
    """

    def __init__(
        self,
        expected_state: str,
        redirect_uri: str,
        prompt: Optional[Callable[[str], str]] = None,
        timeout: Optional[float] = CALLBACK_TIMEOUT,
    ):
        super().__init__(expected_state, timeout)
        self.redirect_uri = redirect_uri
        self.prompt = prompt or input
        self._reader: Optional[threading.Thread] = None

    async def start(self) -> None:
        self._check_startable()
        self._arm()
        loop = asyncio.get_running_loop()
        self._reader = threading.Thread(
            target=self._read_redirect, args=(loop,), name="spotify-redirect-prompt", daemon=True,
        )
        self._reader.start()

    def _read_redirect(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            pasted: Optional[str] = self.prompt("Paste the full redirect URL: ")
        except EOFError:
            pasted = None

        try:
            loop.call_soon_threadsafe(self._on_pasted, pasted)
        except RuntimeError:
            # Event loop already closed: the attempt ended without this answer
            logger.debug("Ignoring redirect URL entered after the login attempt ended")

    def _on_pasted(self, pasted: Optional[str]) -> None:
        if self.done:
            logger.debug("Ignoring redirect URL entered after the login attempt ended")
            return
        if pasted is None:
            self._resolve(error=AuthorizationCancelled("No redirect URL was entered"))
            return
        try:
            code = classify_callback(parse_redirect_url(pasted), self.expected_state)
        except CallbackError as e:
            logger.warning(f"Rejected pasted redirect: {e}")
            self._resolve(error=e)
            return
        self._resolve(code=code)
