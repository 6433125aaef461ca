"""Logging setup and a Rich console that mirrors its output into the debug log"""

import io
import logging
import os
from typing import Optional
from rich.console import Console as RichConsole

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class DebugCapturingConsole(RichConsole):
    """
    Rich Console that also writes a plain text copy of everything it prints
    to a debug logger, so the log file shows what the user saw.
    """

    def __init__(self, debug_logger: Optional[logging.Logger] = None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.debug_logger = debug_logger
        self._log_prefix = "[CONSOLE] "

    def print(self, *objects, **kwargs):
        super().print(*objects, **kwargs)

        if self.debug_logger and self.debug_logger.isEnabledFor(logging.DEBUG):
            plain_text = self._render_to_plain_text(*objects, **kwargs)
            if plain_text.strip():
                self.debug_logger.debug(f"{self._log_prefix}{plain_text}")

    def _render_to_plain_text(self, *objects, **kwargs) -> str:
        """Render objects without markup, colors or terminal control codes"""
        buffer = io.StringIO()
        plain = RichConsole(file=buffer, force_terminal=False, no_color=True, width=self.width)
        plain.print(*objects, **kwargs)
        return buffer.getvalue().rstrip()


def create_debug_console(debug_enabled: bool = False,
                         debug_logger: Optional[logging.Logger] = None) -> RichConsole:
    """
    Create appropriate console instance based on debug mode.

    Returns:
        DebugCapturingConsole if debug enabled, regular Console otherwise
    """
    if debug_enabled and debug_logger:
        return DebugCapturingConsole(debug_logger=debug_logger)
    return RichConsole()


def setup_debug_logger(log_file: str) -> logging.Logger:
    """
    Set up a dedicated logger for debug console output.

    Args:
        log_file: Path to debug log file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("debug_console")
    logger.setLevel(logging.DEBUG)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(message)s'))
    logger.addHandler(file_handler)

    # Console output is already on screen; keep it out of the root handlers
    logger.propagate = False

    return logger


def configure_logging(level: str = "info", debug: bool = False, log_file: Optional[str] = None) -> Optional[logging.Logger]:
    """
    Configure root logging for the CLI.

    Normal runs log warnings and above (or ``level``) to stderr. Debug runs log
    everything to stderr and append to ``log_file``, and return the logger
    used by DebugCapturingConsole.
    """
    root_logger = logging.getLogger()

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(_LOG_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if not debug:
        root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
        return None

    root_logger.setLevel(logging.DEBUG)
    log_path = os.path.abspath(log_file or "spotify_auth_debug.log")
    file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logging.getLogger(__name__).info(f"Debug logging enabled - appending to {log_path}")
    return setup_debug_logger(log_path)
