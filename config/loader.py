"""Settings sources for spotify-auth-core

A value comes from the process environment first, then from a ``.env`` file,
then from the default coded in ``settings.py``. The default also fixes the
type an environment string is parsed into.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_FILE_VAR = "SPOTIFY_AUTH_ENV_FILE"
_TRUTHY = ("true", "1", "yes", "on")


class ConfigLoader:
    """Resolves settings from the environment, a dotenv file and defaults"""

    def __init__(self, env_path: Optional[str] = None):
        """
        Args:
            env_path: dotenv file to read. Falls back to $SPOTIFY_AUTH_ENV_FILE,
                then to ``.env`` in the working directory.
        """
        self.env_path = Path(env_path or os.getenv(ENV_FILE_VAR) or ".env")
        if self.env_path.is_file():
            # override=False: variables already exported win over the file
            load_dotenv(dotenv_path=self.env_path, override=False)
            logger.debug(f"Read settings from {self.env_path}")
        else:
            logger.debug(f"No dotenv file at {self.env_path}")

    def get(self, env_var: str, default: Any) -> Any:
        """Look up ``env_var``, parsed like ``default``

        Numbers that fail to parse log a warning and yield ``default``.
        Strings starting with ``~/`` are expanded to the home directory.
        """
        raw = os.getenv(env_var)
        if raw is None:
            return self._expand(default)
        return self._coerce(env_var, raw.strip(), default)

    def _coerce(self, env_var: str, raw: str, default: Any) -> Any:
        # bool is an int subclass, so it has to be checked first
        if isinstance(default, bool):
            return raw.lower() in _TRUTHY

        for kind in (int, float):
            if isinstance(default, kind):
                try:
                    return kind(raw)
                except ValueError:
                    logger.warning(f"{env_var}={raw!r} is not a valid {kind.__name__}; keeping {default}")
                    return default

        return self._expand(raw)

    @staticmethod
    def _expand(value: Any) -> Any:
        if isinstance(value, str) and value.startswith("~/"):
            return str(Path(value).expanduser())
        return value


_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Return the process-wide loader, creating it on first use"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader
