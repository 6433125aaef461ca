"""Durable key-value storage owned by the host application"""

import json
import logging
import os
import platform
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from settings import STATE_FILE

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """Minimal key-value interface consumed by the credential store"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when the key is absent"""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value"""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the key; absent keys are ignored"""


class MemoryStorage(KeyValueStorage):
    """In-process storage, used by tests and ephemeral sessions"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """JSON file backed storage with owner-only permissions

    Every write replaces the whole file atomically, so a concurrent reader
    sees either the previous or the new document, never a partial one.
    """

    def __init__(self, state_file: Optional[str] = None):
        self.path = Path(state_file if state_file else STATE_FILE)
        self._ensure_secure_directory()

    def _ensure_secure_directory(self):
        """Create parent directory with secure permissions"""
        parent_dir = self.path.parent
        if not parent_dir.exists():
            parent_dir.mkdir(parents=True, exist_ok=True)
            # Set directory permissions to 700 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(parent_dir, 0o700)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to read state file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring state file {self.path}: expected a JSON object")
            return {}
        return data

    def _write_all(self, data: Dict[str, Any]) -> None:
        self._ensure_secure_directory()
        fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=".state-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            # Set file permissions to 600 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, key: str) -> Optional[Any]:
        return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)
        logger.debug(f"Wrote key {key!r} to {self.path}")

    def delete(self, key: str) -> None:
        data = self._read_all()
        if key not in data:
            return
        del data[key]
        self._write_all(data)
        logger.debug(f"Removed key {key!r} from {self.path}")
