"""Persistence of the Spotify credential in host-owned key-value storage"""

import logging
from typing import Optional

from settings import CREDENTIAL_KEY
from utils.storage import JsonFileStorage, KeyValueStorage
from .models import Credential

logger = logging.getLogger(__name__)


class CredentialStore:
    """Reads and writes the single credential slot

    An absent key means unauthenticated. A stored value that cannot be parsed
    is treated the same way.
    """

    def __init__(self, storage: Optional[KeyValueStorage] = None, key: str = CREDENTIAL_KEY):
        self.storage = storage if storage is not None else JsonFileStorage()
        self.key = key

    def load(self) -> Optional[Credential]:
        data = self.storage.get(self.key)
        if data is None:
            logger.debug("No stored Spotify credential")
            return None

        try:
            credential = Credential.from_dict(data)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable stored credential: {e}")
            return None

        logger.debug("Loaded Spotify credential from storage")
        return credential

    def save(self, credential: Credential) -> bool:
        try:
            self.storage.set(self.key, credential.to_dict())
        except OSError as e:
            logger.error(f"Failed to save Spotify credential: {e}")
            return False
        return True

    def clear(self) -> bool:
        try:
            self.storage.delete(self.key)
        except OSError as e:
            logger.error(f"Failed to clear Spotify credential: {e}")
            return False
        logger.info("Cleared stored Spotify credential")
        return True
