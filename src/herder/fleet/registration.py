"""Registration key that worker instances present when they enroll."""

import hmac
import logging
import secrets
import string
from pathlib import Path
from typing import Optional, Union

from herder.fleet.errors import RegistrationError

logger = logging.getLogger(__name__)

KEY_ALPHABET = string.ascii_uppercase + string.digits
KEY_LENGTH = 12


def generate_key(length: int = KEY_LENGTH) -> str:
    """Generate a random key from A-Z and 0-9."""
    return "".join(secrets.choice(KEY_ALPHABET) for _ in range(length))


class RegistrationKeyStore:
    """
    Holds the current registration key, optionally persisted to a file.

    Precedence on startup: the key file if it exists, then the configured
    key, then a freshly generated one.
    """

    def __init__(self, key: Optional[str] = None, key_file: Optional[Union[str, Path]] = None):
        self.key_file = Path(key_file).expanduser() if key_file else None
        stored = self._read_file()
        self._key = stored or key or generate_key()
        if not stored and self.key_file:
            self._write_file(self._key)

    def _read_file(self) -> Optional[str]:
        if not self.key_file or not self.key_file.exists():
            return None
        value = self.key_file.read_text().strip()
        return value or None

    def _write_file(self, key: str) -> None:
        if not self.key_file:
            return
        self.key_file.parent.mkdir(parents=True, exist_ok=True)
        self.key_file.write_text(key)

    @property
    def key(self) -> str:
        return self._key

    def set_key(self, key: Optional[str] = None) -> str:
        """
        Replace the key. Generates one when ``key`` is empty.

        Returns:
            The key now in effect
        """
        if key is not None:
            key = key.strip()
            if key and len(key) < 6:
                raise RegistrationError("Registration key must be at least 6 characters")
        self._key = key or generate_key()
        self._write_file(self._key)
        logger.info("Registration key updated")
        return self._key

    def verify(self, candidate: str) -> bool:
        return hmac.compare_digest(candidate.encode("utf-8"), self._key.encode("utf-8"))

    def require(self, candidate: str) -> None:
        if not self.verify(candidate):
            raise RegistrationError("Invalid registration key")
