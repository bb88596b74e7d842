"""Fernet-based encryption for secrets stored in delivery channel configs.

Channel configs keep passwords and webhook signing secrets encrypted at rest.
Without a key (``ALERTING_SECRET_KEY`` unset) the box is a passthrough so that
development setups with plaintext configs keep working.
"""

from __future__ import annotations

import base64
import logging
import os

from cryptography.fernet import Fernet, InvalidToken

log = logging.getLogger(__name__)

ENV_KEY = "ALERTING_SECRET_KEY"


class SecretBox:
    """Encrypt/decrypt channel secrets with a single Fernet key."""

    def __init__(self, key: str | bytes | None = None) -> None:
        self._cipher: Fernet | None = None
        if key:
            if isinstance(key, str):
                key = key.encode()
            # Accept a raw 32-byte key as well as the urlsafe-base64 form
            if len(key) == 32:
                key = base64.urlsafe_b64encode(key)
            self._cipher = Fernet(key)

    @classmethod
    def from_env(cls) -> SecretBox:
        key = os.getenv(ENV_KEY)
        if not key:
            log.debug("%s not set — channel secrets are used as stored", ENV_KEY)
        return cls(key)

    @property
    def enabled(self) -> bool:
        return self._cipher is not None

    def encrypt(self, plaintext: str) -> str:
        if self._cipher is None:
            return plaintext
        return self._cipher.encrypt(plaintext.encode()).decode()

    def decrypt(self, encrypted: str) -> str:
        """Return the plaintext; a value that is not a valid token is returned as-is."""
        if self._cipher is None:
            return encrypted
        try:
            return self._cipher.decrypt(encrypted.encode()).decode()
        except InvalidToken:
            log.debug("Secret is not a valid token; using stored value")
            return encrypted
