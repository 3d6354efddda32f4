"""Encryption of stored owner OAuth tokens"""

import logging

from cryptography.fernet import Fernet, InvalidToken

from beta_signup.config import settings

logger = logging.getLogger(__name__)


class TokenDecryptionError(Exception):
    """Stored token could not be decrypted (corrupted or wrong key)."""


class TokenCipher:
    """Fernet wrapper for the owner credentials stored on an app."""

    def __init__(self, key: str | bytes | None = None):
        key = key or settings.token_encryption_key
        if not key:
            raise ValueError("TOKEN_ENCRYPTION_KEY is required to store owner credentials")
        self._fernet = Fernet(key)

    def encrypt(self, token: str | None) -> str | None:
        if not token:
            return None
        return self._fernet.encrypt(token.encode("utf-8")).decode("ascii")

    def decrypt(self, encrypted: str | None) -> str | None:
        if not encrypted:
            return None
        try:
            return self._fernet.decrypt(encrypted.encode("ascii")).decode("utf-8")
        except InvalidToken as e:
            logger.error("Failed to decrypt stored owner token")
            raise TokenDecryptionError("Stored token is corrupted or the key changed") from e
