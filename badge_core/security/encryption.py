"""
Token encryption service using Fernet symmetric encryption.

GitHub access tokens are used as bearer credentials for upstream statistics
and repository fetches; they are stored encrypted when TOKEN_ENCRYPTION_KEY
is configured.
"""

from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from badge_core.config import get_settings
from badge_core.logging import get_logger

logger = get_logger("security.encryption")

# Fernet tokens are urlsafe base64 and start with this prefix
_FERNET_PREFIX = "gAAAAA"


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""

    pass


class TokenEncryption:
    """
    Fernet-based encryption for sensitive tokens.

    Usage:
        encryption = TokenEncryption(key)
        encrypted = encryption.encrypt("ghp_xxxx...")
        decrypted = encryption.decrypt(encrypted)

    Without a key the service is unavailable and the *_if_* helpers pass
    values through unchanged.
    """

    def __init__(self, key: str | None = None):
        self._fernet: Fernet | None = None
        if key:
            try:
                self._fernet = Fernet(key.encode())
            except ValueError as exc:
                logger.error("encryption_init_failed", error=str(exc))
                raise EncryptionError("TOKEN_ENCRYPTION_KEY is not a valid Fernet key") from exc
            logger.info("encryption_initialized")
        else:
            logger.warning("encryption_disabled", reason="TOKEN_ENCRYPTION_KEY not set")

    @property
    def is_available(self) -> bool:
        return self._fernet is not None

    def encrypt(self, plaintext: str) -> str:
        if self._fernet is None:
            raise EncryptionError("Encryption is not available")
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        if self._fernet is None:
            raise EncryptionError("Encryption is not available")
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as exc:
            logger.error("decrypt_invalid_token")
            raise EncryptionError("Invalid token - decryption failed") from exc

    def encrypt_if_available(self, plaintext: str) -> tuple[str, bool]:
        """
        Encrypt if a key is configured.

        Returns:
            Tuple of (result_string, was_encrypted)
        """
        if not self.is_available:
            return plaintext, False
        return self.encrypt(plaintext), True

    def decrypt_if_encrypted(self, value: str) -> str:
        """Decrypt values that look like Fernet tokens, pass others through."""
        if not self.is_available or not value.startswith(_FERNET_PREFIX):
            return value
        return self.decrypt(value)


@lru_cache(maxsize=1)
def get_encryption_service() -> TokenEncryption:
    """Get the process-wide TokenEncryption instance."""
    return TokenEncryption(get_settings().token_encryption_key)
