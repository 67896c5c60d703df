"""
Security helpers for Contribution Badges.

Provides:
- Webhook signature verification (HMAC-SHA256)
- Token encryption (Fernet)
"""

from typing import TYPE_CHECKING, Any

from .signatures import compute_signature, verify_signature

if TYPE_CHECKING:
    from .encryption import EncryptionError, TokenEncryption, get_encryption_service


def __getattr__(name: str) -> Any:
    """
    Lazy attribute loading for the encryption service.

    Settings and logging import this package early; loading Fernet and
    settings eagerly here would create an import cycle.
    """
    if name in {"EncryptionError", "TokenEncryption", "get_encryption_service"}:
        from . import encryption

        return getattr(encryption, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "compute_signature",
    "verify_signature",
    "EncryptionError",
    "TokenEncryption",
    "get_encryption_service",
]
