"""HMAC-SHA256 verification of inbound webhook deliveries."""

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    """Return the `sha256=<hexdigest>` signature for a raw body."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, signature_header: str | None, secret: str | None) -> bool:
    """
    Check a signature header against the raw request body.

    Missing secret or header never verifies. Comparison is constant-time.
    """
    if not secret or not signature_header:
        return False
    if not signature_header.startswith(SIGNATURE_PREFIX):
        return False
    return hmac.compare_digest(compute_signature(body, secret), signature_header)
