"""
Domain exceptions for the badge engine.

The HTTP layer maps these onto status codes in
backend.app.error_handlers; services raise them and let callers decide.
"""


class BadgeEngineError(Exception):
    """Base class for all badge engine errors."""

    status_code = 500


class AuthenticationFailure(BadgeEngineError):
    """Webhook signature missing, invalid, or no secret configured."""

    status_code = 401


class InvalidPayloadError(BadgeEngineError):
    """Inbound payload could not be parsed."""

    status_code = 400


class NotFoundError(BadgeEngineError):
    """Repository, membership, badge or award does not exist."""

    status_code = 404


class UpstreamFetchError(BadgeEngineError):
    """GitHub API unreachable, rate-limited, or returned an error."""

    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class ConflictError(BadgeEngineError):
    """Uniqueness violation; callers treat it as an idempotent no-op."""

    status_code = 409


class TransactionError(BadgeEngineError):
    """Storage-level fault that rolled back a multi-write operation."""

    status_code = 500


__all__ = [
    "BadgeEngineError",
    "AuthenticationFailure",
    "InvalidPayloadError",
    "NotFoundError",
    "UpstreamFetchError",
    "ConflictError",
    "TransactionError",
]
