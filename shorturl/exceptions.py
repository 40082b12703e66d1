"""Error taxonomy for the resolution engine.

Storage adapters translate driver errors into these types; nothing above the
adapters ever sees a raw SQLAlchemy or Redis exception. Each error carries a
message that is safe to return to clients.
"""

__all__ = [
    "ShortenerError",
    "InvalidInputError",
    "NotFoundError",
    "StoreUnavailableError",
    "CacheUnavailableError",
    "AdmissionRejectedError",
]


class ShortenerError(Exception):
    """Base class for all errors raised by the service."""

    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(ShortenerError):
    """Malformed long URL, short code or request body. Always client-caused."""

    status_code = 400
    default_message = "Invalid input"


class NotFoundError(ShortenerError):
    """Well-formed short code with no matching mapping."""

    status_code = 404
    default_message = "Short code not found"


class StoreUnavailableError(ShortenerError):
    """The authoritative store could not be reached or timed out."""

    status_code = 500
    default_message = "Storage backend unavailable"


class CacheUnavailableError(ShortenerError):
    """The fast cache could not be reached or timed out.

    The resolution service degrades this to a cache miss; it only reaches a
    client if raised outside the resolve path.
    """

    status_code = 502
    default_message = "Cache backend unavailable"


class AdmissionRejectedError(ShortenerError):
    """The admission gate refused the request (queue full or wait timed out)."""

    status_code = 429
    default_message = "Too many requests"

    def __init__(self, message: str | None = None, retry_after: float = 1.0):
        super().__init__(message)
        self.retry_after = retry_after
