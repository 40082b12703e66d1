"""Input checks that run before anything touches storage.

Both checks are pure and synchronous. ``valid_short_code`` is the first line
of defence against adversarial path segments: anything that cannot be a code
this service minted is rejected before the cache or the database is asked.
"""

import re
from urllib.parse import urlsplit

import validators

from shorturl.codegen import SHORT_CODE_LENGTH, b58decode

__all__ = ["valid_long_url", "valid_short_code"]

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_WEB_SCHEMES = {"http", "https"}


def valid_long_url(value: str) -> bool:
    """Return True if ``value`` is a syntactically valid absolute URL.

    A scheme and an authority are both required. Web URLs are additionally
    checked with the ``validators`` library; the host is never resolved.

    The web check is stricter than a WHATWG parser: hostnames containing
    ``_`` and paths with unescaped ``^``, ``{`` or ``}`` are rejected and must
    be percent-encoded by the caller (``/a%7Bb%7D``).
    """
    if not isinstance(value, str) or not value or value != value.strip():
        return False
    if any(ch.isspace() for ch in value):
        return False

    try:
        parts = urlsplit(value)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return False

    if not _SCHEME_RE.match(parts.scheme) or not parts.netloc or not parts.hostname:
        return False

    if parts.scheme.lower() in _WEB_SCHEMES:
        return bool(validators.url(value, simple_host=True, strict_query=False))
    return True


def valid_short_code(value: str, length: int = SHORT_CODE_LENGTH) -> bool:
    """Return True if ``value`` has the minted length and decodes as base58."""
    if not isinstance(value, str) or len(value) != length:
        return False
    try:
        b58decode(value)
    except ValueError:
        return False
    return True
