"""Deterministic short-code derivation.

A short code is the first ``SHORT_CODE_LENGTH`` characters of the base-58
encoding of the SHA-256 digest of the long URL's UTF-8 bytes. The same long
URL therefore always maps to the same code, which is what makes create
idempotent.

Derivation
==========
::
    long_url ──► UTF-8 bytes ──► SHA-256 (32 bytes) ──► base58 ──► [:8]

Key Behaviours
===============
- Pure: no I/O, no shared state, safe to call concurrently.
- The alphabet omits ``0``, ``O``, ``I`` and ``l`` so codes are URL-safe and
  unambiguous when read aloud.
- Truncation means two different URLs can collide on the same code. The
  store keeps the first writer; see ``ResolutionService.create``.

Functions:
    generate_short_code():  long URL -> short code.
    b58encode() / b58decode():  Bitcoin-style base58 codec.
"""

import hashlib

__all__ = ["BASE58_ALPHABET", "SHORT_CODE_LENGTH", "b58decode", "b58encode", "generate_short_code"]

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
SHORT_CODE_LENGTH = 8

_BASE = len(BASE58_ALPHABET)
_INDEX = {char: position for position, char in enumerate(BASE58_ALPHABET)}


def b58encode(data: bytes) -> str:
    """Encode bytes to a base58 string.

    Leading zero bytes are preserved as leading ``1`` characters.

    Example:
        >>> b58encode(b"a")
        '2g'
    """
    number = int.from_bytes(data, "big")
    result = []

    while number > 0:
        number, remainder = divmod(number, _BASE)
        result.append(BASE58_ALPHABET[remainder])

    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    return BASE58_ALPHABET[0] * leading_zeros + "".join(result[::-1])


def b58decode(value: str) -> bytes:
    """Decode a base58 string back to bytes.

    Raises:
        ValueError: If ``value`` contains a character outside the alphabet.
    """
    number = 0
    for char in value:
        try:
            number = number * _BASE + _INDEX[char]
        except KeyError:
            raise ValueError(f"Invalid base58 character {char!r}") from None

    leading_ones = len(value) - len(value.lstrip(BASE58_ALPHABET[0]))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big")
    return b"\x00" * leading_ones + body


def generate_short_code(long_url: str, length: int = SHORT_CODE_LENGTH) -> str:
    digest = hashlib.sha256(long_url.encode("utf-8")).digest()
    return b58encode(digest)[:length]
