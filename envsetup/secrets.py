"""
Random secret generation for first-time project setup.

Only the operating system's cryptographic random source is used. If the
host has none, EntropySourceUnavailableError aborts the run; there is no
weaker fallback.
"""

from __future__ import annotations

import base64
import secrets

PASSWORD_LENGTH = 25
PASSWORD_RANDOM_BYTES = 32
KEY_RANDOM_BYTES = 64
PASSWORD_STRIP_CHARS = "=+/"


class EntropySourceUnavailableError(RuntimeError):
    """The OS cryptographic random source is unavailable."""


def _random_bytes(n: int) -> bytes:
    try:
        return secrets.token_bytes(n)
    except NotImplementedError as e:
        raise EntropySourceUnavailableError(
            "No cryptographically secure random source is available on this host"
        ) from e


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """
    Generate an alphanumeric password.

    32 random bytes are base64-encoded, the characters ``=+/`` removed and
    the result truncated to ``length``.

    Raises:
        EntropySourceUnavailableError: If no secure random source exists
    """
    value = ""
    # Stripping can leave fewer than `length` characters
    while len(value) < length:
        encoded = base64.b64encode(_random_bytes(PASSWORD_RANDOM_BYTES)).decode("ascii")
        value += encoded.translate(str.maketrans("", "", PASSWORD_STRIP_CHARS))
    return value[:length]


def generate_key_material() -> str:
    """
    Generate signing-key material: 64 random bytes, base64, not truncated.

    Raises:
        EntropySourceUnavailableError: If no secure random source exists
    """
    return base64.b64encode(_random_bytes(KEY_RANDOM_BYTES)).decode("ascii")
