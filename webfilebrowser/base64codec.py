"""Standard base64 encoding and a lenient decoder that stops at the first foreign character."""

from __future__ import annotations

import base64 as _b64
import string
from itertools import takewhile

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "+/"
_VALID = frozenset(ALPHABET)


def is_base64(char: str | int) -> bool:
    """Return True if *char* (a character or a byte value) belongs to the base64 alphabet."""
    if isinstance(char, int):
        if not 0 <= char < 0x110000:
            return False
        char = chr(char)
    return char in _VALID


def encode(data: bytes | bytearray | memoryview) -> str:
    """Encode *data* as padded base64 text."""
    return _b64.b64encode(bytes(data)).decode("ascii")


def decode(text: str | bytes) -> bytes:
    """Decode base64 *text*.

    Decoding stops at the first padding sign or at the first character outside
    the alphabet; whatever came before it is decoded. A trailing partial group of
    n characters yields n - 1 bytes.
    """
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("latin-1")
    prefix = "".join(takewhile(is_base64, text))
    if len(prefix) % 4 == 1:
        prefix = prefix[:-1]
    padding = "=" * (-len(prefix) % 4)
    return _b64.b64decode(prefix + padding)