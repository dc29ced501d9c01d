"""ULID generation helpers.

Audit entries and decisions are keyed by ULIDs so identifiers sort in creation
order. The canonical string form is 26 Crockford Base32 characters encoding a
48-bit millisecond timestamp followed by 80 bits of random entropy.
"""

from __future__ import annotations

import secrets
import time

_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ULID_LENGTH = 26
_ENTROPY_BITS = 80
_MAX_TIMESTAMP_MS = (1 << 48) - 1


def generate_ulid_str(*, timestamp_ms: int | None = None) -> str:
    """Generate a new ULID in canonical 26-char string form."""
    ts_ms = int(time.time() * 1000) if timestamp_ms is None else int(timestamp_ms)
    if not 0 <= ts_ms <= _MAX_TIMESTAMP_MS:
        raise ValueError("timestamp_ms out of ULID 48-bit range")
    number = (ts_ms << _ENTROPY_BITS) | secrets.randbits(_ENTROPY_BITS)
    return _encode(number)


def _encode(number: int) -> str:
    chars = []
    for _ in range(_ULID_LENGTH):
        number, remainder = divmod(number, 32)
        chars.append(_ALPHABET[remainder])
    return "".join(reversed(chars))
