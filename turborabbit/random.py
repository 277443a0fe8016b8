"""Random strings and byte payloads for test and load-generation letters."""

from __future__ import annotations

import random
import time

RANDOM_MIN = 1500
RANDOM_MAX = 2500

LETTER_BYTES = "0123456789!@#$%^&*()_+abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LETTER_IDX_BITS = 6
_LETTER_IDX_MASK = (1 << _LETTER_IDX_BITS) - 1
_LETTER_IDX_MAX = 63 // _LETTER_IDX_BITS

_mock_random = random.Random(time.time_ns())


def random_string_from_source(size: int, src: random.Random) -> str:
    """Build a string of ``size`` characters from LETTER_BYTES drawn from ``src``.

    Each 63-bit draw is split into 6-bit indices; indices past the alphabet
    are skipped, and the string is filled from its end.
    """
    if size < 0:
        raise ValueError("size can't be negative")
    chars: list[str] = []
    cache = src.getrandbits(63)
    remain = _LETTER_IDX_MAX
    while len(chars) < size:
        if remain == 0:
            cache, remain = src.getrandbits(63), _LETTER_IDX_MAX
        idx = cache & _LETTER_IDX_MASK
        if idx < len(LETTER_BYTES):
            chars.append(LETTER_BYTES[idx])
        cache >>= _LETTER_IDX_BITS
        remain -= 1
    return "".join(reversed(chars))


def random_string(size: int) -> str:
    """Build a random string from a source freshly seeded with the current time."""
    return random_string_from_source(size, random.Random(time.time_ns()))


def random_bytes(size: int) -> bytes:
    """Return a random string of ``size`` characters as bytes."""
    return random_string_from_source(size, _mock_random).encode("ascii")


def repeated_bytes(size: int, repeat: int) -> bytes | None:
    """Return ``size`` bytes holding their own index (mod 256) up to the last full run.

    Returns None when ``repeat`` is below 10.
    """
    if repeat < 10:
        return None
    if size < 0:
        raise ValueError("size can't be negative")
    last = size - repeat + 1
    return bytes((i % 256) if i <= last else 0 for i in range(size))


def repeated_random_string(size: int, repeat: int) -> str:
    """Build a string of random characters each repeated ``repeat`` times, cut at ``size``.

    Returns an empty string when ``repeat`` is below 10.
    """
    if repeat < 10:
        return ""
    pieces: list[str] = []
    for i in range(size):
        char = random_string(1)
        count = min(repeat, size - i)
        pieces.append(char * count)
        if count < repeat:
            break
    return "".join(pieces)