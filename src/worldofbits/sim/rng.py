from __future__ import annotations

import hashlib

_FRACTION_BITS = 53


def luck(key: str) -> float:
    """Deterministic uniform value in [0, 1) derived from ``key``."""
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    value = int.from_bytes(digest[:8], byteorder="big", signed=False) >> (64 - _FRACTION_BITS)
    return value / float(1 << _FRACTION_BITS)


def cell_seed_key(i: int, j: int, tag: str) -> str:
    return f"{i},{j},{tag}"
