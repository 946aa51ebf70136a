from __future__ import annotations

import hashlib


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def double_sha256(data: bytes) -> bytes:
    return sha256(sha256(data))


def hash_pair(data: bytes) -> tuple[int, int]:
    """Two independent 64-bit values for double hashing.

    The second value is forced odd so that successive probes never collapse
    onto the first one.
    """
    digest = sha256(data)
    h1 = int.from_bytes(digest[:8], "little")
    h2 = int.from_bytes(digest[8:16], "little") | 1
    return h1, h2
