from __future__ import annotations

import math
import struct
from typing import Iterable

from .constants import BLOOM_FALSE_POSITIVE_RATE, BLOOM_MAGIC
from .hashutil import hash_pair


_HDR_STRUCT = struct.Struct("<4sIQ")  # magic, hash count, bit count


class BloomFilter:
    """Probabilistic set membership over byte strings.

    ``might_contain`` can report false positives but never false negatives for
    anything passed to ``add``.
    """

    def __init__(self, expected_elements: int, fp_rate: float = BLOOM_FALSE_POSITIVE_RATE):
        n = max(1, int(expected_elements))
        m = max(8, int(math.ceil(-n * math.log(fp_rate) / (math.log(2) ** 2))))
        k = max(1, int(round(m / n * math.log(2))))
        self._init(k, m)

    def _init(self, num_hashes: int, num_bits: int) -> None:
        self.num_hashes = num_hashes
        self.num_bits = num_bits
        self.bits = bytearray((num_bits + 7) // 8)

    def _positions(self, item: bytes) -> Iterable[int]:
        h1, h2 = hash_pair(item)
        for i in range(self.num_hashes):
            yield (h1 + i * h2) % self.num_bits

    def add(self, item: bytes) -> None:
        for pos in self._positions(item):
            self.bits[pos >> 3] |= 1 << (pos & 7)

    def might_contain(self, item: bytes) -> bool:
        return all(self.bits[pos >> 3] & (1 << (pos & 7)) for pos in self._positions(item))

    __contains__ = might_contain

    def size_in_bytes(self) -> int:
        return _HDR_STRUCT.size + len(self.bits)

    def serialize(self) -> bytes:
        return _HDR_STRUCT.pack(BLOOM_MAGIC, self.num_hashes, self.num_bits) + bytes(self.bits)

    @classmethod
    def deserialize(cls, data: bytes) -> "BloomFilter":
        if len(data) < _HDR_STRUCT.size:
            raise ValueError("Bloom filter data too short")
        magic, k, m = _HDR_STRUCT.unpack_from(data, 0)
        if magic != BLOOM_MAGIC:
            raise ValueError("Bad bloom filter magic")
        body = data[_HDR_STRUCT.size:]
        if k == 0 or m == 0 or len(body) != (m + 7) // 8:
            raise ValueError("Bloom filter header does not match its bit array")
        bf = cls.__new__(cls)
        bf._init(k, m)
        bf.bits[:] = body
        return bf
