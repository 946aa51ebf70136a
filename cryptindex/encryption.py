from __future__ import annotations

from dataclasses import dataclass, replace

from Cryptodome.Cipher import AES
from Cryptodome.Util.Padding import pad, unpad

from .constants import KEY_HALF_SIZE
from .hashutil import double_sha256


@dataclass(frozen=True)
class AesKeys:
    key: bytes
    iv: bytes

    def __post_init__(self) -> None:
        if len(self.key) != KEY_HALF_SIZE or len(self.iv) != KEY_HALF_SIZE:
            raise ValueError(f"AES key material must be two {KEY_HALF_SIZE}-byte halves")

    @classmethod
    def from_password(cls, password: str) -> "AesKeys":
        """Derive key material the way every manifest writer does.

        key = first 16 bytes of sha256(sha256(password))
        iv  = last 16 bytes of sha256(sha256(password + password))
        """
        first = double_sha256(password.encode("utf-8"))
        second = double_sha256((password + password).encode("utf-8"))
        return cls(first[:KEY_HALF_SIZE], second[-KEY_HALF_SIZE:])

    def with_iv(self, iv: bytes) -> "AesKeys":
        return replace(self, iv=bytes(iv))


class EncryptionContext:
    """AES-128-CBC with PKCS#7 padding over whole blobs."""

    def __init__(self, keys: AesKeys):
        self.keys = keys

    def _cipher(self):
        return AES.new(self.keys.key, AES.MODE_CBC, iv=self.keys.iv)

    def encrypt(self, plaintext: bytes) -> bytes:
        return self._cipher().encrypt(pad(plaintext, AES.block_size))

    def decrypt(self, payload: bytes) -> bytes:
        if len(payload) == 0 or len(payload) % AES.block_size:
            raise ValueError("Encrypted payload is not a whole number of AES blocks")
        # unpad raises ValueError on a wrong key as well as on truncation
        return unpad(self._cipher().decrypt(payload), AES.block_size)
