from __future__ import annotations

from dataclasses import dataclass

from .entry import EntryCodec, NonceEntryCodec


@dataclass(frozen=True)
class Dialect:
    name: str
    codec: EntryCodec
    # honour a "manifest_nonce" blob when decrypting source manifests
    nonce_override: bool


DIALECT_V1 = Dialect(name="v1", codec=EntryCodec(), nonce_override=False)
DIALECT_V3 = Dialect(name="v3", codec=NonceEntryCodec(), nonce_override=True)

DIALECTS = {d.name: d for d in (DIALECT_V1, DIALECT_V3)}


def get_dialect(name: str) -> Dialect:
    try:
        return DIALECTS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown dialect: {name!r} (expected one of {', '.join(DIALECTS)})") from None
