"""Encrypted manifest documents: reading sources, encoding flat manifests."""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Iterable

from .bloomfilter import BloomFilter
from .constants import (
    BLOOM_MIN_ELEMENTS,
    MANIFEST_NAMES,
    META_BLOOM_FILTER,
    META_HIERARCHICAL,
)
from .encryption import AesKeys, EncryptionContext
from .entry import EntryCodec, Index
from .errors import ManifestDecodeError, ManifestFormatError
from .storage import FileSource, read_blob
from .versions import Dialect


log = logging.getLogger(__name__)


def dump_json(doc: Any) -> bytes:
    return json.dumps(doc, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def encrypt_document(keys: AesKeys, doc: Any) -> bytes:
    return EncryptionContext(keys).encrypt(dump_json(doc))


def decrypt_document(keys: AesKeys, payload: bytes, *, what: str = "manifest") -> Any:
    try:
        plain = EncryptionContext(keys).decrypt(payload)
    except ValueError as e:
        raise ManifestDecodeError(f"cannot decrypt {what}: {e}") from e
    try:
        return json.loads(plain.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ManifestDecodeError(f"cannot parse {what}: {e}") from e


def decode_files(doc: Any, codec: EntryCodec) -> Index:
    files = doc.get("files") if isinstance(doc, dict) else None
    if not isinstance(files, dict):
        raise ManifestFormatError("manifest lacks a 'files' object")
    return Index({name: codec.from_document(entry) for name, entry in files.items()})


def manifest_keys(source: FileSource, keys: AesKeys, dialect: Dialect) -> AesKeys:
    if dialect.nonce_override and source.has(MANIFEST_NAMES.nonce):
        iv = read_blob(source, MANIFEST_NAMES.nonce)
        try:
            return keys.with_iv(iv)
        except ValueError as e:
            raise ManifestDecodeError(f"bad {MANIFEST_NAMES.nonce} blob: {e}") from e
    return keys


def read_index(
    source: FileSource,
    keys: AesKeys,
    dialect: Dialect,
    manifest_name: str = MANIFEST_NAMES.raw,
) -> Index:
    """Load the index stored under ``manifest_name``; empty when absent."""
    doc = read_document(source, keys, dialect, manifest_name)
    if doc is None:
        log.debug("no %s in source; contributing nothing", manifest_name)
        return Index()
    return decode_files(doc, dialect.codec)


def read_document(source: FileSource, keys: AesKeys, dialect: Dialect, manifest_name: str) -> Any:
    if not source.has(manifest_name):
        return None
    return decrypt_document(
        manifest_keys(source, keys, dialect),
        read_blob(source, manifest_name),
        what=manifest_name,
    )


def bloom_filter_bytes(names: Iterable[str]) -> bytes:
    names = list(names)
    bf = BloomFilter(max(len(names), BLOOM_MIN_ELEMENTS))
    for name in names:
        bf.add(name.encode("utf-8"))
    return bf.serialize()


def flat_document(index: Index, codec: EntryCodec) -> dict:
    return {
        "files": {name: codec.to_document(e) for name, e in index.files.items()},
        # informational only; nothing reads it back
        "meta": {
            META_BLOOM_FILTER: base64.b64encode(bloom_filter_bytes(index.files)).decode("ascii"),
        },
    }


def placeholder_document() -> dict:
    return {
        "files": {},
        "meta": {META_HIERARCHICAL: "true"},
        META_HIERARCHICAL: "true",
    }


def is_hierarchical(doc: Any) -> bool:
    if not isinstance(doc, dict):
        return False
    meta = doc.get("meta")
    return doc.get(META_HIERARCHICAL) == "true" or (
        isinstance(meta, dict) and meta.get(META_HIERARCHICAL) == "true"
    )
