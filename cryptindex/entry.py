from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ManifestFormatError


@dataclass
class IndexEntry:
    """One logical file: its chunk locations in concatenation order.

    ``nonces`` is ``None`` for entries that do not track per-chunk nonces;
    otherwise it holds one integer per chunk.
    """

    chunks: List[str] = field(default_factory=list)
    nonces: Optional[List[int]] = None
    split_size: int = 0
    last_modified: int = 0
    size: int = 0

    def __post_init__(self) -> None:
        if self.nonces is not None and len(self.nonces) != len(self.chunks):
            raise ValueError(
                f"nonce count {len(self.nonces)} does not match chunk count {len(self.chunks)}"
            )

    def copy(self, **changes: Any) -> "IndexEntry":
        values = {
            "chunks": list(self.chunks),
            "nonces": None if self.nonces is None else list(self.nonces),
            "split_size": self.split_size,
            "last_modified": self.last_modified,
            "size": self.size,
        }
        values.update(changes)
        return IndexEntry(**values)


@dataclass
class Index:
    files: Dict[str, IndexEntry] = field(default_factory=dict)


def _require(doc: Dict[str, Any], key: str) -> Any:
    try:
        return doc[key]
    except (KeyError, TypeError):
        raise ManifestFormatError(f"entry document lacks {key!r}") from None


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ManifestFormatError(f"{key!r} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ManifestFormatError(f"{key!r} must be an integer, got {value!r}") from None


class EntryCodec:
    """Entry <-> document conversion without per-chunk nonces."""

    tracks_nonces = False

    def to_document(self, entry: IndexEntry) -> Dict[str, Any]:
        return {
            "files": list(entry.chunks),
            "splitSize": entry.split_size,
            "lastModified": entry.last_modified,
            "size": entry.size,
        }

    def from_document(self, doc: Dict[str, Any]) -> IndexEntry:
        chunks = _require(doc, "files")
        if not isinstance(chunks, list):
            raise ManifestFormatError("'files' must be a list")
        return IndexEntry(
            chunks=[str(c) for c in chunks],
            nonces=self._read_nonces(doc, len(chunks)),
            split_size=_as_int(_require(doc, "splitSize"), "splitSize"),
            last_modified=_as_int(_require(doc, "lastModified"), "lastModified"),
            size=_as_int(_require(doc, "size"), "size"),
        )

    def _read_nonces(self, doc: Dict[str, Any], count: int) -> Optional[List[int]]:
        return None

    def coerce(self, entry: IndexEntry) -> IndexEntry:
        """Value copy of ``entry`` in this codec's shape."""
        return entry.copy(nonces=None)


class NonceEntryCodec(EntryCodec):
    """Entry <-> document conversion carrying one nonce per chunk.

    Documents written without a ``nonce`` list read back with all-zero nonces.
    """

    tracks_nonces = True

    def to_document(self, entry: IndexEntry) -> Dict[str, Any]:
        doc = super().to_document(entry)
        nonces = entry.nonces if entry.nonces is not None else [0] * len(entry.chunks)
        # decimal strings: values are arbitrary precision
        doc["nonce"] = [str(n) for n in nonces]
        return {k: doc[k] for k in ("files", "nonce", "splitSize", "lastModified", "size")}

    def _read_nonces(self, doc: Dict[str, Any], count: int) -> Optional[List[int]]:
        raw = doc.get("nonce")
        if raw is None:
            return [0] * count
        if not isinstance(raw, list):
            raise ManifestFormatError("'nonce' must be a list")
        if len(raw) != count:
            raise ManifestFormatError(f"'nonce' has {len(raw)} values for {count} chunks")
        return [_as_int(n, "nonce") for n in raw]

    def coerce(self, entry: IndexEntry) -> IndexEntry:
        if entry.nonces is None:
            return entry.copy(nonces=[0] * len(entry.chunks))
        return entry.copy()
