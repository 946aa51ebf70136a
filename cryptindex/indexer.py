"""Index building: collect entries from sources, coalesce splits, write out.

``Indexer`` is the single engine; the dialect it is bound to decides whether
entries carry per-chunk nonces and whether source manifests may have their IV
overridden by a ``manifest_nonce`` blob.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, List, Optional, Union

from .constants import ARCHIVE_REF_PREFIX, MANIFEST_NAMES
from .encryption import AesKeys
from .entry import Index, IndexEntry
from .errors import MissingEntryError
from .manifest import bloom_filter_bytes, encrypt_document, flat_document, read_index
from .splits import join_splits
from .storage import DirectorySource, FileSource, UrlSource, ZipSource, is_url, write_blob
from . import tree
from .versions import DIALECT_V1, DIALECT_V3, Dialect, get_dialect


log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def remote_location(url: str, chunk: str) -> str:
    """Address ``chunk`` relative to the source URL, keeping its query string."""
    return UrlSource(url).blob_url(chunk)


def directory_location(path: PathLike, chunk: str) -> str:
    return os.path.join(os.fspath(path), chunk)


def archive_location(path: PathLike, chunk: str) -> str:
    return f"{ARCHIVE_REF_PREFIX}{os.fspath(path)}!{chunk}"


class Indexer:
    dialect: Dialect = DIALECT_V1

    def __init__(self, keys: Union[AesKeys, str], *, dialect: Optional[Dialect] = None):
        if isinstance(keys, str):
            keys = AesKeys.from_password(keys)
        self.keys = keys
        if dialect is not None:
            self.dialect = dialect
        self.index = Index()

    @property
    def codec(self):
        return self.dialect.codec

    # -- sources -----------------------------------------------------------

    def _add_relocated(self, source: FileSource, relocate: Callable[[str], str], label: str) -> int:
        found = read_index(source, self.keys, self.dialect, MANIFEST_NAMES.raw)
        for name, entry in found.files.items():
            self.index.files[name] = entry.copy(chunks=[relocate(c) for c in entry.chunks])
        log.debug("merged %d entries from %s", len(found.files), label)
        return len(found.files)

    def add_index(self, url: str) -> int:
        """Merge the raw manifest served at ``url``; chunks become URLs under it."""
        return self._add_relocated(UrlSource(url), lambda c: remote_location(url, c), url)

    def add_index_directory(self, path: PathLike) -> int:
        return self._add_relocated(
            DirectorySource(path), lambda c: directory_location(path, c), os.fspath(path)
        )

    def add_index_zip(self, path: PathLike) -> int:
        return self._add_relocated(
            ZipSource(path), lambda c: archive_location(path, c), os.fspath(path)
        )

    def add_indexed(self, locator: PathLike) -> int:
        """Merge a finalized manifest as-is; its chunk locations are already absolute."""
        if isinstance(locator, str) and is_url(locator):
            source: FileSource = UrlSource(locator)
        else:
            source = DirectorySource(locator)
        found = read_index(source, self.keys, self.dialect, MANIFEST_NAMES.finalized)
        self.index.files.update(found.files)
        log.debug("merged %d finalized entries from %s", len(found.files), os.fspath(locator))
        return len(found.files)

    # -- entries -----------------------------------------------------------

    def list(self) -> List[str]:
        return list(self.index.files)

    def has(self, name: str) -> bool:
        return name in self.index.files

    def get(self, name: str) -> Optional[IndexEntry]:
        return self.index.files.get(name)

    def put(self, name: str, entry: IndexEntry) -> None:
        self.index.files[name] = self.codec.coerce(entry)

    def _require(self, name: str) -> IndexEntry:
        try:
            return self.index.files[name]
        except KeyError:
            raise MissingEntryError(name) from None

    def move(self, src: str, dst: str) -> None:
        entry = self._require(src)
        del self.index.files[src]
        self.index.files[dst] = entry

    mv = move

    def copy(self, src: str, dst: str) -> None:
        self.index.files[dst] = self._require(src).copy()

    def delete(self, name: str) -> None:
        self.index.files.pop(name, None)

    def last_modified(self, name: str) -> int:
        entry = self.index.files.get(name)
        return entry.last_modified if entry is not None else -1

    def size(self, name: str) -> int:
        entry = self.index.files.get(name)
        return entry.size if entry is not None else -1

    def join_splits(self) -> List[str]:
        return join_splits(self.index.files)

    def merge(self, other: "Indexer") -> None:
        for name, entry in other.index.files.items():
            self.index.files[name] = self.codec.coerce(entry)

    # -- output ------------------------------------------------------------

    def bloom_filter(self) -> bytes:
        return bloom_filter_bytes(self.index.files)

    def serialize(self) -> bytes:
        return encrypt_document(self.keys, flat_document(self.index, self.codec))

    def write_to(self, target: FileSource) -> None:
        write_blob(target, MANIFEST_NAMES.finalized, self.serialize())
        log.info("wrote flat manifest with %d entries", len(self.index.files))

    def write_tree(self, target: FileSource, clean: bool = True) -> List[str]:
        return tree.write_tree(target, self.keys, self.index, self.codec, clean=clean)


class V1Indexer(Indexer):
    dialect = DIALECT_V1


class V3Indexer(Indexer):
    dialect = DIALECT_V3


def new_indexer(password: str, dialect: Union[str, Dialect] = DIALECT_V3) -> Indexer:
    if isinstance(dialect, str):
        dialect = get_dialect(dialect)
    return Indexer(password, dialect=dialect)
