"""Named-blob sources the indexer reads manifests from and writes shards to.

Every source speaks the same small protocol: ``has``, ``open``, ``put``,
``delete`` and ``list``. ``open`` returns a readable binary stream and ``put``
returns a writable one that commits on close, so callers use both as context
managers.
"""

from __future__ import annotations

import io
import os
import urllib.error
import urllib.parse
import urllib.request
import zipfile
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Protocol

from .errors import ReadOnlySourceError


class FileSource(Protocol):
    def has(self, name: str) -> bool: ...

    def open(self, name: str) -> BinaryIO: ...

    def put(self, name: str) -> BinaryIO: ...

    def delete(self, name: str) -> None: ...

    def list(self) -> List[str]: ...


def read_blob(source: FileSource, name: str) -> bytes:
    with source.open(name) as fh:
        return fh.read()


def write_blob(source: FileSource, name: str, data: bytes) -> None:
    with source.put(name) as fh:
        fh.write(data)


class _MemorySink(io.BytesIO):
    def __init__(self, store: Dict[str, bytes], name: str):
        super().__init__()
        self._store = store
        self._name = name

    def close(self) -> None:
        if not self.closed:
            self._store[self._name] = self.getvalue()
        super().close()


class MemorySource:
    def __init__(self, blobs: Optional[Dict[str, bytes]] = None):
        self.blobs: Dict[str, bytes] = dict(blobs or {})

    def has(self, name: str) -> bool:
        return name in self.blobs

    def open(self, name: str) -> BinaryIO:
        return io.BytesIO(self.blobs[name])

    def put(self, name: str) -> BinaryIO:
        return _MemorySink(self.blobs, name)

    def delete(self, name: str) -> None:
        self.blobs.pop(name, None)

    def list(self) -> List[str]:
        return list(self.blobs)


class DirectorySource:
    """Blobs stored as plain files directly under ``root``."""

    def __init__(self, root: str | os.PathLike, *, create: bool = False):
        self.root = Path(root)
        if create:
            self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise ValueError(f"Invalid blob name: {name!r}")
        return self.root / name

    def has(self, name: str) -> bool:
        return self._path(name).is_file()

    def open(self, name: str) -> BinaryIO:
        return open(self._path(name), "rb")

    def put(self, name: str) -> BinaryIO:
        return open(self._path(name), "wb")

    def delete(self, name: str) -> None:
        try:
            self._path(name).unlink()
        except FileNotFoundError:
            pass

    def list(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_file())


class ZipSource:
    """Read-only view of the members of a zip archive."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def _names(self) -> List[str]:
        with zipfile.ZipFile(self.path) as zf:
            return [i.filename for i in zf.infolist() if not i.is_dir()]

    def has(self, name: str) -> bool:
        return name in self._names()

    def open(self, name: str) -> BinaryIO:
        with zipfile.ZipFile(self.path) as zf:
            return io.BytesIO(zf.read(name))

    def put(self, name: str) -> BinaryIO:
        raise ReadOnlySourceError(f"Zip source is read-only: {self.path}")

    def delete(self, name: str) -> None:
        raise ReadOnlySourceError(f"Zip source is read-only: {self.path}")

    def list(self) -> List[str]:
        return self._names()


class UrlSource:
    """Read-only source where blob ``n`` lives at ``<path>/<n>?<query>``."""

    def __init__(self, url: str):
        self.url = url
        self._parts = urllib.parse.urlsplit(url)

    def blob_url(self, name: str) -> str:
        p = self._parts
        query = p.query if p.query.strip() else ""
        return urllib.parse.urlunsplit((p.scheme, p.netloc, f"{p.path}/{name}", query, ""))

    def has(self, name: str) -> bool:
        req = urllib.request.Request(self.blob_url(name), method="HEAD")
        try:
            with urllib.request.urlopen(req):
                return True
        except urllib.error.HTTPError as e:
            if e.code in (404, 410):
                return False
            raise
        except urllib.error.URLError as e:
            if self._parts.scheme == "file" and isinstance(e.reason, OSError):
                return False
            raise

    def open(self, name: str) -> BinaryIO:
        with urllib.request.urlopen(self.blob_url(name)) as resp:
            return io.BytesIO(resp.read())

    def put(self, name: str) -> BinaryIO:
        raise ReadOnlySourceError(f"URL source is read-only: {self.url}")

    def delete(self, name: str) -> None:
        raise ReadOnlySourceError(f"URL source is read-only: {self.url}")

    def list(self) -> List[str]:
        raise ReadOnlySourceError(f"URL source cannot be listed: {self.url}")


def is_url(locator: str) -> bool:
    scheme = urllib.parse.urlsplit(str(locator)).scheme
    # single letters are Windows drive prefixes
    return len(scheme) > 1


def open_source(locator: str | os.PathLike) -> FileSource:
    if isinstance(locator, str) and is_url(locator):
        return UrlSource(locator)
    return DirectorySource(locator)
