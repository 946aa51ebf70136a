from __future__ import annotations

import tempfile
import unittest
import zipfile
from pathlib import Path

from cryptindex.errors import ReadOnlySourceError
from cryptindex.storage import (
    DirectorySource,
    MemorySource,
    UrlSource,
    ZipSource,
    is_url,
    open_source,
    read_blob,
    write_blob,
)


class SourceContractTests(unittest.TestCase):
    def _exercise(self, source):
        self.assertFalse(source.has("a"))
        write_blob(source, "a", b"hello")
        with source.put("b") as fh:
            fh.write(b"wor")
            fh.write(b"ld")
        self.assertTrue(source.has("a"))
        self.assertEqual(b"world", read_blob(source, "b"))
        self.assertEqual({"a", "b"}, set(source.list()))
        source.delete("a")
        source.delete("a")
        self.assertEqual(["b"], list(source.list()))

    def test_memory(self):
        self._exercise(MemorySource())

    def test_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            self._exercise(DirectorySource(Path(tmp) / "store", create=True))

    def test_directory_rejects_nested_names(self):
        with tempfile.TemporaryDirectory() as tmp:
            src = DirectorySource(tmp)
            for bad in ("", "..", "x/y", "x\\y"):
                with self.assertRaises(ValueError):
                    src.has(bad)

    def test_missing_directory_lists_nothing(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual([], DirectorySource(Path(tmp) / "absent").list())


class ReadOnlySourceTests(unittest.TestCase):
    def test_zip(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "a.zip"
            with zipfile.ZipFile(path, "w") as zf:
                zf.writestr("manifest", b"data")
                zf.writestr("sub/", b"")
            src = ZipSource(path)
            self.assertEqual(["manifest"], src.list())
            self.assertTrue(src.has("manifest"))
            self.assertFalse(src.has("other"))
            self.assertEqual(b"data", read_blob(src, "manifest"))
            with self.assertRaises(ReadOnlySourceError):
                src.put("x")
            with self.assertRaises(ReadOnlySourceError):
                src.delete("manifest")

    def test_file_url(self):
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "manifest").write_bytes(b"remote")
            src = UrlSource(Path(tmp).as_uri())
            self.assertTrue(src.has("manifest"))
            self.assertFalse(src.has("missing"))
            self.assertEqual(b"remote", read_blob(src, "manifest"))
            with self.assertRaises(ReadOnlySourceError):
                write_blob(src, "x", b"")

    def test_blob_url(self):
        self.assertEqual("http://h:81/p/q/name?t=1", UrlSource("http://h:81/p/q?t=1").blob_url("name"))

    def test_open_source_dispatch(self):
        self.assertTrue(is_url("https://example.org/x"))
        self.assertFalse(is_url("/var/data"))
        self.assertFalse(is_url("C:\\data"))
        self.assertIsInstance(open_source("file:///tmp/x"), UrlSource)
        self.assertIsInstance(open_source("relative/dir"), DirectorySource)


if __name__ == "__main__":
    unittest.main()
