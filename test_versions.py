from __future__ import annotations

import hashlib
import os
import tempfile
import unittest
from pathlib import Path

from cryptindex.constants import MANIFEST_NAMES
from cryptindex.encryption import AesKeys, EncryptionContext
from cryptindex.entry import EntryCodec, IndexEntry, NonceEntryCodec
from cryptindex.errors import ManifestDecodeError, ManifestFormatError
from cryptindex.indexer import V1Indexer, V3Indexer, new_indexer
from cryptindex.manifest import encrypt_document
from cryptindex.storage import DirectorySource, write_blob
from cryptindex.versions import DIALECT_V1, DIALECT_V3, get_dialect


PASSWORD = "versions"


def _v1_doc(chunks, size):
    return {"files": list(chunks), "splitSize": 0, "lastModified": 123, "size": size}


class KeyDerivationTests(unittest.TestCase):
    def test_halves(self):
        keys = AesKeys.from_password("pw")
        first = hashlib.sha256(hashlib.sha256(b"pw").digest()).digest()
        second = hashlib.sha256(hashlib.sha256(b"pwpw").digest()).digest()
        self.assertEqual(first[:16], keys.key)
        self.assertEqual(second[16:], keys.iv)

    def test_non_ascii_password(self):
        keys = AesKeys.from_password("pässwörd")
        first = hashlib.sha256(hashlib.sha256("pässwörd".encode("utf-8")).digest()).digest()
        self.assertEqual(first[:16], keys.key)

    def test_bad_half_length(self):
        with self.assertRaises(ValueError):
            AesKeys(b"k" * 16, b"short")

    def test_round_trip(self):
        ctx = EncryptionContext(AesKeys.from_password(PASSWORD))
        for data in (b"", b"x", os.urandom(16), os.urandom(1000)):
            self.assertEqual(data, ctx.decrypt(ctx.encrypt(data)))


class CodecTests(unittest.TestCase):
    def test_v3_reads_v1_document_with_zero_nonces(self):
        entry = NonceEntryCodec().from_document(_v1_doc(["a", "b", "c"], 3))
        self.assertEqual([0, 0, 0], entry.nonces)
        self.assertEqual(len(entry.chunks), len(entry.nonces))

    def test_v3_accepts_integer_nonces(self):
        doc = dict(_v1_doc(["a"], 1), nonce=[12345678901234567890123])
        self.assertEqual([12345678901234567890123], NonceEntryCodec().from_document(doc).nonces)

    def test_v1_ignores_nonce_field(self):
        doc = dict(_v1_doc(["a"], 1), nonce=["5"])
        self.assertIsNone(EntryCodec().from_document(doc).nonces)

    def test_document_round_trip(self):
        e = IndexEntry(chunks=["a", "b"], nonces=[1, 2 ** 128], split_size=9, last_modified=8, size=7)
        codec = NonceEntryCodec()
        self.assertEqual(e, codec.from_document(codec.to_document(e)))
        self.assertEqual(["files", "nonce", "splitSize", "lastModified", "size"], list(codec.to_document(e)))

    def test_malformed_documents(self):
        codec = NonceEntryCodec()
        with self.assertRaises(ManifestFormatError):
            codec.from_document({"files": ["a"], "splitSize": 0, "lastModified": 0})
        with self.assertRaises(ManifestFormatError):
            codec.from_document(dict(_v1_doc(["a", "b"], 2), nonce=["1"]))
        with self.assertRaises(ManifestFormatError):
            codec.from_document(dict(_v1_doc(["a"], 1), size="big"))

    def test_entry_rejects_mismatched_nonces(self):
        with self.assertRaises(ValueError):
            IndexEntry(chunks=["a"], nonces=[1, 2])


class DialectInteropTests(unittest.TestCase):
    def run_with_tmpdir(self, func):
        with tempfile.TemporaryDirectory() as tmp:
            func(Path(tmp))

    def test_v3_indexer_reads_v1_manifest(self):
        def scenario(tmp_path: Path):
            v1 = V1Indexer(PASSWORD)
            v1.put("f", IndexEntry(chunks=["x", "y"], size=2))
            v1.write_to(DirectorySource(tmp_path))
            v3 = V3Indexer(PASSWORD)
            v3.add_indexed(tmp_path)
            self.assertEqual([0, 0], v3.get("f").nonces)
            self.assertEqual(["x", "y"], v3.get("f").chunks)

        self.run_with_tmpdir(scenario)

    def test_nonce_override_decrypts_manifest(self):
        def scenario(tmp_path: Path):
            iv = os.urandom(16)
            keys = AesKeys.from_password(PASSWORD).with_iv(iv)
            src = DirectorySource(tmp_path)
            write_blob(src, MANIFEST_NAMES.raw, encrypt_document(keys, {"files": {"f": _v1_doc(["0"], 1)}}))
            write_blob(src, MANIFEST_NAMES.nonce, iv)

            v3 = V3Indexer(PASSWORD)
            self.assertEqual(1, v3.add_index_directory(tmp_path))
            self.assertEqual([str(tmp_path / "0")], v3.get("f").chunks)

            # the older dialect does not know about the override
            with self.assertRaises(ManifestDecodeError):
                V1Indexer(PASSWORD).add_index_directory(tmp_path)

        self.run_with_tmpdir(scenario)

    def test_bad_nonce_override(self):
        def scenario(tmp_path: Path):
            src = DirectorySource(tmp_path)
            keys = AesKeys.from_password(PASSWORD)
            write_blob(src, MANIFEST_NAMES.raw, encrypt_document(keys, {"files": {}}))
            write_blob(src, MANIFEST_NAMES.nonce, b"short")
            with self.assertRaises(ManifestDecodeError):
                V3Indexer(PASSWORD).add_index_directory(tmp_path)

        self.run_with_tmpdir(scenario)

    def test_dialect_lookup(self):
        self.assertIs(DIALECT_V1, get_dialect("v1"))
        self.assertIs(DIALECT_V3, get_dialect("V3"))
        self.assertIs(DIALECT_V3, new_indexer(PASSWORD, "v3").dialect)
        with self.assertRaises(ValueError):
            get_dialect("v2")


if __name__ == "__main__":
    unittest.main()
