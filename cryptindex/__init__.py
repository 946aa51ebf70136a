"""
cryptindex: encrypted, mergeable file indexes.

An index maps logical file names to the chunk locations, sizes and timestamps
of their stored bytes. This package provides:

- Builders that merge raw indexes from URLs, directories and zip archives,
  or finalized indexes as-is, rewriting chunk locations as needed
- Coalescing of numbered ``<name>.<seq>.split`` pieces into one entry
- A flat encrypted manifest writer (with an informational bloom filter)
- A hierarchical writer that shards large indexes into a search tree of small
  encrypted blobs, plus a reader that descends it
- Two manifest dialects: v1 (plain chunk lists) and v3 (per-chunk nonces),
  where v3 reads v1 manifests transparently

Storage and AES encryption are thin collaborators in cryptindex.storage and
cryptindex.encryption.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "entry",
    "indexer",
    "manifest",
    "splits",
    "tree",
    "storage",
    "encryption",
]

# Programmatic API: cryptindex.indexer.V1Indexer / V3Indexer, or the CLI
# functions in cryptindex.cli (cmd_build/cmd_list/cmd_lookup).
