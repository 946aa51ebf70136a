from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class ManifestNames:
    """Persisted blob names shared by every dialect.

    Readers in other implementations look these up verbatim.
    """

    raw: str = "manifest"
    finalized: str = "manifest_index"
    nonce: str = "manifest_nonce"
    tree_list: str = "manifest_hierarchical_list"
    tree_root: str = "manifest_hierarchical_root"
    tree_node: str = "manifest_hierarchical_node"
    tree_leaf: str = "manifest_hierarchical_leaf"

    def leaf(self, index: int) -> str:
        return f"{self.tree_leaf}_{index}"

    def node(self, depth: int, index: int) -> str:
        return f"{self.tree_node}_{depth}_{index}"


MANIFEST_NAMES = ManifestNames()

# Manifest document keys
META_BLOOM_FILTER = "bloom_filter"
META_HIERARCHICAL = "hierarchical"

# Key material: two halves of 16 bytes (AES-128 key + CBC IV)
KEY_HALF_SIZE = 16

# Hierarchical tree
FILES_PER_LEAF = 10
TREE_TYPE_LEAF = "leaf"
TREE_TYPE_NODE = "node"

# Bloom filter sizing
BLOOM_MIN_ELEMENTS = 3
BLOOM_FALSE_POSITIVE_RATE = 0.01
BLOOM_MAGIC = b"BLMF"

# "<base>.<sequence>.split"; the sequence token is fixed width so that a plain
# string sort of the piece names yields piece order.
SPLIT_FILENAME = re.compile(r"^(.+)\.(\d+)\.split$")

ARCHIVE_REF_PREFIX = "zip:"
