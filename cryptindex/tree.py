"""Static multiway search tree of encrypted manifest shards.

Leaves hold up to ``FILES_PER_LEAF`` entries in name order; every internal
node lists its children together with the smallest name each child covers.
The top node is stored under the fixed root name so that readers can start
there and descend to the single leaf that may hold a given name.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .constants import (
    FILES_PER_LEAF,
    MANIFEST_NAMES,
    TREE_TYPE_LEAF,
    TREE_TYPE_NODE,
)
from .encryption import AesKeys
from .entry import EntryCodec, Index, IndexEntry
from .errors import ManifestDecodeError, ManifestFormatError, TreeConsistencyError
from .manifest import decrypt_document, encrypt_document, placeholder_document
from .storage import FileSource, read_blob, write_blob


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeNode:
    name: str
    start: str
    end: str


def _chunked(items: list, size: int) -> List[list]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def build_tree(index: Index, codec: EntryCodec, fanout: int = FILES_PER_LEAF) -> Dict[str, object]:
    """Lay out ``index`` as tree documents keyed by shard name.

    The returned mapping is ordered leaves first, then internal nodes layer by
    layer, then the root. It does not include the shard list.
    """
    names = sorted(index.files)
    docs: Dict[str, object] = {}
    if not names:
        docs[MANIFEST_NAMES.tree_root] = {"files": {}, "type": TREE_TYPE_LEAF}
        return docs

    layer: List[TreeNode] = []
    for i, group in enumerate(_chunked(names, fanout)):
        files = {n: codec.to_document(index.files[n]) for n in group if n in index.files}
        if len(files) != len(group):
            raise TreeConsistencyError(f"leaf {i} expected {len(group)} entries, found {len(files)}")
        name = MANIFEST_NAMES.leaf(i)
        docs[name] = {"files": files, "type": TREE_TYPE_LEAF}
        layer.append(TreeNode(name, group[0], group[-1]))

    depth = 1
    while len(layer) > 1:
        depth += 1
        parents: List[TreeNode] = []
        for i, children in enumerate(_chunked(layer, fanout)):
            name = MANIFEST_NAMES.node(depth, i)
            docs[name] = {
                "start": children[0].start,
                "end": children[-1].end,
                "child": [c.name for c in children],
                "child_start": [c.start for c in children],
                "type": TREE_TYPE_NODE,
            }
            parents.append(TreeNode(name, children[0].start, children[-1].end))
        layer = parents

    top = layer[0]
    if top.start != names[0] or top.end != names[-1]:
        raise TreeConsistencyError(
            f"root covers {top.start!r}..{top.end!r}, index spans {names[0]!r}..{names[-1]!r}"
        )
    docs[MANIFEST_NAMES.tree_root] = docs.pop(top.name)
    return docs


def read_shard_list(source: FileSource, keys: AesKeys) -> List[str]:
    if not source.has(MANIFEST_NAMES.tree_list):
        return []
    doc = decrypt_document(keys, read_blob(source, MANIFEST_NAMES.tree_list), what=MANIFEST_NAMES.tree_list)
    if not isinstance(doc, list):
        raise ManifestFormatError(f"{MANIFEST_NAMES.tree_list} is not a list")
    return [str(n) for n in doc]


def clean_tree(source: FileSource, keys: AesKeys) -> List[str]:
    """Delete every shard recorded by a previous tree write."""
    removed = []
    for name in read_shard_list(source, keys):
        if source.has(name):
            source.delete(name)
            removed.append(name)
    log.debug("removed %d stale shards", len(removed))
    return removed


def write_tree(source: FileSource, keys: AesKeys, index: Index, codec: EntryCodec, *, clean: bool = True) -> List[str]:
    """Write ``index`` as a shard tree; returns the shard names written."""
    docs = build_tree(index, codec)
    shard_names = list(docs)

    if clean:
        clean_tree(source, keys)
    write_blob(source, MANIFEST_NAMES.finalized, encrypt_document(keys, placeholder_document()))

    docs[MANIFEST_NAMES.tree_list] = shard_names
    for name, doc in docs.items():
        write_blob(source, name, encrypt_document(keys, doc))
        log.debug("wrote shard %s", name)
    log.info("wrote tree of %d shards for %d entries", len(shard_names), len(index.files))
    return shard_names


def _load_shard(source: FileSource, keys: AesKeys, name: str) -> dict:
    doc = decrypt_document(keys, read_blob(source, name), what=name)
    if not isinstance(doc, dict) or doc.get("type") not in (TREE_TYPE_LEAF, TREE_TYPE_NODE):
        raise ManifestFormatError(f"{name} is not a tree shard")
    return doc


def find_leaf(source: FileSource, keys: AesKeys, name: str) -> Tuple[Optional[str], Optional[dict]]:
    """Descend from the root to the leaf whose range may contain ``name``."""
    shard = MANIFEST_NAMES.tree_root
    doc = _load_shard(source, keys, shard)
    while doc["type"] == TREE_TYPE_NODE:
        starts = doc.get("child_start") or []
        children = doc.get("child") or []
        if len(starts) != len(children):
            raise ManifestFormatError(f"{shard} has mismatched child lists")
        pos = bisect.bisect_right(starts, name) - 1
        if pos < 0 or name > doc.get("end", ""):
            return None, None
        shard = children[pos]
        doc = _load_shard(source, keys, shard)
    return shard, doc


def lookup(source: FileSource, keys: AesKeys, name: str, codec: EntryCodec) -> Optional[IndexEntry]:
    if not source.has(MANIFEST_NAMES.tree_root):
        raise ManifestDecodeError(f"no {MANIFEST_NAMES.tree_root} in source")
    _, leaf = find_leaf(source, keys, name)
    if leaf is None:
        return None
    files = leaf.get("files") or {}
    if name not in files:
        return None
    return codec.from_document(files[name])


def tree_height(source: FileSource, keys: AesKeys) -> int:
    """Number of shard layers from the root down to the leaves."""
    height = 1
    doc = _load_shard(source, keys, MANIFEST_NAMES.tree_root)
    while doc["type"] == TREE_TYPE_NODE:
        doc = _load_shard(source, keys, doc["child"][0])
        height += 1
    return height
