from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List

from .constants import SPLIT_FILENAME
from .entry import IndexEntry


log = logging.getLogger(__name__)


def find_split_groups(names) -> Dict[str, List[str]]:
    """Map each base name to its split-piece names, sorted into piece order."""
    groups: Dict[str, List[str]] = defaultdict(list)
    for name in names:
        m = SPLIT_FILENAME.match(name)
        if m is None:
            continue
        groups[m.group(1)].append(name)
    return {base: sorted(pieces) for base, pieces in groups.items()}


def join_pieces(pieces: List[IndexEntry]) -> IndexEntry:
    """Concatenate ordered piece entries into one entry.

    Timestamps and split size come from the first piece.
    """
    first = pieces[0]
    chunks: List[str] = []
    for p in pieces:
        chunks.extend(p.chunks)
    nonces = None
    if first.nonces is not None:
        nonces = []
        for p in pieces:
            nonces.extend(p.nonces if p.nonces is not None else [0] * len(p.chunks))
    return first.copy(chunks=chunks, nonces=nonces, size=sum(p.size for p in pieces))


def join_splits(files: Dict[str, IndexEntry]) -> List[str]:
    """Coalesce ``<base>.<seq>.split`` entries of ``files`` in place.

    Returns the base names that were produced.
    """
    groups = find_split_groups(list(files))
    for base in sorted(groups):
        pieces = groups[base]
        joined = join_pieces([files[p] for p in pieces])
        for p in pieces:
            files.pop(p, None)
        files[base] = joined
        log.debug("joined %d pieces into %s (%d bytes)", len(pieces), base, joined.size)
    return sorted(groups)
