from __future__ import annotations

import argparse
import getpass as _getpass
import logging
import sys
from typing import List, Optional

from cryptindex.constants import MANIFEST_NAMES
from cryptindex.encryption import AesKeys
from cryptindex.errors import IndexerError
from cryptindex.indexer import new_indexer
from cryptindex.manifest import decode_files, is_hierarchical, read_document
from cryptindex.storage import DirectorySource, open_source
from cryptindex.tree import lookup
from cryptindex.versions import get_dialect


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )


def _password(password: Optional[str]) -> str:
    if password is None:
        password = _getpass.getpass("Index password: ")
    return password


def cmd_build(
    output: str,
    *,
    remotes: Optional[List[str]] = None,
    dirs: Optional[List[str]] = None,
    zips: Optional[List[str]] = None,
    indexed: Optional[List[str]] = None,
    join_splits: bool = False,
    as_tree: bool = False,
    clean: bool = True,
    dialect: str = "v3",
    password: Optional[str] = None,
    quiet: bool = False,
) -> bool:
    """Build an index from the given sources and write it to ``output``.

    Sources are merged in the order remotes, directories, zips, finalized
    indexes; later sources win on name clashes.
    """
    ix = new_indexer(_password(password), dialect)
    for url in remotes or []:
        ix.add_index(url)
    for path in dirs or []:
        ix.add_index_directory(path)
    for path in zips or []:
        ix.add_index_zip(path)
    for loc in indexed or []:
        ix.add_indexed(loc)
    if join_splits:
        joined = ix.join_splits()
        if joined and not quiet:
            print(f" joined splits: {', '.join(joined)}")
    target = DirectorySource(output, create=True)
    if as_tree:
        shards = ix.write_tree(target, clean=clean)
        if not quiet:
            print(f"Wrote {len(ix.list())} entries as {len(shards)} shards to {output}")
    else:
        ix.write_to(target)
        if not quiet:
            print(f"Wrote {len(ix.list())} entries to {output}")
    return True


def cmd_list(source: str, *, finalized: bool = False, dialect: str = "v3", password: Optional[str] = None) -> bool:
    """Print ``size<TAB>lastModified<TAB>name`` for each entry of a manifest."""
    d = get_dialect(dialect)
    keys = AesKeys.from_password(_password(password))
    name = MANIFEST_NAMES.finalized if finalized else MANIFEST_NAMES.raw
    doc = read_document(open_source(source), keys, d, name)
    if doc is None:
        print(f"No {name} found in {source}", file=sys.stderr)
        return False
    if is_hierarchical(doc):
        print("Index is hierarchical; use 'cryptindex lookup' for single names.", file=sys.stderr)
        return True
    index = decode_files(doc, d.codec)
    for n in sorted(index.files):
        e = index.files[n]
        print(f"{e.size}\t{e.last_modified}\t{n}")
    return True


def cmd_lookup(source: str, name: str, *, dialect: str = "v3", password: Optional[str] = None) -> bool:
    d = get_dialect(dialect)
    keys = AesKeys.from_password(_password(password))
    entry = lookup(open_source(source), keys, name, d.codec)
    if entry is None:
        print(f"Not found: {name}", file=sys.stderr)
        return False
    print(f"{name}\tsize={entry.size}\tlastModified={entry.last_modified}\tsplitSize={entry.split_size}")
    for i, chunk in enumerate(entry.chunks):
        nonce = f"\tnonce={entry.nonces[i]}" if entry.nonces is not None else ""
        print(f"  {chunk}{nonce}")
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="cryptindex",
        description="Build encrypted, mergeable file indexes",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_build = sub.add_parser("build", help="Merge sources into one index and write it")
    ap_build.add_argument("output", help="Output directory")
    ap_build.add_argument("--remote", action="append", default=[], help="URL of a raw index (repeatable)")
    ap_build.add_argument("--dir", action="append", default=[], help="Directory holding a raw index (repeatable)")
    ap_build.add_argument("--zip", action="append", default=[], help="Zip archive holding a raw index (repeatable)")
    ap_build.add_argument("--indexed", action="append", default=[], help="URL or directory of a finalized index (repeatable)")
    ap_build.add_argument("--join-splits", action="store_true", help="Coalesce <name>.<seq>.split pieces")
    ap_build.add_argument("--tree", action="store_true", help="Write a hierarchical shard tree instead of a flat manifest")
    ap_build.add_argument("--no-clean", action="store_true", help="With --tree, keep shards from a previous tree")
    ap_build.add_argument("--dialect", choices=["v1", "v3"], default="v3", help="Manifest dialect (default v3)")
    ap_build.add_argument("--password", help="Index password")
    ap_build.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List entries of a manifest")
    ap_list.add_argument("source", help="Directory or URL")
    ap_list.add_argument("--finalized", action="store_true", help="Read the finalized manifest instead of the raw one")
    ap_list.add_argument("--dialect", choices=["v1", "v3"], default="v3")
    ap_list.add_argument("--password", help="Index password")

    ap_lookup = sub.add_parser("lookup", help="Find one entry in a hierarchical index")
    ap_lookup.add_argument("source", help="Directory or URL")
    ap_lookup.add_argument("name", help="Logical file name")
    ap_lookup.add_argument("--dialect", choices=["v1", "v3"], default="v3")
    ap_lookup.add_argument("--password", help="Index password")

    args = ap.parse_args(argv)
    setup_logging(args.verbose)
    try:
        if args.cmd == "build":
            ok = cmd_build(
                args.output,
                remotes=args.remote,
                dirs=args.dir,
                zips=args.zip,
                indexed=args.indexed,
                join_splits=args.join_splits,
                as_tree=args.tree,
                clean=not args.no_clean,
                dialect=args.dialect,
                password=args.password,
                quiet=args.quiet,
            )
        elif args.cmd == "list":
            ok = cmd_list(args.source, finalized=args.finalized, dialect=args.dialect, password=args.password)
        elif args.cmd == "lookup":
            ok = cmd_lookup(args.source, args.name, dialect=args.dialect, password=args.password)
        else:
            raise RuntimeError("Unknown command")
    except (IndexerError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
