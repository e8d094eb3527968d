#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cli.py: command-line front-end for coderag

    coderag index [ROOT] [--sync] [--manifest PATH]
    coderag search "find functions related to error handling" -k 5 [--json]

Configuration comes from flags first, then the environment / .env
(OPENAI_API_KEY, CODERAG_PERSIST_DIR, CODERAG_COLLECTION, CODERAG_STORE_BACKEND,
CODERAG_CHUNK_SIZE, CODERAG_LOG_LEVEL).

Exit codes: 0 ok, 1 indexing/search failure or bad option, 2 missing credentials,
130 cancelled.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import List, Optional

from coderag.config.settings import Settings
from coderag.errors import CodeRagError, MissingCredentialsError, OperationCancelled
from coderag.ingestion.embedder import Embedder
from coderag.ingestion.indexer import CodeIndexer
from coderag.ingestion.vector_store import open_vector_store, resolve_store_options
from coderag.retrieval.search import SearchService
from coderag.retrieval.search_result import SearchResult
from coderag.utils.cancellation import CancelToken
from coderag.utils.logging import SimpleLogger
from coderag.utils.paths import PATHS


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="coderag", description="Semantic search over a source tree.")
    ap.add_argument("--persist-dir", default=None, help="vector store directory")
    ap.add_argument("--collection", default=None, help="collection name (default: code-snippets)")
    ap.add_argument("--backend", choices=["chroma", "numpy"], default=None)
    ap.add_argument("--chunk-size", type=int, default=None, help="target characters per chunk")
    ap.add_argument("--timeout", type=float, default=None, help="overall deadline in seconds")
    verbosity = ap.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true")
    verbosity.add_argument("-q", "--quiet", action="store_true")

    sub = ap.add_subparsers(dest="command", required=True)

    idx = sub.add_parser("index", help="index code files under ROOT")
    idx.add_argument("root", nargs="?", default=".")
    idx.add_argument("--sync", action="store_true", help="only re-index changed files (uses a manifest)")
    idx.add_argument("--manifest", default=None,
                     help="manifest path for --sync (default: <persist-dir>/<backend>-<collection>.manifest.json)")

    srch = sub.add_parser("search", help="query the index")
    srch.add_argument("query")
    srch.add_argument("-k", "--limit", type=int, default=5)
    srch.add_argument("--json", action="store_true", help="print results as JSON")
    return ap


def print_results(results: List[SearchResult], as_json: bool = False) -> None:
    if as_json:
        print(json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False))
        return
    if not results:
        print("No results.")
        return
    print("Search Results:")
    for i, result in enumerate(results, start=1):
        meta = result.metadata
        print(f"\n--- Result {i} ---")
        print(f"File: {meta.get('file_path', '?')}")
        print(f"Language: {meta.get('language', '')}")
        if "chunk_index" in meta and "total_chunks" in meta:
            print(f"Chunk {int(meta['chunk_index']) + 1} of {int(meta['total_chunks'])}")
        print(f"Content:\n{result.content}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        SimpleLogger.set_level("DEBUG")
    elif args.quiet:
        SimpleLogger.set_level("ERROR")
    else:
        SimpleLogger.set_level(Settings.get("CODERAG_LOG_LEVEL", "INFO"))

    if args.command == "search" and args.limit <= 0:
        SimpleLogger.error("--limit must be a positive integer")
        return 1
    if args.timeout is not None and args.timeout < 0:
        SimpleLogger.error("--timeout must be zero or a positive number of seconds")
        return 1

    try:
        embedder = Embedder()
    except MissingCredentialsError as exc:
        SimpleLogger.error(str(exc))
        return 2
    except ValueError as exc:
        SimpleLogger.error(f"invalid configuration: {exc}")
        return 1

    persist_dir = args.persist_dir or Settings.get("CODERAG_PERSIST_DIR") or str(PATHS["chroma_db"])
    token = CancelToken(timeout=args.timeout) if args.timeout is not None else None

    try:
        backend, collection = resolve_store_options(args.collection, args.backend)
        with open_vector_store(embedder, persist_dir, collection, backend) as store:
            if args.command == "index":
                indexer = CodeIndexer(store, args.root, chunk_size=args.chunk_size)
                if args.sync:
                    # one manifest per store, kept beside it
                    manifest = args.manifest or os.path.join(persist_dir, f"{backend}-{collection}.manifest.json")
                    indexer.sync_directory(manifest, token)
                else:
                    indexer.index_directory(token)
            else:
                results = SearchService(store).search(args.query, args.limit, token)
                print_results(results, as_json=args.json)
    except OperationCancelled as exc:
        SimpleLogger.error(f"Cancelled: {exc}")
        return 130
    except (CodeRagError, ValueError) as exc:
        SimpleLogger.error(f"{args.command} failed: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
