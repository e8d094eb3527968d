# -*- coding: utf-8 -*-
"""
indexer.py

Purpose:
    Orchestrate code indexing:
      walk → read → chunk → id → embed + store (one chunk per write)

Key responsibilities:
    1) process_file: index one file, one store.add per chunk, metadata
       {file_path, chunk_index, total_chunks, language}, content-addressed IDs.
    2) index_directory: walk the root and process every eligible file; the
       first failure (walk or file) aborts the whole scan.
    3) sync_directory: same walk, but guided by a manifest so only new or
       changed files are re-indexed and chunks of vanished versions are
       deleted from the store.

Notes:
    • No rollback: chunks written before a failing chunk stay in the store.
    • No retries, no continue-on-error. Callers wanting a per-file report can
      loop over CodeFileLoader.iter_files() and call process_file themselves.
    • The indexer keeps no state between calls beyond its collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from coderag.config.settings import DEFAULT_CHUNK_SIZE, Settings
from coderag.errors import EmbeddingError, IndexingError, VectorStoreError
from coderag.ingestion.chunker import Chunker
from coderag.ingestion.content_id import make_chunk_id
from coderag.ingestion.file_manifest import (
    MANIFEST_VERSION,
    diff as manifest_diff,
    empty_manifest,
    load_manifest,
    publish_atomic,
    scan_record,
    Record,
)
from coderag.ingestion.loader import CodeFileLoader, language_tag
from coderag.ingestion.vector_store import VectorStore
from coderag.utils.cancellation import CancelToken, check_cancelled
from coderag.utils.logging import SimpleLogger


@dataclass(frozen=True)
class IndexStats:
    files_indexed: int
    chunks_written: int


@dataclass(frozen=True)
class SyncStats:
    """Aggregate numbers for quick reporting / testing."""
    files_scanned: int
    files_indexed: int
    unchanged: int
    removed: int
    chunks_written: int
    chunks_deleted: int
    manifest_path: str


class CodeIndexer:
    """
    Indexes the code files under one root directory into a vector store.

    Typical usage:
        store = open_vector_store(Embedder(), persist_dir="/tmp/coderag/chromadb")
        indexer = CodeIndexer(store, root_path=".")
        stats = indexer.index_directory()
    """

    def __init__(
        self,
        store: VectorStore,
        root_path: str,
        *,
        chunker: Optional[Chunker] = None,
        chunk_size: Optional[int] = None,
    ) -> None:
        """
        Args:
            store: Where chunks go; it embeds them through its provider.
            root_path: Directory to walk. File paths recorded in metadata are
                       built from it as given (relative stays relative).
            chunker: Custom chunker; default Chunker(chunk_size).
            chunk_size: Target characters per chunk (default CODERAG_CHUNK_SIZE or 1000).
        """
        self.store = store
        self.root_path = str(root_path)
        self.loader = CodeFileLoader(self.root_path)
        if chunker is None:
            size = chunk_size if chunk_size is not None else Settings.get_int("CODERAG_CHUNK_SIZE", DEFAULT_CHUNK_SIZE)
            chunker = Chunker(size)
        self.chunker = chunker

    # -------------------------------------------------------------------------
    # Single file
    # -------------------------------------------------------------------------

    def process_file(self, file_path: str, token: Optional[CancelToken] = None) -> int:
        """Index one file; returns the number of chunks written."""
        return len(self.index_file(file_path, token))

    def index_file(self, file_path: str, token: Optional[CancelToken] = None) -> List[str]:
        """
        Index one file and return the IDs written, in chunk order.

        Raises:
            IndexingError: the file could not be read, or a chunk could not
                           be stored (earlier chunks remain stored).
            OperationCancelled: the token fired between steps.
        """
        file_path = str(file_path)
        check_cancelled(token, f"read {file_path}")
        try:
            content = self.loader.read_file(file_path)
        except OSError as exc:
            raise IndexingError(f"failed to read file {file_path}: {exc}", path=file_path) from exc

        chunks = self.chunker.split(content)
        language = language_tag(file_path)
        ids: List[str] = []

        for chunk in chunks:
            check_cancelled(token, f"index {file_path}")
            metadata: Dict[str, Any] = {
                "file_path": file_path,
                "chunk_index": chunk.index,
                "total_chunks": chunk.total,
                "language": language,
            }
            chunk_id = make_chunk_id(file_path, chunk.text)
            try:
                self.store.add([chunk.text], [metadata], [chunk_id], token=token)
            except (VectorStoreError, EmbeddingError) as exc:
                raise IndexingError(
                    f"failed to add chunk {chunk.index} of {file_path} to vector store: {exc}",
                    path=file_path,
                ) from exc
            ids.append(chunk_id)

        SimpleLogger.info(f"Indexed {file_path} ({len(ids)} chunk(s))")
        return ids

    # -------------------------------------------------------------------------
    # Whole tree
    # -------------------------------------------------------------------------

    def index_directory(self, token: Optional[CancelToken] = None) -> IndexStats:
        """Index every eligible file under root_path; stops at the first error."""
        files = 0
        chunks = 0
        for file_path in self._walk():
            chunks += self.process_file(file_path, token)
            files += 1

        SimpleLogger.info(f"Indexing complete: {files} file(s), {chunks} chunk(s) under {self.root_path}")
        return IndexStats(files_indexed=files, chunks_written=chunks)

    def sync_directory(
        self,
        manifest_path: str,
        token: Optional[CancelToken] = None,
        *,
        delete_stale: bool = True,
    ) -> SyncStats:
        """
        Incrementally bring the store in line with the tree on disk.

        Steps:
            1) Walk the root, hash every eligible file.
            2) Diff against the previous manifest.
            3) index_file() each new/changed file.
            4) If delete_stale: delete IDs of the previous version of changed
               files that were not rewritten, and all IDs of vanished files.
            5) Publish the new manifest atomically.

        Any error aborts before step 5, so the previous manifest stays valid
        and the next sync retries the same work.

        The manifest is bound to one root and one store (`store.location`).
        A manifest recorded for another root or store is refused. When the
        manifest lists chunk IDs but the store is empty (wiped or rebuilt),
        the manifest is ignored and every file is indexed again.
        """
        manifest_path = str(Path(manifest_path).resolve())
        manifest_prev = load_manifest(manifest_path)
        prev_root = manifest_prev.get("root") or ""
        if prev_root and prev_root != self.root_path:
            raise ValueError(
                f"manifest {manifest_path} tracks root {prev_root!r}, not {self.root_path!r}"
            )
        store_key = getattr(self.store, "location", "")
        prev_store = manifest_prev.get("store") or ""
        if prev_store and store_key and prev_store != store_key:
            raise ValueError(
                f"manifest {manifest_path} tracks store {prev_store!r}, not {store_key!r}"
            )
        if any(rec.get("ids") for rec in manifest_prev["files"]) and self.store.count() == 0:
            SimpleLogger.warning(f"Manifest {manifest_path} lists chunks but the store is empty; re-indexing all files")
            manifest_prev = empty_manifest(self.root_path, store_key)

        records_now: List[Record] = []
        for file_path in self._walk():
            check_cancelled(token, f"scan {file_path}")
            try:
                records_now.append(scan_record(file_path))
            except OSError as exc:
                raise IndexingError(f"failed to hash file {file_path}: {exc}", path=file_path) from exc

        to_process, unchanged, tombstones = manifest_diff(records_now, manifest_prev)
        prev_by_path: Dict[str, Record] = {rec["path"]: rec for rec in manifest_prev.get("files", [])}

        chunks_written = 0
        chunks_deleted = 0
        for rec in to_process:
            rec["ids"] = self.index_file(rec["path"], token)
            chunks_written += len(rec["ids"])

            prev_rec = prev_by_path.get(rec["path"])
            if delete_stale and prev_rec is not None:
                stale = sorted(set(prev_rec.get("ids", [])) - set(rec["ids"]))
                chunks_deleted += self._delete_ids(rec["path"], stale, token)

        if delete_stale:
            for tomb in tombstones:
                chunks_deleted += self._delete_ids(tomb["path"], list(tomb.get("ids", [])), token)

        files = sorted(unchanged + to_process, key=lambda r: r["path"])
        publish_atomic(
            {
                "version": MANIFEST_VERSION,
                "generated_at": "",
                "root": self.root_path,
                "store": store_key or prev_store,
                "files": files,
            },
            manifest_path,
        )

        SimpleLogger.info(
            f"Sync complete: {len(to_process)} indexed, {len(unchanged)} unchanged, "
            f"{len(tombstones)} removed, {chunks_deleted} stale chunk(s) deleted"
        )
        return SyncStats(
            files_scanned=len(records_now),
            files_indexed=len(to_process),
            unchanged=len(unchanged),
            removed=len(tombstones),
            chunks_written=chunks_written,
            chunks_deleted=chunks_deleted,
            manifest_path=manifest_path,
        )

    # -------------------------------------------------------------------------
    # Small helpers
    # -------------------------------------------------------------------------

    def _walk(self) -> Iterator[str]:
        try:
            yield from self.loader.iter_files()
        except OSError as exc:
            raise IndexingError(f"failed to walk directory {self.root_path}: {exc}", path=self.root_path) from exc

    def _delete_ids(self, file_path: str, ids: List[str], token: Optional[CancelToken]) -> int:
        if not ids:
            return 0
        try:
            self.store.delete(ids, token=token)
        except VectorStoreError as exc:
            raise IndexingError(f"failed to delete stale chunks of {file_path}: {exc}", path=file_path) from exc
        SimpleLogger.debug(f"Deleted {len(ids)} stale chunk(s) of {file_path}")
        return len(ids)
