# -*- coding: utf-8 -*-
"""
VectorStore
===========
The store the indexer writes to and the search service reads from.

- `VectorStore` is the capability the core depends on:
      add(documents, metadatas, ids), query(text, limit), delete(ids), count(), close()
- `EmbeddingVectorStore` implements it over a raw backend (Chroma or NumPy):
  it turns texts into vectors through the embedding provider, then touches
  the backend under a readers-writer lock (add/delete exclusive, query shared).
- `open_vector_store` is the router: "chroma" by default, "numpy" on request
  or when CODERAG_STORE_BACKEND=numpy.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from coderag.config.settings import DEFAULT_COLLECTION, DEFAULT_STORE_BACKEND, Settings
from coderag.errors import EmbeddingError, VectorStoreError
from coderag.ingestion.embedder import EmbeddingProvider
from coderag.utils.cancellation import CancelToken, check_cancelled
from coderag.utils.logging import SimpleLogger
from coderag.utils.rwlock import ReadWriteLock

Metadata = Dict[str, Any]


class VectorStore(Protocol):
    def add(
        self,
        documents: Sequence[str],
        metadatas: Sequence[Metadata],
        ids: Sequence[str],
        token: Optional[CancelToken] = None,
    ) -> None: ...

    def query(
        self, query_text: str, limit: int, token: Optional[CancelToken] = None
    ) -> Tuple[List[str], List[Metadata]]: ...

    def delete(self, ids: Sequence[str], token: Optional[CancelToken] = None) -> None: ...

    def count(self) -> int: ...

    def close(self) -> None: ...


class StoreBackend(Protocol):
    def upsert(
        self,
        ids: Sequence[str],
        vectors: Sequence[Sequence[float]],
        documents: Sequence[str],
        metadatas: Sequence[Metadata],
    ) -> None: ...

    def query(self, vector: Sequence[float], k: int) -> Tuple[List[str], List[Metadata]]: ...

    def delete(self, ids: Sequence[str]) -> None: ...

    def count(self) -> int: ...

    def close(self) -> None: ...


class EmbeddingVectorStore:
    """
    Thread-safe vector store over a single-owner backend.

    The embedder is called outside the lock; only backend access is guarded.
    Two interleaved adds of the same id resolve by the backend's upsert
    (last writer wins).
    """

    def __init__(self, backend: StoreBackend, embedder: EmbeddingProvider, *, location: str = "") -> None:
        """
        location: identifies the backing collection (see store_location); the
        sync manifest records it so it is never replayed against another store.
        """
        self.location = location
        self._backend = backend
        self._embedder = embedder
        self._lock = ReadWriteLock()
        self._closed = False

    def add(
        self,
        documents: Sequence[str],
        metadatas: Sequence[Metadata],
        ids: Sequence[str],
        token: Optional[CancelToken] = None,
    ) -> None:
        if not (len(documents) == len(metadatas) == len(ids)):
            raise ValueError(
                f"documents, metadatas and ids must have equal length "
                f"(got {len(documents)}, {len(metadatas)}, {len(ids)})"
            )
        if not documents:
            return
        self._ensure_open("add")
        check_cancelled(token, "add")

        try:
            vectors = self._embedder.embed(list(documents), token=token)
        except EmbeddingError as exc:
            raise VectorStoreError(f"failed to generate embeddings: {exc}", operation="add") from exc

        check_cancelled(token, "add")
        with self._lock.write_locked():
            self._ensure_open("add")
            try:
                self._backend.upsert(ids, vectors, documents, metadatas)
            except Exception as exc:
                raise VectorStoreError(f"failed to add documents to vector store: {exc}", operation="add") from exc

    def query(
        self, query_text: str, limit: int, token: Optional[CancelToken] = None
    ) -> Tuple[List[str], List[Metadata]]:
        """
        Top-`limit` documents most similar to `query_text`.

        Returns parallel (documents, metadatas) lists, best match first.
        `limit` must be a positive integer; anything else is a ValueError.
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")
        self._ensure_open("query")
        check_cancelled(token, "query")

        try:
            vectors = self._embedder.embed([query_text], token=token)
        except EmbeddingError as exc:
            raise VectorStoreError(f"failed to generate query embedding: {exc}", operation="query") from exc

        check_cancelled(token, "query")
        with self._lock.read_locked():
            self._ensure_open("query")
            try:
                docs, metas = self._backend.query(vectors[0], limit)
            except Exception as exc:
                raise VectorStoreError(f"failed to query vector store: {exc}", operation="query") from exc

        if len(docs) != len(metas):
            raise VectorStoreError(
                f"vector store returned {len(docs)} documents but {len(metas)} metadatas",
                operation="query",
            )
        return docs, metas

    def delete(self, ids: Sequence[str], token: Optional[CancelToken] = None) -> None:
        if not ids:
            return
        self._ensure_open("delete")
        check_cancelled(token, "delete")
        with self._lock.write_locked():
            self._ensure_open("delete")
            try:
                self._backend.delete(ids)
            except Exception as exc:
                raise VectorStoreError(f"failed to delete documents from vector store: {exc}", operation="delete") from exc

    def count(self) -> int:
        self._ensure_open("count")
        with self._lock.read_locked():
            return self._backend.count()

    def close(self) -> None:
        """Release the backend. Safe to call more than once."""
        with self._lock.write_locked():
            if self._closed:
                return
            self._closed = True
            try:
                self._backend.close()
            except Exception as exc:
                raise VectorStoreError(f"failed to close vector store: {exc}", operation="close") from exc
        SimpleLogger.debug("VectorStore: closed")

    def __enter__(self) -> "EmbeddingVectorStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _ensure_open(self, operation: str) -> None:
        if self._closed:
            raise VectorStoreError(f"{operation}: vector store is closed", operation=operation)


def resolve_store_options(
    collection_name: Optional[str] = None, backend: Optional[str] = None
) -> Tuple[str, str]:
    """(backend, collection) after applying CODERAG_STORE_BACKEND / CODERAG_COLLECTION defaults."""
    name = (backend or Settings.get("CODERAG_STORE_BACKEND", DEFAULT_STORE_BACKEND)).lower()
    collection = collection_name or Settings.get("CODERAG_COLLECTION", DEFAULT_COLLECTION)
    return name, collection


def store_location(backend: str, persist_dir: Optional[str], collection_name: str) -> str:
    where = os.path.abspath(persist_dir) if persist_dir else ":memory:"
    return f"{backend}:{where}#{collection_name}"


def open_vector_store(
    embedder: EmbeddingProvider,
    persist_dir: Optional[str],
    collection_name: Optional[str] = None,
    backend: Optional[str] = None,
) -> EmbeddingVectorStore:
    """
    Build an EmbeddingVectorStore over the requested backend.

    backend: "chroma" (persistent, needs persist_dir) or "numpy" (in-memory,
    pickled under persist_dir when one is given). Defaults to
    CODERAG_STORE_BACKEND, then "chroma".
    """
    name, collection = resolve_store_options(collection_name, backend)

    if name == "chroma":
        if not persist_dir:
            raise ValueError("the chroma backend needs a persist_dir")
        # imported lazily so the numpy backend works without chromadb's startup cost
        from coderag.ingestion.vector_store_chroma import ChromaBackend

        raw: StoreBackend = ChromaBackend(persist_dir=persist_dir, collection_name=collection)
    elif name == "numpy":
        from coderag.ingestion.vector_store_np import NumpyBackend

        raw = NumpyBackend(persist_dir=persist_dir, collection_name=collection)
    else:
        raise ValueError(f"unknown vector store backend: {name!r} (expected 'chroma' or 'numpy')")

    SimpleLogger.info(f"VectorStore: opened {name} collection '{collection}'"
                      + (f" at {persist_dir}" if persist_dir else ""))
    return EmbeddingVectorStore(raw, embedder, location=store_location(name, persist_dir, collection))
