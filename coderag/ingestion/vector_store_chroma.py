# -*- coding: utf-8 -*-
"""
vector_store_chroma.py

Chroma-backed storage for code chunks.

ChromaBackend owns one chromadb.PersistentClient and a single collection.
It stores ids, precomputed embeddings, chunk texts and metadatas, and answers
nearest-neighbour queries with documents + metadatas.

Usage:
    backend = ChromaBackend(persist_dir="/tmp/coderag/chromadb")   # collection "code-snippets"
    backend.upsert(ids=[...], vectors=[...], documents=[...], metadatas=[...])
    docs, metas = backend.query(vector=q_emb, k=5)

Notes:
- Embeddings are always computed by coderag's embedder, never by Chroma, so
  the collection is opened with embedding_function=None.
- The backend does no locking; EmbeddingVectorStore wraps it in a
  readers-writer lock.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import chromadb
from chromadb.config import Settings


class ChromaBackend:
    """
    Persistent Chroma collection of code chunks.

    Metadata stored with each chunk:
      {
        "file_path": "<path as supplied to the indexer>",
        "chunk_index": <int>,
        "total_chunks": <int>,
        "language": "<extension without dot>"
      }
    """

    def __init__(
        self,
        persist_dir: str,
        collection_name: str = "code-snippets",
        *,
        anonymized_telemetry: bool = False,
    ) -> None:
        """
        Initialize a persistent Chroma client and open/create the collection.

        Args:
            persist_dir: Directory where Chroma DB files live.
            collection_name: Logical collection name (default "code-snippets").
            anonymized_telemetry: Pass False to avoid any telemetry (default False).
        """
        self.persist_path = Path(persist_dir)
        self.persist_path.mkdir(parents=True, exist_ok=True)

        # Settings keep the DB local, file-backed, and quiet (no telemetry).
        self._client = chromadb.PersistentClient(
            path=str(self.persist_path),
            settings=Settings(anonymized_telemetry=anonymized_telemetry),
        )

        self.collection_name = collection_name
        self._col = self._client.get_or_create_collection(
            name=self.collection_name,
            metadata={"description": "Code snippets collection for RAG system"},
            embedding_function=None,  # embeddings are precomputed
        )

    def upsert(
        self,
        ids: Sequence[str],
        vectors: Sequence[Sequence[float]],
        documents: Sequence[str],
        metadatas: Sequence[Dict[str, Any]],
    ) -> None:
        """
        Upsert chunks into the collection. If an id already exists, Chroma
        replaces it, which keeps re-indexing an unchanged file idempotent.
        """
        if not ids:
            return
        if not (len(ids) == len(vectors) == len(documents) == len(metadatas)):
            raise ValueError("ids, vectors, documents and metadatas length mismatch")

        self._col.upsert(
            ids=list(ids),
            embeddings=[list(v) for v in vectors],
            documents=list(documents),
            metadatas=[dict(m) for m in metadatas],
        )

    def query(self, vector: Sequence[float], k: int = 10) -> Tuple[List[str], List[Dict[str, Any]]]:
        """
        Nearest-neighbour search by embedding vector.

        Returns:
            (documents, metadatas): parallel lists, most similar first,
            at most k entries (fewer when the collection is smaller).
        """
        available = self.count()
        if available == 0:
            return [], []

        res = self._col.query(
            query_embeddings=[list(vector)],
            n_results=min(int(k), available),
            include=["documents", "metadatas"],
        )
        # result shape: {"documents": [[...]], "metadatas": [[...]], ...}
        docs = (res.get("documents") or [[]])[0] or []
        metas = (res.get("metadatas") or [[]])[0] or []
        return list(docs), [dict(m or {}) for m in metas]

    def delete(self, ids: Sequence[str]) -> None:
        if not ids:
            return
        self._col.delete(ids=list(ids))

    def count(self) -> int:
        """Return total number of stored chunks."""
        return int(self._col.count())

    def close(self) -> None:
        """
        Drop this backend's references to the client and collection.
        PersistentClient writes through on every call, so there is nothing
        to flush.
        """
        self._col = None
        self._client = None

    # Expose underlying collection for advanced ops if needed (debug, migration)
    @property
    def collection(self):
        return self._col
