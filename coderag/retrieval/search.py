# -*- coding: utf-8 -*-
"""
SearchService
=============
Semantic search over indexed code.

Pipeline: query text --(store: embed + top-k)--> (documents, metadatas)
          --> List[SearchResult], store order preserved (best first)
"""
from __future__ import annotations

from typing import List, Optional

from coderag.errors import EmbeddingError, SearchError, VectorStoreError
from coderag.ingestion.vector_store import VectorStore
from coderag.retrieval.search_result import SearchResult
from coderag.utils.cancellation import CancelToken
from coderag.utils.logging import SimpleLogger


class SearchService:
    """
    Stateless query front-end over a VectorStore.

    Parameters
    ----------
    store : VectorStore
        The same store the indexer wrote to; it owns the embedding provider.
    """

    def __init__(self, store: VectorStore) -> None:
        self._store = store

    def search(self, query: str, limit: int = 5, token: Optional[CancelToken] = None) -> List[SearchResult]:
        """
        Return up to `limit` chunks most similar to `query`.

        Raises SearchError (chained to the cause) when embedding or the store
        query fails; ValueError for a non-positive limit. Never returns a
        partial list.
        """
        try:
            docs, metadatas = self._store.query(query, limit, token=token)
        except (VectorStoreError, EmbeddingError) as exc:
            raise SearchError(f"failed to query vector store for {query!r}: {exc}", query=query) from exc
        if len(docs) != len(metadatas):
            raise SearchError(
                f"vector store returned {len(docs)} documents but {len(metadatas)} metadatas",
                query=query,
            )

        results = [
            SearchResult(content=doc, metadata=dict(meta or {}))
            for doc, meta in zip(docs, metadatas)
        ]
        SimpleLogger.debug(f"Search {query!r}: {len(results)} result(s)")
        return results
