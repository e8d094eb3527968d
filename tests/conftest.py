"""Shared fixtures: deterministic embedder, in-memory stores, small source trees."""

from __future__ import annotations

import hashlib
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest

from coderag.config.settings import Settings
from coderag.errors import EmbeddingError, VectorStoreError
from coderag.ingestion.vector_store import EmbeddingVectorStore
from coderag.ingestion.vector_store_np import NumpyBackend
from coderag.utils.cancellation import CancelToken, check_cancelled
from coderag.utils.logging import SimpleLogger


class HashEmbedder:
    """Bag-of-words vectors: each word bumps one of `dim` hashed buckets."""

    def __init__(self, dim: int = 64) -> None:
        self.dim = dim
        self.calls: List[List[str]] = []

    def embed(self, texts: Sequence[str], token: Optional[CancelToken] = None) -> List[List[float]]:
        if not texts:
            raise EmbeddingError("no texts provided for embedding generation")
        check_cancelled(token, "embed")
        self.calls.append(list(texts))
        return [self._vector(t) for t in texts]

    def _vector(self, text: str) -> List[float]:
        vec = [0.0] * self.dim
        for word in re.findall(r"\w+", text.lower()) or [""]:
            bucket = int(hashlib.sha256(word.encode("utf-8")).hexdigest(), 16) % self.dim
            vec[bucket] += 1.0
        return vec


class FailingEmbedder(HashEmbedder):
    """Fails every call once `fail_after` calls have succeeded."""

    def __init__(self, fail_after: int = 0) -> None:
        super().__init__()
        self.fail_after = fail_after

    def embed(self, texts, token=None):
        if len(self.calls) >= self.fail_after:
            raise EmbeddingError("API request failed with status code: 503")
        return super().embed(texts, token)


class RecordingStore:
    """VectorStore double that remembers every call and can fail on demand."""

    def __init__(self, fail_on_add: Optional[int] = None, fail_path: Optional[str] = None) -> None:
        self.adds: List[Dict[str, Any]] = []
        self.deleted: List[List[str]] = []
        self.fail_on_add = fail_on_add
        self.fail_path = fail_path
        self.closed = False

    def add(self, documents, metadatas, ids, token=None):
        check_cancelled(token, "add")
        attempt = len(self.adds)
        if self.fail_on_add is not None and attempt == self.fail_on_add:
            raise VectorStoreError("failed to add documents to vector store: disk full", operation="add")
        if self.fail_path is not None and metadatas[0]["file_path"].endswith(self.fail_path):
            raise VectorStoreError("failed to add documents to vector store: rejected", operation="add")
        self.adds.append({"documents": list(documents), "metadatas": list(metadatas), "ids": list(ids)})

    def query(self, query_text, limit, token=None):
        docs = [a["documents"][0] for a in self.adds][:limit]
        metas = [a["metadatas"][0] for a in self.adds][:limit]
        return docs, metas

    def delete(self, ids, token=None):
        self.deleted.append(list(ids))

    def count(self):
        written = {id_ for a in self.adds for id_ in a["ids"]}
        gone = {id_ for d in self.deleted for id_ in d}
        return len(written - gone)

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """No .env lookups and a fresh settings cache for every test."""
    Settings.clear()
    monkeypatch.setattr(Settings, "_dotenv_loaded", True)
    for key in ("CODERAG_CHUNK_SIZE", "CODERAG_STORE_BACKEND", "CODERAG_COLLECTION",
                "CODERAG_EMBED_MODEL", "CODERAG_EMBED_MAX_RETRIES", "CODERAG_EMBED_TIMEOUT",
                "CODERAG_PERSIST_DIR", "CODERAG_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    SimpleLogger.set_enabled(False)
    yield
    SimpleLogger.set_enabled(True)
    SimpleLogger.set_level("INFO")
    Settings.clear()


@pytest.fixture
def embedder() -> HashEmbedder:
    return HashEmbedder()


@pytest.fixture
def np_store(embedder) -> EmbeddingVectorStore:
    store = EmbeddingVectorStore(NumpyBackend(), embedder)
    yield store
    store.close()


def write(root: Path, rel: str, content: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8", newline="")
    return path


@pytest.fixture
def code_tree(tmp_path) -> Path:
    """
    src/
      a.py, b.go, notes.txt, README
      pkg/c.RS, pkg/d.ts
      vendor.py/        (a directory, not a file)
    """
    root = tmp_path / "src"
    write(root, "a.py", "def parse_config(path):\n    return open(path).read()\n")
    write(root, "b.go", "package main\n\nfunc handleError(err error) {\n\tpanic(err)\n}\n")
    write(root, "notes.txt", "not code\n")
    write(root, "README", "readme\n")
    write(root, "pkg/c.RS", "fn main() {\n    println!(\"hello\");\n}\n")
    write(root, "pkg/d.ts", "export const retryDelay = 250;\n")
    (root / "vendor.py").mkdir()
    return root
