# -*- coding: utf-8 -*-
from __future__ import annotations
import pickle
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple
import numpy as np

class NumpyBackend:
    """
    Exact-cosine vector backend with NumPy only.
    Keeps everything in memory; when a persist_dir is given, the collection is
    also pickled to <persist_dir>/<collection_name>.pkl after every change.

    Not thread-safe on its own: EmbeddingVectorStore serialises access.
    """

    def __init__(self, persist_dir: Optional[str] = None, collection_name: str = "code-snippets") -> None:
        self.collection_name = collection_name
        self.db_file: Optional[Path] = None
        if persist_dir is not None:
            persist_path = Path(persist_dir)
            persist_path.mkdir(parents=True, exist_ok=True)
            self.db_file = persist_path / f"{collection_name}.pkl"
        self._ids: List[str] = []
        self._docs: List[str] = []
        self._meta: List[Dict[str, Any]] = []
        self._emb: np.ndarray | None = None  # shape (N, D)
        self._id2idx: Dict[str, int] = {}
        self._load()

    def upsert(
        self,
        ids: Sequence[str],
        vectors: Sequence[Sequence[float]],
        documents: Sequence[str],
        metadatas: Sequence[Dict[str, Any]],
    ) -> None:
        if not ids:
            return
        if not (len(ids) == len(vectors) == len(documents) == len(metadatas)):
            raise ValueError("ids, vectors, documents and metadatas length mismatch")

        X = np.asarray(vectors, dtype=np.float32)
        if X.ndim != 2:
            raise ValueError("vectors must be 2D [N, D]")
        if self._emb is not None and X.shape[1] != self._emb.shape[1]:
            raise ValueError(f"vector dimension {X.shape[1]} does not match collection dimension {self._emb.shape[1]}")

        # a repeated id within one batch: the last occurrence wins
        latest = {id_: i for i, id_ in enumerate(ids)}

        new_rows: List[Tuple[str, str, Dict[str, Any], np.ndarray]] = []
        for id_, i in latest.items():
            if id_ in self._id2idx:
                idx = self._id2idx[id_]
                self._emb[idx] = X[i]
                self._docs[idx] = documents[i]
                self._meta[idx] = dict(metadatas[i])
            else:
                new_rows.append((id_, documents[i], dict(metadatas[i]), X[i]))

        if new_rows:
            ids_new, docs_new, meta_new, emb_new = zip(*new_rows)
            emb_new = np.stack(emb_new, axis=0).astype(np.float32)
            if self._emb is None:
                self._emb = emb_new
            else:
                self._emb = np.concatenate([self._emb, emb_new], axis=0)
            start = len(self._ids)
            self._ids.extend(ids_new)
            self._docs.extend(docs_new)
            self._meta.extend(meta_new)
            for j, id_ in enumerate(ids_new):
                self._id2idx[id_] = start + j

        self._save()

    def query(self, vector: Sequence[float], k: int = 10) -> Tuple[List[str], List[Dict[str, Any]]]:
        if self._emb is None or len(self._ids) == 0:
            return [], []
        q = np.asarray(vector, dtype=np.float32)
        if q.ndim != 1:
            raise ValueError("query vector must be 1D")
        if q.shape[0] != self._emb.shape[1]:
            raise ValueError(f"query dimension {q.shape[0]} does not match collection dimension {self._emb.shape[1]}")

        A = self._emb
        qn = float(np.linalg.norm(q) + 1e-12)
        An = np.linalg.norm(A, axis=1) + 1e-12
        sims = (A @ q) / (An * qn)

        k = max(1, min(int(k), sims.shape[0]))
        # stable sort: equal scores keep insertion order
        idx = np.argsort(-sims, kind="stable")[:k]
        docs = [self._docs[i] for i in idx.tolist()]
        metas = [dict(self._meta[i]) for i in idx.tolist()]
        return docs, metas

    def delete(self, ids: Sequence[str]) -> None:
        doomed = {id_ for id_ in ids if id_ in self._id2idx}
        if not doomed:
            return
        keep = [i for i, id_ in enumerate(self._ids) if id_ not in doomed]
        self._ids = [self._ids[i] for i in keep]
        self._docs = [self._docs[i] for i in keep]
        self._meta = [self._meta[i] for i in keep]
        self._emb = self._emb[keep] if keep else None
        self._id2idx = {id_: i for i, id_ in enumerate(self._ids)}
        self._save()

    def count(self) -> int:
        return len(self._ids)

    def close(self) -> None:
        return None

    # ---- internal persistence ----
    def _save(self) -> None:
        if self.db_file is None:
            return
        data = {"ids": self._ids, "docs": self._docs, "meta": self._meta, "emb": self._emb}
        tmp = self.db_file.with_suffix(".pkl.tmp")
        with open(tmp, "wb") as f:
            pickle.dump(data, f, protocol=pickle.HIGHEST_PROTOCOL)
        tmp.replace(self.db_file)

    def _load(self) -> None:
        if self.db_file is None or not self.db_file.exists():
            return
        with open(self.db_file, "rb") as f:
            data = pickle.load(f)
        self._ids  = list(data.get("ids", []))
        self._docs = list(data.get("docs", []))
        self._meta = list(data.get("meta", []))
        emb = data.get("emb", None)
        self._emb = emb if emb is None else np.asarray(emb, dtype=np.float32)
        self._id2idx = {id_: i for i, id_ in enumerate(self._ids)}
