# -*- coding: utf-8 -*-
"""
file_manifest.py

Purpose:
    Ledger for incremental indexing. It remembers, per source file, the
    content hash seen on the last successful sync and the chunk IDs that were
    written for it, so the next sync re-indexes only new or changed files and
    can delete the chunks of versions that no longer exist.

Data shapes:
    Record (one per file):
        {
          "path":   str,        # path as yielded by the walker
          "sha256": str,        # hex digest of the file bytes
          "mtime":  float,      # UNIX mtime
          "size":   int,        # bytes
          "ids":    list[str]   # chunk IDs written for this version
        }

    Manifest JSON on disk:
        {
          "version": "1",
          "generated_at": "YYYY-MM-DDTHH:MM:SSZ",
          "root": str,
          "store": str,       # location of the vector store the ids live in ("" if unknown)
          "files": [Record, ...]
        }
"""

from __future__ import annotations

import hashlib
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Tuple, TypedDict

MANIFEST_VERSION = "1"


class Record(TypedDict):
    path: str
    sha256: str
    mtime: float
    size: int
    ids: List[str]


def compute_sha256(file_path: str, *, chunk_size: int = 1024 * 1024) -> str:
    """SHA-256 hex digest of one file, read in 1 MB blocks."""
    h = hashlib.sha256()
    with open(file_path, "rb") as f:
        while True:
            block = f.read(chunk_size)
            if not block:
                break
            h.update(block)
    return h.hexdigest()


def scan_record(file_path: str) -> Record:
    """Build the Record for a file as it is on disk now (ids still empty)."""
    st = os.stat(file_path)
    return {
        "path": file_path,
        "sha256": compute_sha256(file_path),
        "mtime": float(st.st_mtime),
        "size": int(st.st_size),
        "ids": [],
    }


def empty_manifest(root: str = "", store: str = "") -> Dict[str, Any]:
    return {"version": MANIFEST_VERSION, "generated_at": "", "root": root, "store": store, "files": []}


def load_manifest(manifest_path: str) -> Dict[str, Any]:
    """
    Load the manifest JSON if it exists; otherwise return an empty one.

    Raises:
        ValueError: the file exists but is not valid JSON, or was written by
                    an incompatible version.
    """
    mp = Path(manifest_path)
    if not mp.exists():
        return empty_manifest()

    try:
        with mp.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        # A corrupted ledger must not silently trigger a full re-index.
        raise ValueError(f"Manifest is not valid JSON: {manifest_path}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a JSON object: {manifest_path}")
    if data.get("version", MANIFEST_VERSION) != MANIFEST_VERSION:
        raise ValueError(f"Unsupported manifest version {data.get('version')!r}: {manifest_path}")

    data.setdefault("version", MANIFEST_VERSION)
    data.setdefault("generated_at", "")
    data.setdefault("root", "")
    data.setdefault("store", "")
    if not isinstance(data.get("files"), list):
        data["files"] = []
    for rec in data["files"]:
        rec.setdefault("ids", [])
    return data


def diff(
    records_now: List[Record],
    manifest_prev: Dict[str, Any],
) -> Tuple[List[Record], List[Record], List[Record]]:
    """
    Compare the current scan against the previous manifest, keyed by path.

    Returns:
        (to_process, unchanged, tombstones)
            to_process: new files, or files whose sha256 changed
            unchanged:  same path and sha256 (carrying the previous ids over)
            tombstones: previous records whose path is gone now
    """
    prev_by_path: Dict[str, Record] = {rec["path"]: rec for rec in manifest_prev.get("files", [])}
    now_paths = {rec["path"] for rec in records_now}

    to_process: List[Record] = []
    unchanged: List[Record] = []
    for now_rec in records_now:
        prev_rec = prev_by_path.get(now_rec["path"])
        if prev_rec is not None and str(prev_rec["sha256"]) == str(now_rec["sha256"]):
            unchanged.append({**now_rec, "ids": list(prev_rec.get("ids", []))})
        else:
            to_process.append(now_rec)

    tombstones = [rec for path, rec in prev_by_path.items() if path not in now_paths]
    return to_process, unchanged, tombstones


def publish_atomic(manifest_dict: Dict[str, Any], manifest_path: str) -> None:
    """
    Write the whole manifest to <manifest_path>.tmp, then os.replace it over
    the old one, so readers see either the previous or the new ledger.
    """
    mp = Path(manifest_path)
    mp.parent.mkdir(parents=True, exist_ok=True)

    if not manifest_dict.get("generated_at"):
        manifest_dict["generated_at"] = _utc_now_iso()

    tmp_path = mp.with_suffix(mp.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        # ensure_ascii keeps undecodable file names (surrogate escapes) writable
        json.dump(manifest_dict, f, ensure_ascii=True, indent=2, sort_keys=True)
    os.replace(str(tmp_path), str(mp))


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
