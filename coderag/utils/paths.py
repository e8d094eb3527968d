"""
Paths
=====
Centralises the default on-disk locations so that a single import
(`from coderag.utils.paths import PATHS`) provides **typed** access to the
directories used by the vector store.
"""
import tempfile
from pathlib import Path
from typing import TypedDict

class _Paths(TypedDict):
    state:     Path
    chroma_db: Path

STATE = Path(tempfile.gettempdir()) / "coderag"

PATHS: _Paths = {
    "state":     STATE,
    "chroma_db": STATE / "chromadb",
}
