# -*- coding: utf-8 -*-
"""
content_id.py

Content-addressed chunk IDs.

The ID of a chunk is the SHA-256 of its file path immediately followed by its
text (no separator), as 64 lowercase hex characters. The same (path, text)
always maps to the same ID, so re-indexing an unchanged file upserts onto the
rows already in the store.

The path is hashed as its raw filesystem bytes (os.fsencode), so names that
are not valid UTF-8 still hash; on UTF-8 systems this equals encoding the
path string as UTF-8.
"""

from __future__ import annotations

import hashlib
import os
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]


def make_chunk_id(file_path: PathLike, chunk_text: str) -> str:
    h = hashlib.sha256()
    h.update(os.fsencode(file_path))
    h.update(chunk_text.encode("utf-8", "surrogateescape"))
    return h.hexdigest()
