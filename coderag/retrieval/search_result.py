# -*- coding: utf-8 -*-
"""
SearchResult
============
Pure data container for one search hit, the only shape handed to callers
(CLI, API, ...):
- `content`:  the chunk text
- `metadata`: file_path, chunk_index, total_chunks, language
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict

@dataclass(frozen=True, slots=True)
class SearchResult:
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content, "metadata": dict(self.metadata)}
