# -*- coding: utf-8 -*-
"""
errors.py

Exception hierarchy shared by the ingestion and retrieval layers.

Every failure is raised with enough context (operation, file, query) to be
actionable and chained to its cause with ``raise ... from exc``. Nothing in
coderag retries or suppresses these; callers decide what to do.
"""

from __future__ import annotations

from typing import Optional


class CodeRagError(Exception):
    """Base class for all coderag failures."""


class OperationCancelled(CodeRagError):
    """The caller's CancelToken was cancelled or its deadline passed."""


class EmbeddingError(CodeRagError):
    """Embedding provider failure: empty input, transport, status or payload."""


class MissingCredentialsError(CodeRagError, ValueError):
    """No API key was supplied or found in the environment / .env."""


class VectorStoreError(CodeRagError):
    """Vector store failure while adding, querying, deleting or closing."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        super().__init__(message)
        self.operation = operation


class IndexingError(CodeRagError):
    """A file (or the directory walk) could not be indexed."""

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class SearchError(CodeRagError):
    """A query could not be answered."""

    def __init__(self, message: str, *, query: str = "") -> None:
        super().__init__(message)
        self.query = query
