# -*- coding: utf-8 -*-
"""
cancellation.py

Cooperative cancellation for indexing and search calls.

A CancelToken is created by the caller and passed down through every call
boundary (file read, embed, store write/query). Each step calls
check_cancelled() before doing work, so a cancelled or expired token stops the
operation promptly with OperationCancelled instead of finishing extra work.

Usage:
    token = CancelToken(timeout=30)        # 30 s deadline
    indexer.index_directory(token=token)
    # elsewhere (another thread): token.cancel()
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from coderag.errors import OperationCancelled


class CancelToken:
    """Thread-safe cancel flag with an optional monotonic deadline."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        if timeout is not None and timeout < 0:
            raise ValueError("timeout must be non-negative")
        self._event = threading.Event()
        self._deadline: Optional[float] = (
            time.monotonic() + timeout if timeout is not None else None
        )

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (0.0 once expired), None if unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self, operation: str) -> None:
        if self._event.is_set():
            raise OperationCancelled(f"{operation}: cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise OperationCancelled(f"{operation}: deadline exceeded")


def check_cancelled(token: Optional[CancelToken], operation: str) -> None:
    """Raise OperationCancelled if `token` is set; a None token never cancels."""
    if token is not None:
        token.check(operation)
