# -*- coding: utf-8 -*-
"""
SimpleLogger: tiny logging facade for coderag.

Goal:
- One class with classmethods, so any module can call SimpleLogger.info(...)
  without wiring a logger instance through constructors.
- Lines go to stderr; stdout is reserved for command output (search results).
- A minimum level filters chatter (e.g. DEBUG token accounting) unless the
  CLI is run with --verbose.
"""

from __future__ import annotations
import sys
import datetime
from typing import ClassVar, Dict


_LEVELS: Dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


class SimpleLogger:
    """
    Very small logging helper.

    Usage:
        SimpleLogger.info("message")
        SimpleLogger.debug("details")
        SimpleLogger.set_level("DEBUG")
    """

    _enabled: ClassVar[bool] = True
    _prefix: ClassVar[str] = "coderag"
    _min_level: ClassVar[int] = _LEVELS["INFO"]

    @classmethod
    def _log(cls, level: str, msg: str) -> None:
        if not cls._enabled or _LEVELS[level] < cls._min_level:
            return
        now = datetime.datetime.now().strftime("%H:%M:%S")
        line = f"{cls._prefix} | {level:5s} | {now} | {msg}"
        print(line, file=sys.stderr, flush=True)

    @classmethod
    def debug(cls, msg: str) -> None:
        cls._log("DEBUG", msg)

    @classmethod
    def info(cls, msg: str) -> None:
        cls._log("INFO", msg)

    @classmethod
    def warning(cls, msg: str) -> None:
        cls._log("WARN", msg)

    @classmethod
    def error(cls, msg: str) -> None:
        cls._log("ERROR", msg)

    @classmethod
    def set_enabled(cls, enabled: bool) -> None:
        cls._enabled = enabled

    @classmethod
    def set_prefix(cls, prefix: str) -> None:
        cls._prefix = prefix

    @classmethod
    def set_level(cls, level: str) -> None:
        """Accepts DEBUG, INFO, WARN/WARNING or ERROR (case-insensitive)."""
        name = level.upper()
        if name == "WARNING":
            name = "WARN"
        if name not in _LEVELS:
            raise ValueError(f"unknown log level: {level!r}")
        cls._min_level = _LEVELS[name]
