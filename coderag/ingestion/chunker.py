"""
Chunker
=======
Splits source-file text into line-aligned chunks of roughly `chunk_size`
characters for embedding.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True, slots=True)
class Chunk:
    text: str
    index: int   # 0-based position within the file
    total: int   # number of chunks the file was split into


class Chunker:
    """Line-based text splitter with a soft size bound."""

    def __init__(self, chunk_size: int = 1000) -> None:
        self._check_size(chunk_size)
        self.chunk_size = chunk_size

    def split(self, text: str, chunk_size: Optional[int] = None) -> List[Chunk]:
        """
        Split the given text into consecutive chunks of whole lines.

        :param text: The full text content of the file
        :param chunk_size: Target characters per chunk (default: the instance's)
        :return: Chunks in file order; "".join(c.text for c in chunks) == text

        Each line counts len(line) + 1 towards the size. A chunk is closed
        before the line that would push it past chunk_size, unless the chunk is
        still empty, so a single overlong line becomes a chunk of its own.
        """
        size_limit = self.chunk_size if chunk_size is None else chunk_size
        self._check_size(size_limit)

        if not text:
            return []

        lines = text.split("\n")
        # text ending in "\n" leaves an empty tail that is not a line of its own
        if lines[-1] == "":
            lines.pop()

        pieces: List[str] = []
        buffer: List[str] = []
        current_size = 0
        last = len(lines) - 1

        for i, line in enumerate(lines):
            line_size = len(line) + 1
            if current_size + line_size > size_limit and current_size > 0:
                pieces.append("".join(buffer))
                buffer = []
                current_size = 0
            # every line but an unterminated last one had a newline in the file
            buffer.append(line if (i == last and not text.endswith("\n")) else line + "\n")
            current_size += line_size

        if buffer:
            pieces.append("".join(buffer))

        total = len(pieces)
        return [Chunk(text=piece, index=idx, total=total) for idx, piece in enumerate(pieces)]

    @staticmethod
    def _check_size(chunk_size: int) -> None:
        if not isinstance(chunk_size, int) or isinstance(chunk_size, bool) or chunk_size <= 0:
            raise ValueError("chunk_size must be a positive integer")
