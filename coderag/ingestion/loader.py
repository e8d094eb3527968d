"""
CodeFileLoader
==============
Discovers source-code files under a root directory and reads them as text.
"""

import os
from pathlib import Path
from typing import FrozenSet, Iterator, Union

CODE_EXTENSIONS: FrozenSet[str] = frozenset({
    ".go", ".py", ".js", ".ts", ".java", ".cpp", ".c", ".h", ".hpp", ".rs",
})


def is_code_file(path: Union[str, os.PathLike]) -> bool:
    """True iff the lowercased extension is one of CODE_EXTENSIONS."""
    _, ext = os.path.splitext(os.fspath(path))
    return ext.lower() in CODE_EXTENSIONS


def language_tag(path: Union[str, os.PathLike]) -> str:
    """Extension without its leading dot ("main.go" -> "go"); "" if there is none."""
    _, ext = os.path.splitext(os.fspath(path))
    return ext[1:]


def _raise(err: OSError) -> None:
    raise err


class CodeFileLoader:
    """Walks a source tree and yields the paths of eligible code files."""

    def __init__(self, root: Union[str, os.PathLike]) -> None:
        """
        :param root: Directory to index. Yielded paths are joined onto it as
                     given, so a relative root produces relative paths.
        """
        self.root = os.fspath(root)

    def iter_files(self) -> Iterator[str]:
        """
        Yield eligible file paths, walking recursively in sorted order.
        Only regular files (or symlinks to them) are yielded; dangling links,
        FIFOs, sockets and devices are skipped.

        Any error from the traversal itself (missing root, unreadable
        directory) is raised here and ends the walk. Stop early by simply
        not consuming the rest of the iterator.
        """
        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_raise):
            dirnames.sort()
            for fname in sorted(filenames):
                if not is_code_file(fname):
                    continue
                full = os.path.join(dirpath, fname)
                if os.path.isfile(full):
                    yield full

    @staticmethod
    def read_file(path: Union[str, os.PathLike]) -> str:
        """Read a whole file as text, line endings untouched; OSError propagates."""
        p = Path(path)
        try:
            with p.open("r", encoding="utf-8", newline="") as f:
                return f.read()
        except UnicodeDecodeError:
            # Fallback: latin-1 decodes any byte sequence
            with p.open("r", encoding="latin-1", newline="") as f:
                return f.read()
