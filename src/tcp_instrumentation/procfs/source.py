"""
Filesystem abstraction over ``/proc``-style trees.

Everything the library reads from the kernel goes through :class:`ProcFS`, so a
relocated tree (a test fixture or a captured copy) can stand in for the live
one by changing the root.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import IO, List, Union

PathPart = Union[str, int]


class ProcFS:
    """List entries, read files and stat paths relative to ``root``."""

    def __init__(self, root: Union[str, os.PathLike[str]]) -> None:
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.root)!r})"

    def path(self, *parts: PathPart) -> Path:
        return self.root.joinpath(*(str(part) for part in parts))

    def list_entries(self, *parts: PathPart) -> List[str]:
        return sorted(os.listdir(self.path(*parts)))

    def read_text(self, *parts: PathPart) -> str:
        return self.path(*parts).read_text(encoding="utf-8", errors="replace")

    def read_first_line(self, *parts: PathPart) -> str:
        with self.path(*parts).open("r", encoding="utf-8", errors="replace") as handle:
            return handle.readline()

    def read_bytes(self, *parts: PathPart, size: int = -1) -> bytes:
        with self.path(*parts).open("rb") as handle:
            return handle.read(size)

    def open(self, *parts: PathPart, mode: str = "rb") -> IO[bytes]:
        return self.path(*parts).open(mode)

    def stat(self, *parts: PathPart) -> os.stat_result:
        # Follows symlinks so /proc/<pid>/fd/<n> resolves to the socket inode.
        return os.stat(self.path(*parts))


__all__ = ["ProcFS"]
