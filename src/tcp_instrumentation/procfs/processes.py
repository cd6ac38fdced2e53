from __future__ import annotations

import logging
import stat
from dataclasses import dataclass
from typing import List, Optional

from ..exceptions import SystemIOError
from .source import ProcFS

LOG = logging.getLogger(__name__)

MAX_NAME_LEN = 255


@dataclass(frozen=True)
class ProcessSocket:
    """A socket inode held open by a process."""

    inode: int
    pid: int
    process_name: str = ""


def read_process_name(fs: ProcFS, pid: int) -> str:
    """First token after ``Name:`` on the first line of ``<pid>/status``."""
    try:
        line = fs.read_first_line(pid, "status")
    except OSError:
        return ""
    fields = line.split()
    if len(fields) < 2 or fields[0] != "Name:":
        return ""
    name = fields[1]
    if len(name) > MAX_NAME_LEN:
        LOG.debug("Ignoring over-long process name for pid %d", pid)
        return ""
    return name


def _socket_inodes(fs: ProcFS, pid: int) -> Optional[List[int]]:
    try:
        fds = fs.list_entries(pid, "fd")
    except OSError:
        # no permission, or the process exited while we walked
        return None
    inodes: List[int] = []
    for fd in fds:
        try:
            info = fs.stat(pid, "fd", fd)
        except OSError:
            continue
        if stat.S_ISSOCK(info.st_mode):
            inodes.append(info.st_ino)
    return inodes


def scan_processes(fs: ProcFS) -> List[ProcessSocket]:
    """Map socket inodes to the processes holding them open."""
    try:
        entries = fs.list_entries()
    except OSError as exc:
        raise SystemIOError(f"cannot list {fs.root}: {exc}") from exc

    sockets: List[ProcessSocket] = []
    for entry in entries:
        if not (entry.isascii() and entry.isdigit()):
            continue
        pid = int(entry)
        if pid == 0:
            continue
        inodes = _socket_inodes(fs, pid)
        if inodes is None:
            LOG.debug("Skipping pid %d: fd table unreadable", pid)
            continue
        if not inodes:
            continue
        name = read_process_name(fs, pid)
        sockets.extend(ProcessSocket(inode=inode, pid=pid, process_name=name) for inode in inodes)
    return sockets


__all__ = ["ProcessSocket", "read_process_name", "scan_processes"]
