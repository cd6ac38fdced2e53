import os
import shutil
import stat
import struct
import sys
from pathlib import Path
from typing import Dict, Iterable, Tuple

import pytest

from tcp_instrumentation.core.config import AgentConfig
from tcp_instrumentation.core.registry import SPEC_RECORD
from tcp_instrumentation.procfs.source import ProcFS

HEADER = """2.5.27 201001301335 net100

/spec
DstPort 0 8
DstAddr 2 2
SrcPort 6 8
SrcAddr 8 2

/read
LocalAddressType 0 1
LocalAddress 4 2
LocalPort 8 8
PktsOut 10 3
DataBytesOut 14 7

/tune
LimCwnd 0 4
"""

# LocalAddressType, LocalAddress, LocalPort, PktsOut, DataBytesOut
READ_RECORD = struct.Struct("=I4sHIQ")
TUNE_RECORD = struct.Struct("=I")

Endpoint = Tuple[str, int]

TCP_TABLE_HEADER = (
    "  sl  local_address rem_address   st tx_queue rx_queue tr tm->when "
    "retrnsmt   uid  timeout inode\n"
)


def ipv4_bytes(text: str) -> bytes:
    return bytes(int(part) for part in text.split("."))


def ipv4_int(text: str) -> int:
    """The address as the kernel holds it: network bytes read as a host integer."""
    return int.from_bytes(ipv4_bytes(text), sys.byteorder)


def socket_line(slot: int, local: Endpoint, remote: Endpoint, state: int, uid: int, inode: int) -> str:
    return (
        f"{slot:4d}: {ipv4_int(local[0]):08X}:{local[1]:04X} "
        f"{ipv4_int(remote[0]):08X}:{remote[1]:04X} {state:02X} "
        f"00000000:00000000 00:00000000 00000000 {uid:5d}        0 {inode} "
        "1 0000000000000000 20 4 30 10 -1\n"
    )


class FakeProcFS(ProcFS):
    """ProcFS whose fd entries can be marked as sockets with a given inode."""

    def __init__(self, root, sockets: Dict[Path, int]) -> None:
        super().__init__(root)
        self.sockets = sockets

    def stat(self, *parts):
        path = self.path(*parts)
        inode = self.sockets.get(path)
        if inode is None:
            return super().stat(*parts)
        return os.stat_result((stat.S_IFSOCK | 0o777, inode, 0, 1, 0, 0, 0, 0, 0, 0))


class FakeKernel:
    """A relocated web100 tree plus a matching /proc tree."""

    def __init__(self, base: Path) -> None:
        self.root = base / "web100"
        self.proc = base / "proc"
        self.root.mkdir(parents=True)
        (self.proc / "net").mkdir(parents=True)
        self.header = self.root / "header"
        self.header.write_text(HEADER)
        self._fd_inodes: Dict[Path, int] = {}
        self._socket_slots = 0

    @property
    def config(self) -> AgentConfig:
        return AgentConfig.under(self.root.parent)

    def procfs(self) -> FakeProcFS:
        return FakeProcFS(self.proc, self._fd_inodes)

    def add_connection(
        self,
        cid: int,
        local: Endpoint = ("10.0.0.5", 443),
        remote: Endpoint = ("8.8.8.8", 80),
        pkts_out: int = 0,
        bytes_out: int = 0,
        family: int = 1,
        lim_cwnd: int = 0,
    ) -> Path:
        conn_dir = self.root / str(cid)
        conn_dir.mkdir()
        (conn_dir / "spec").write_bytes(
            SPEC_RECORD.pack(remote[1], ipv4_int(remote[0]), local[1], ipv4_int(local[0]))
        )
        (conn_dir / "read").write_bytes(
            READ_RECORD.pack(family, ipv4_bytes(local[0]), local[1], pkts_out, bytes_out)
        )
        (conn_dir / "tune").write_bytes(TUNE_RECORD.pack(lim_cwnd))
        return conn_dir

    def set_counters(self, cid: int, pkts_out: int, bytes_out: int) -> None:
        path = self.root / str(cid) / "read"
        family, addr, port, _, _ = READ_RECORD.unpack(path.read_bytes())
        path.write_bytes(READ_RECORD.pack(family, addr, port, pkts_out, bytes_out))

    def remove_connection(self, cid: int) -> None:
        shutil.rmtree(self.root / str(cid))

    def add_socket(
        self,
        local: Endpoint,
        remote: Endpoint,
        inode: int,
        state: int = 0x01,
        uid: int = 1000,
        table: str = "tcp",
    ) -> None:
        path = self.proc / "net" / table
        if not path.exists():
            path.write_text(TCP_TABLE_HEADER)
        with path.open("a") as handle:
            handle.write(socket_line(self._socket_slots, local, remote, state, uid, inode))
        self._socket_slots += 1

    def add_process(self, pid: int, name: str, inodes: Iterable[int]) -> Path:
        pid_dir = self.proc / str(pid)
        fd_dir = pid_dir / "fd"
        fd_dir.mkdir(parents=True)
        (pid_dir / "status").write_text(f"Name:\t{name}\nUmask:\t0022\nState:\tS (sleeping)\n")
        (fd_dir / "0").write_text("")
        for fd, inode in enumerate(inodes, start=3):
            (fd_dir / str(fd)).write_text("")
            self._fd_inodes[fd_dir / str(fd)] = inode
        return pid_dir


@pytest.fixture
def kernel(tmp_path) -> FakeKernel:
    """Empty relocated kernel tree with the standard header."""
    return FakeKernel(tmp_path)
