"""
Connection registry: one numeric directory per tracked connection.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, List

from ..exceptions import SystemIOError
from ..procfs.source import ProcFS
from .types import NATIVE, AddressFamily, unsigned

if TYPE_CHECKING:
    from .catalog import Agent

LOG = logging.getLogger(__name__)

# dst_port, dst_addr, src_port, src_addr; native order, no padding.
SPEC_RECORD = struct.Struct("=HIHI")


def ipv6_proc_text(raw: bytes) -> str:
    """Render 16 address bytes the way the kernel prints them in net/tcp6."""
    padded = bytes(raw).ljust(16, b"\x00")[:16]
    return "".join(f"{unsigned(padded[i:i + 4]):08X}" for i in range(0, 16, 4))


@dataclass(frozen=True)
class ConnectionSpec:
    """IPv4 4-tuple with addresses held as native-order 32-bit integers."""

    dst_port: int
    dst_addr: int
    src_port: int
    src_addr: int

    family: ClassVar[AddressFamily] = AddressFamily.IPV4

    @classmethod
    def unpack(cls, raw: bytes) -> "ConnectionSpec":
        dst_port, dst_addr, src_port, src_addr = SPEC_RECORD.unpack(raw)
        return cls(dst_port=dst_port, dst_addr=dst_addr, src_port=src_port, src_addr=src_addr)

    def pack(self) -> bytes:
        return SPEC_RECORD.pack(self.dst_port, self.dst_addr, self.src_port, self.src_addr)

    @property
    def remote_key(self) -> int:
        return self.dst_addr

    def addr_bytes(self, which: str = "dst") -> bytes:
        value = self.dst_addr if which == "dst" else self.src_addr
        return value.to_bytes(4, NATIVE)


@dataclass(frozen=True)
class ConnectionSpecV6:
    """IPv6 4-tuple with 16-byte raw addresses."""

    dst_port: int
    dst_addr: bytes
    src_port: int
    src_addr: bytes

    family: ClassVar[AddressFamily] = AddressFamily.IPV6

    def __post_init__(self) -> None:
        for name in ("dst_addr", "src_addr"):
            if len(getattr(self, name)) != 16:
                raise ValueError(f"{name} must be 16 bytes")

    @property
    def remote_key(self) -> str:
        return ipv6_proc_text(self.dst_addr)

    def addr_bytes(self, which: str = "dst") -> bytes:
        return self.dst_addr if which == "dst" else self.src_addr


@dataclass(frozen=True)
class Connection:
    cid: int
    spec: ConnectionSpec
    agent: "Agent" = field(compare=False, repr=False)


def read_connections(fs: ProcFS, agent: "Agent") -> List[Connection]:
    """Enumerate numeric entries under ``fs.root`` and read their spec records.

    Any failure aborts the whole walk with :class:`SystemIOError`.
    """
    try:
        entries = fs.list_entries()
    except OSError as exc:
        raise SystemIOError(f"cannot list {fs.root}: {exc}") from exc

    connections: List[Connection] = []
    for name in entries:
        if not (name.isascii() and name.isdigit()):
            LOG.debug("Skipping non-connection entry %s", name)
            continue
        try:
            raw = fs.read_bytes(name, "spec", size=SPEC_RECORD.size)
        except OSError as exc:
            raise SystemIOError(f"cannot read spec for connection {name}: {exc}") from exc
        if len(raw) != SPEC_RECORD.size:
            raise SystemIOError(
                f"bad spec file format for connection {name}: "
                f"{len(raw)} of {SPEC_RECORD.size} bytes"
            )
        connections.append(Connection(cid=int(name), spec=ConnectionSpec.unpack(raw), agent=agent))

    connections.sort(key=lambda conn: conn.cid)
    return connections


__all__ = [
    "Connection",
    "ConnectionSpec",
    "ConnectionSpecV6",
    "SPEC_RECORD",
    "ipv6_proc_text",
    "read_connections",
]
