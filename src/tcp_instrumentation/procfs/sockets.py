"""
Parsers for the kernel socket tables (``net/tcp`` and ``net/tcp6``).

Line grammar::

    sl  local_address rem_address   st tx_queue:rx_queue tr:tm->when retrnsmt   uid  timeout inode
     0: 0100007F:0277 00000000:0000 0A 00000000:00000000 00:00000000 00000000     0        0 14123

IPv4 addresses are kept as integers so two spellings of the same address
compare equal. IPv6 addresses are kept exactly as printed and compared as text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from ..core.types import AddressFamily
from ..exceptions import SystemIOError
from .source import ProcFS

LOG = logging.getLogger(__name__)

MAX_LINE_LEN = 512

SOCKET_TABLES: Tuple[Tuple[str, AddressFamily], ...] = (
    ("tcp", AddressFamily.IPV4),
    ("tcp6", AddressFamily.IPV6),
)

TCP_STATES = {
    0x01: "ESTABLISHED",
    0x02: "SYN_SENT",
    0x03: "SYN_RECV",
    0x04: "FIN_WAIT1",
    0x05: "FIN_WAIT2",
    0x06: "TIME_WAIT",
    0x07: "CLOSE",
    0x08: "CLOSE_WAIT",
    0x09: "LAST_ACK",
    0x0A: "LISTEN",
    0x0B: "CLOSING",
}

_ADDR_DIGITS = {AddressFamily.IPV4: 8, AddressFamily.IPV6: 32}

Address = Union[int, str]


def state_name(state: int) -> str:
    return TCP_STATES.get(state, "UNKNOWN")


@dataclass(frozen=True)
class SocketEntry:
    family: AddressFamily
    local_addr: Address
    local_port: int
    remote_addr: Address
    remote_port: int
    state: int
    uid: int
    inode: int

    @property
    def key(self) -> Tuple[AddressFamily, int, int, Address]:
        return (self.family, self.local_port, self.remote_port, self.remote_addr)


def _split_endpoint(token: str, family: AddressFamily) -> Optional[Tuple[Address, int]]:
    addr, sep, port = token.partition(":")
    if not sep or len(addr) != _ADDR_DIGITS[family]:
        return None
    try:
        addr_value = int(addr, 16)
        port_value = int(port, 16)
    except ValueError:
        return None
    if family is AddressFamily.IPV4:
        return addr_value, port_value
    return addr, port_value


def parse_socket_line(line: str, family: AddressFamily) -> Optional[SocketEntry]:
    """Parse one table line; ``None`` for headers and anything malformed."""
    if len(line) > MAX_LINE_LEN:
        return None
    fields = line.split()
    if len(fields) < 10:
        return None
    index = fields[0]
    if not index.endswith(":") or not index[:-1].isdigit():
        return None

    local = _split_endpoint(fields[1], family)
    remote = _split_endpoint(fields[2], family)
    if local is None or remote is None:
        return None
    try:
        state = int(fields[3], 16)
        uid = int(fields[7])
        inode = int(fields[9])
    except ValueError:
        return None

    return SocketEntry(
        family=family,
        local_addr=local[0],
        local_port=local[1],
        remote_addr=remote[0],
        remote_port=remote[1],
        state=state,
        uid=uid,
        inode=inode,
    )


def parse_socket_table(lines: Iterable[str], family: AddressFamily) -> List[SocketEntry]:
    entries: List[SocketEntry] = []
    for line in lines:
        entry = parse_socket_line(line, family)
        if entry is not None:
            entries.append(entry)
    return entries


def read_socket_tables(fs: ProcFS) -> List[SocketEntry]:
    """Read every TCP table present under ``fs.root/net``."""
    entries: List[SocketEntry] = []
    for name, family in SOCKET_TABLES:
        try:
            text = fs.read_text("net", name)
        except FileNotFoundError:
            LOG.debug("Socket table %s not present", fs.path("net", name))
            continue
        except OSError as exc:
            raise SystemIOError(f"cannot read {fs.path('net', name)}: {exc}") from exc
        parsed = parse_socket_table(text.splitlines(), family)
        LOG.debug("Parsed %d sockets from %s", len(parsed), name)
        entries.extend(parsed)
    return entries


__all__ = [
    "SocketEntry",
    "SOCKET_TABLES",
    "TCP_STATES",
    "parse_socket_line",
    "parse_socket_table",
    "read_socket_tables",
    "state_name",
]
