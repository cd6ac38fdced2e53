"""
Join the connection registry with the socket tables and process fd tables.

Equality is family specific: IPv4 endpoints compare the remote address as a
number, IPv6 endpoints compare the remote address as the 32-digit text the
kernel prints in ``net/tcp6``. Both compare local port and remote port
numerically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple, Union

from ..core.registry import ConnectionSpec, ConnectionSpecV6
from ..core.snapshot import read_variable
from ..core.types import NATIVE, AddressFamily, unsigned
from ..exceptions import VariableNotFoundError
from ..procfs.processes import ProcessSocket
from ..procfs.sockets import SocketEntry

if TYPE_CHECKING:
    from ..core.catalog import Agent, Group
    from ..core.registry import Connection

LOG = logging.getLogger(__name__)

AnySpec = Union[ConnectionSpec, ConnectionSpecV6]
JoinKey = Tuple[AddressFamily, int, int, Union[int, str]]


@dataclass(frozen=True)
class CatalogEntry:
    cid: int
    family: AddressFamily
    spec: AnySpec

    @property
    def key(self) -> JoinKey:
        return (self.family, self.spec.src_port, self.spec.dst_port, self.spec.remote_key)


@dataclass(frozen=True)
class ConnectionInfo:
    """A tracked connection attributed to its socket and owning process."""

    cid: int
    family: AddressFamily
    spec: AnySpec
    state: int = 0
    uid: int = 0
    pid: int = 0
    process_name: str = ""

    @property
    def attributed(self) -> bool:
        return self.pid != 0


def remote_variable_names(version: str) -> Tuple[str, str]:
    """(address, port) variable names for the remote endpoint."""
    if version.startswith("1."):
        return "RemoteAddress", "RemotePort"
    return "RemAddress", "RemPort"


def _read_raw(group: "Group", name: str, conn: "Connection") -> Optional[bytes]:
    var = group.variable_by_name(name)
    if var is None:
        return None
    return read_variable(var, conn)


def _as_ipv6(raw: Optional[bytes], fallback: int) -> bytes:
    if raw is None:
        raw = fallback.to_bytes(4, NATIVE)
    return bytes(raw).ljust(16, b"\x00")[:16]


def _catalog_entry(group: "Group", conn: "Connection", remote_addr: str, remote_port: str) -> CatalogEntry:
    family_raw = _read_raw(group, "LocalAddressType", conn)
    family = AddressFamily.IPV4 if family_raw is None else AddressFamily.from_raw(unsigned(family_raw))

    local_addr = _read_raw(group, "LocalAddress", conn)
    dst_addr = _read_raw(group, remote_addr, conn)
    local_port = _read_raw(group, "LocalPort", conn)
    dst_port = _read_raw(group, remote_port, conn)

    src_port = conn.spec.src_port if local_port is None else unsigned(local_port)
    rem_port = conn.spec.dst_port if dst_port is None else unsigned(dst_port)

    spec: AnySpec
    if family is AddressFamily.IPV6:
        spec = ConnectionSpecV6(
            dst_port=rem_port,
            dst_addr=_as_ipv6(dst_addr, conn.spec.dst_addr),
            src_port=src_port,
            src_addr=_as_ipv6(local_addr, conn.spec.src_addr),
        )
    else:
        spec = ConnectionSpec(
            dst_port=rem_port,
            dst_addr=conn.spec.dst_addr if dst_addr is None else unsigned(dst_addr[:4]),
            src_port=src_port,
            src_addr=conn.spec.src_addr if local_addr is None else unsigned(local_addr[:4]),
        )
    return CatalogEntry(cid=conn.cid, family=family, spec=spec)


def catalog_entries(agent: "Agent") -> List[CatalogEntry]:
    """Address family and 4-tuple of every registry connection."""
    group_name = agent.config.read_group
    group = agent.group_by_name(group_name)
    if group is None:
        raise VariableNotFoundError(f"group {group_name!r} is not in the header")
    remote_addr, remote_port = remote_variable_names(agent.version)
    return [
        _catalog_entry(group, conn, remote_addr, remote_port)
        for conn in agent.connections()
    ]


def join(
    catalog: Iterable[CatalogEntry],
    sockets: Iterable[SocketEntry],
    processes: Iterable[ProcessSocket],
) -> List[ConnectionInfo]:
    """One :class:`ConnectionInfo` per catalog entry; first match wins."""
    socket_index: Dict[JoinKey, SocketEntry] = {}
    for entry in sockets:
        socket_index.setdefault(entry.key, entry)
    owner_index: Dict[int, ProcessSocket] = {}
    for proc in processes:
        owner_index.setdefault(proc.inode, proc)

    results: List[ConnectionInfo] = []
    for item in catalog:
        sock = socket_index.get(item.key)
        if sock is None:
            # closed at the socket-table level; keep the row for the cid
            results.append(ConnectionInfo(cid=item.cid, family=item.family, spec=item.spec))
            continue
        owner = owner_index.get(sock.inode)
        results.append(
            ConnectionInfo(
                cid=item.cid,
                family=item.family,
                spec=item.spec,
                state=sock.state,
                uid=sock.uid,
                pid=owner.pid if owner else 0,
                process_name=owner.process_name if owner else "",
            )
        )
    LOG.debug(
        "Joined %d connections against %d sockets and %d owned inodes",
        len(results),
        len(socket_index),
        len(owner_index),
    )
    return results


__all__ = [
    "CatalogEntry",
    "ConnectionInfo",
    "catalog_entries",
    "join",
    "remote_variable_names",
]
