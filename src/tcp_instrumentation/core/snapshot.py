"""
Snapshot and delta engine.

A group's data file *is* the group's memory image, so reading one variable is a
seek to its offset plus a read of its width, and a snapshot is a copy of the
whole file.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

from ..exceptions import (
    InvalidArgumentError,
    NoSuchConnectionError,
    OutOfMemoryError,
    SystemIOError,
)
from .types import NATIVE, unsigned

if TYPE_CHECKING:
    from .catalog import Group, Variable
    from .registry import Connection


class Snapshot:
    """Point-in-time copy of one group's bytes for one connection."""

    def __init__(self, group: "Group", connection: "Connection") -> None:
        self.group = group
        self.connection = connection
        self.data = bytearray(group.size)

    def __repr__(self) -> str:
        return (
            f"Snapshot(group={self.group.name!r}, cid={self.connection.cid}, "
            f"size={len(self.data)})"
        )

    def __len__(self) -> int:
        return len(self.data)

    def capture(self) -> "Snapshot":
        capture(self)
        return self

    def read(self, variable: "Variable") -> bytes:
        return read_from_snapshot(variable, self)

    def value(self, name: str) -> Union[int, bytes]:
        """Decoded value of the named variable in this snapshot's group."""
        variable = self.group.variable_by_name(name)
        if variable is None:
            raise InvalidArgumentError(f"group {self.group.name} has no variable {name}")
        return variable.decode(read_from_snapshot(variable, self))

    def values(self) -> dict:
        return {var.name: var.decode(read_from_snapshot(var, self)) for var in self.group}


def snapshot_alloc(group: "Group", connection: "Connection") -> Snapshot:
    if group.agent is None or group.agent is not connection.agent:
        raise InvalidArgumentError(
            f"group {group.name} and connection {connection.cid} belong to different agents"
        )
    try:
        return Snapshot(group, connection)
    except MemoryError as exc:
        raise OutOfMemoryError(f"snapshot of {group.size} bytes") from exc


def snapshot_free(snapshot: Snapshot) -> None:
    snapshot.data = bytearray()


def capture(snapshot: Snapshot) -> None:
    """Fill ``snapshot`` from ``<root>/<cid>/<group>``."""
    group = snapshot.group
    cid = snapshot.connection.cid
    fs = snapshot.connection.agent.fs
    try:
        raw = fs.read_bytes(cid, group.name, size=group.size)
    except OSError as exc:
        raise NoSuchConnectionError(f"connection {cid}: {exc}") from exc
    if len(raw) != group.size:
        raise NoSuchConnectionError(
            f"connection {cid}: short read of {group.name} ({len(raw)} of {group.size} bytes)"
        )
    snapshot.data[:] = raw


def _check_pairing(variable: "Variable", connection: "Connection") -> None:
    if variable.group.agent is None or variable.group.agent is not connection.agent:
        raise InvalidArgumentError(
            f"variable {variable.name} and connection {connection.cid} belong to different agents"
        )


def read_variable(variable: "Variable", connection: "Connection") -> bytes:
    """Read one variable straight from the live connection file."""
    _check_pairing(variable, connection)
    fs = connection.agent.fs
    try:
        handle = fs.open(connection.cid, variable.group_name, mode="rb")
    except OSError as exc:
        raise NoSuchConnectionError(f"connection {connection.cid}: {exc}") from exc
    with handle:
        try:
            handle.seek(variable.offset)
            raw = handle.read(variable.width)
        except OSError as exc:
            raise SystemIOError(f"reading {variable.name}: {exc}") from exc
    if len(raw) != variable.width:
        raise SystemIOError(
            f"short read of {variable.name} for connection {connection.cid}: "
            f"{len(raw)} of {variable.width} bytes"
        )
    return raw


def write_variable(variable: "Variable", connection: "Connection", data: bytes) -> None:
    """Write one variable in place; ``data`` must be exactly its width."""
    _check_pairing(variable, connection)
    if len(data) != variable.width:
        raise InvalidArgumentError(
            f"{variable.name} expects {variable.width} bytes, got {len(data)}"
        )
    fs = connection.agent.fs
    try:
        handle = fs.open(connection.cid, variable.group_name, mode="r+b")
    except OSError as exc:
        raise NoSuchConnectionError(f"connection {connection.cid}: {exc}") from exc
    with handle:
        try:
            handle.seek(variable.offset)
            written = handle.write(bytes(data))
        except OSError as exc:
            raise SystemIOError(f"writing {variable.name}: {exc}") from exc
    if written != variable.width:
        raise SystemIOError(f"short write of {variable.name}: {written} of {variable.width} bytes")


def read_from_snapshot(variable: "Variable", snapshot: Snapshot) -> bytes:
    if variable.group is not snapshot.group:
        raise InvalidArgumentError(
            f"variable {variable.name} is not in snapshot group {snapshot.group.name}"
        )
    return bytes(snapshot.data[variable.offset:variable.offset + variable.width])


def delta_value(variable: "Variable", a: Snapshot, b: Snapshot) -> int:
    """``a - b`` modulo the variable's width.

    A counter that reset between the snapshots yields a large value; the
    subtraction is plain modular arithmetic.
    """
    if a.group is not b.group:
        raise InvalidArgumentError(
            f"snapshots are of different groups ({a.group.name}, {b.group.name})"
        )
    first = unsigned(read_from_snapshot(variable, a))
    second = unsigned(read_from_snapshot(variable, b))
    return (first - second) % (1 << (8 * variable.width))


def delta(variable: "Variable", a: Snapshot, b: Snapshot) -> bytes:
    return delta_value(variable, a, b).to_bytes(variable.width, NATIVE)


def copy_snapshot_data(dest: Snapshot, src: Snapshot) -> None:
    if dest.group is not src.group:
        raise InvalidArgumentError("snapshots are of different groups")
    if dest.connection.agent is not src.connection.agent or dest.connection != src.connection:
        raise InvalidArgumentError("snapshots are of different connections")
    dest.data[:] = src.data


__all__ = [
    "Snapshot",
    "snapshot_alloc",
    "snapshot_free",
    "capture",
    "read_variable",
    "write_variable",
    "read_from_snapshot",
    "delta",
    "delta_value",
    "copy_snapshot_data",
]
