"""
Metadata catalog built from the agent header.

The header is a token stream: ``/ <group>`` opens a group and every following
``<name> <offset> <type-tag>`` triple declares one variable of that group. The
optional first line carries the agent version string.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from ..exceptions import (
    HeaderError,
    InvalidArgumentError,
    OutOfMemoryError,
    UnsupportedTransportError,
    VariableNotFoundError,
)
from ..procfs.source import ProcFS
from .config import AgentConfig, Transport
from .registry import Connection, ConnectionSpec, read_connections
from .types import NATIVE, VarType, unsigned

LOG = logging.getLogger(__name__)

# Groups with this name describe the spec record; they are parsed and dropped.
SPEC_GROUP = "spec"
MAX_TOKEN_LEN = 255


@dataclass(frozen=True)
class Variable:
    name: str
    offset: int
    type: VarType
    group: "Group" = field(compare=False, repr=False)

    @property
    def width(self) -> int:
        return self.type.width

    @property
    def group_name(self) -> str:
        return self.group.name

    def decode(self, raw: bytes) -> Union[int, bytes]:
        """Addresses stay raw bytes, everything else is an unsigned int."""
        if self.type.is_address:
            return bytes(raw)
        return unsigned(raw)

    def encode(self, value: Union[int, bytes]) -> bytes:
        if isinstance(value, (bytes, bytearray)):
            raw = bytes(value)
        else:
            try:
                raw = int(value).to_bytes(self.width, NATIVE)
            except OverflowError as exc:
                raise InvalidArgumentError(
                    f"value {value} does not fit {self.name} ({self.width} bytes)"
                ) from exc
        if len(raw) != self.width:
            raise InvalidArgumentError(
                f"{self.name} expects {self.width} bytes, got {len(raw)}"
            )
        return raw


class Group:
    """A named block of variables sharing one binary image per connection."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.size = 0
        self.variables: List[Variable] = []
        self.agent: Optional["Agent"] = None

    def __repr__(self) -> str:
        return f"Group(name={self.name!r}, size={self.size}, nvars={self.nvars})"

    def __iter__(self) -> Iterator[Variable]:
        return iter(self.variables)

    def __len__(self) -> int:
        return len(self.variables)

    @property
    def nvars(self) -> int:
        return len(self.variables)

    def variable_by_name(self, name: str) -> Optional[Variable]:
        for var in self.variables:
            if var.name == name:
                return var
        return None

    def _add(self, name: str, offset: int, vartype: VarType) -> Variable:
        var = Variable(name=name, offset=offset, type=vartype, group=self)
        self.variables.append(var)
        self.size += vartype.width
        return var

    def _check_bounds(self) -> None:
        for var in self.variables:
            if var.offset + var.width > self.size:
                raise HeaderError(
                    f"variable {var.name} at offset {var.offset} overruns group "
                    f"{self.name} ({self.size} bytes)"
                )


def _checked(token: str) -> str:
    if len(token) > MAX_TOKEN_LEN:
        raise HeaderError(f"token exceeds {MAX_TOKEN_LEN} characters: {token[:32]}...")
    return token


def _parse_int(token: Optional[str], what: str, var_name: str) -> int:
    if token is None:
        raise HeaderError(f"variable {var_name} is missing its {what}")
    try:
        return int(token, 10)
    except ValueError as exc:
        raise HeaderError(f"variable {var_name} has non-integer {what} {token!r}") from exc


def _split_version(text: str) -> Tuple[str, str]:
    stripped = text.lstrip()
    if not stripped:
        raise HeaderError("header is empty")
    if stripped.startswith("/"):
        return "", stripped
    first, _, rest = stripped.partition("\n")
    return first.strip(), rest


def parse_header(text: str) -> Tuple[str, List[Group]]:
    """Parse header text into ``(version, groups)``.

    Groups come back in file order with variables in file order. Any structural
    problem raises :class:`HeaderError`; nothing partial is returned.
    """
    version, body = _split_version(text)
    tokens = iter(_checked(token) for token in body.split())
    groups: List[Group] = []
    current: Optional[Group] = None

    for token in tokens:
        if token.startswith("/"):
            if current is not None:
                current._check_bounds()
            name = token[1:] or next(tokens, None)
            if not name:
                raise HeaderError("group marker without a group name")
            current = Group(name)
            if name != SPEC_GROUP:
                groups.append(current)
            continue

        if current is None:
            raise HeaderError(f"variable {token!r} appears before any group")
        offset = _parse_int(next(tokens, None), "offset", token)
        tag = _parse_int(next(tokens, None), "type tag", token)
        if offset < 0:
            raise HeaderError(f"variable {token} has negative offset {offset}")
        current._add(token, offset, VarType.from_tag(tag))

    if current is not None:
        current._check_bounds()
    return version, groups


class Agent:
    """One attached instrumentation source: its catalog and connection registry."""

    def __init__(self, config: AgentConfig, version: str, groups: List[Group]) -> None:
        self.config = config
        self.transport = config.transport
        self.version = version
        self._groups = list(groups)
        for group in self._groups:
            group.agent = self
        self._connections: List[Connection] = []
        self._fs = ProcFS(config.root_dir)
        self._attached = True

    def __repr__(self) -> str:
        return (
            f"Agent(version={self.version!r}, groups={len(self._groups)}, "
            f"root={str(self.config.root_dir)!r})"
        )

    def __enter__(self) -> "Agent":
        return self

    def __exit__(self, *exc_info) -> None:
        self.detach()

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def fs(self) -> ProcFS:
        self._ensure_attached()
        return self._fs

    @property
    def groups(self) -> List[Group]:
        self._ensure_attached()
        return list(self._groups)

    def _ensure_attached(self) -> None:
        if not self._attached:
            raise InvalidArgumentError("agent is detached")

    def detach(self) -> None:
        self._groups = []
        self._connections = []
        self._attached = False

    def group_by_name(self, name: str) -> Optional[Group]:
        self._ensure_attached()
        for group in self._groups:
            if group.name == name:
                return group
        return None

    def find_variable_anywhere(self, name: str) -> Optional[Tuple[Group, Variable]]:
        self._ensure_attached()
        for group in self._groups:
            var = group.variable_by_name(name)
            if var is not None:
                return group, var
        return None

    def require_variable(self, name: str) -> Tuple[Group, Variable]:
        found = self.find_variable_anywhere(name)
        if found is None:
            raise VariableNotFoundError(name)
        return found

    def refresh_connections(self) -> List[Connection]:
        self._ensure_attached()
        self._connections = []
        connections = read_connections(self._fs, self)
        self._connections = connections
        LOG.debug("Registry refreshed: %d connections under %s", len(connections), self._fs.root)
        return list(connections)

    def connections(self) -> List[Connection]:
        """Current registry contents; always re-reads the connection root."""
        return self.refresh_connections()

    def find_by_spec(self, spec: ConnectionSpec) -> Optional[Connection]:
        for conn in self.refresh_connections():
            if conn.spec == spec:
                return conn
        return None

    def find_by_cid(self, cid: int) -> Optional[Connection]:
        for conn in self.refresh_connections():
            if conn.cid == cid:
                return conn
        return None


def attach(config: Optional[AgentConfig] = None) -> Agent:
    """Build the catalog for ``config`` (live /proc/web100 paths by default)."""
    config = config or AgentConfig.local()
    if config.transport is not Transport.LOCAL:
        raise UnsupportedTransportError(f"transport {config.transport.value!r} is not supported")

    header = Path(config.header_file)
    try:
        text = header.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise HeaderError(f"cannot read {header}: {exc}") from exc

    try:
        version, groups = parse_header(text)
    except MemoryError as exc:
        raise OutOfMemoryError(f"while parsing {header}") from exc

    agent = Agent(config, version, groups)
    LOG.debug(
        "Attached agent version %r with %d groups from %s", version, len(groups), header
    )
    return agent


def detach(agent: Agent) -> None:
    agent.detach()


__all__ = [
    "Agent",
    "Group",
    "Variable",
    "SPEC_GROUP",
    "attach",
    "detach",
    "parse_header",
]
