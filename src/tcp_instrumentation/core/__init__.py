from .catalog import Agent, Group, Variable, attach, detach, parse_header
from .config import AgentConfig, Transport
from .diagnostics import DiagnosticsHooks
from .registry import Connection, ConnectionSpec, ConnectionSpecV6
from .render import value_to_text
from .snapshot import (
    Snapshot,
    capture,
    copy_snapshot_data,
    delta,
    delta_value,
    read_from_snapshot,
    read_variable,
    snapshot_alloc,
    snapshot_free,
    write_variable,
)
from .types import AddressFamily, VarType, type_width

__all__ = [
    "Agent",
    "AgentConfig",
    "AddressFamily",
    "Connection",
    "ConnectionSpec",
    "ConnectionSpecV6",
    "DiagnosticsHooks",
    "Group",
    "Snapshot",
    "Transport",
    "VarType",
    "Variable",
    "attach",
    "capture",
    "copy_snapshot_data",
    "delta",
    "delta_value",
    "detach",
    "parse_header",
    "read_from_snapshot",
    "read_variable",
    "snapshot_alloc",
    "snapshot_free",
    "type_width",
    "value_to_text",
    "write_variable",
]
