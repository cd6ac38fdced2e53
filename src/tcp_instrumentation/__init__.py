"""
tcp-instrumentation: per-connection TCP statistics

Reads the kernel's per-connection TCP counters, captures and differences
snapshots of them, and attributes each tracked connection to the process that
owns it.
"""

from tcp_instrumentation.core.catalog import Agent, Group, Variable, attach, detach
from tcp_instrumentation.core.config import AgentConfig, Transport
from tcp_instrumentation.core.registry import Connection, ConnectionSpec, ConnectionSpecV6
from tcp_instrumentation.core.render import value_to_text
from tcp_instrumentation.core.snapshot import (
    Snapshot,
    copy_snapshot_data,
    delta,
    read_from_snapshot,
    read_variable,
    snapshot_alloc,
    write_variable,
)
from tcp_instrumentation.core.types import AddressFamily, VarType
from tcp_instrumentation.correlation import ConnectionInfo, ConnectionInfoContext
from tcp_instrumentation.exceptions import ErrorKind, InstrumentationError, strerror

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentConfig",
    "AddressFamily",
    "Connection",
    "ConnectionInfo",
    "ConnectionInfoContext",
    "ConnectionSpec",
    "ConnectionSpecV6",
    "ErrorKind",
    "Group",
    "InstrumentationError",
    "Snapshot",
    "Transport",
    "VarType",
    "Variable",
    "attach",
    "copy_snapshot_data",
    "delta",
    "detach",
    "read_from_snapshot",
    "read_variable",
    "snapshot_alloc",
    "strerror",
    "value_to_text",
    "write_variable",
    "__version__",
]
