import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class Transport(Enum):
    """Agent transports. Only LOCAL is implemented."""

    LOCAL = "local"
    SNMP = "snmp"


DEFAULT_ROOT = Path("/proc/web100")
DEFAULT_PROC_ROOT = Path("/proc")


@dataclass
class AgentConfig:
    """Where an agent finds its header, connection tree and process tree."""

    transport: Transport = Transport.LOCAL
    root_dir: Path = DEFAULT_ROOT
    header_file: Optional[Path] = None
    proc_root: Path = DEFAULT_PROC_ROOT
    read_group: str = "read"

    def __post_init__(self):
        if isinstance(self.transport, str):
            try:
                self.transport = Transport(self.transport)
            except ValueError:
                raise ValueError(
                    f"Unknown transport: {self.transport}. "
                    f"Options: {[t.value for t in Transport]}"
                )
        self.root_dir = Path(self.root_dir)
        self.proc_root = Path(self.proc_root)
        if self.header_file is None:
            self.header_file = self.root_dir / "header"
        else:
            self.header_file = Path(self.header_file)
        if not self.read_group:
            raise ValueError("read_group must be a non-empty group name")

    @classmethod
    def local(cls) -> "AgentConfig":
        """Live kernel paths (/proc/web100 and /proc)."""
        return cls()

    @classmethod
    def under(cls, base: Union[str, os.PathLike]) -> "AgentConfig":
        """Relocated tree: ``base/web100`` for connections, ``base/proc`` for processes."""
        base = Path(base)
        return cls(root_dir=base / "web100", proc_root=base / "proc")

    @classmethod
    def from_env(cls) -> "AgentConfig":
        """Defaults overridden by TCP_INSTRUMENTATION_* environment variables."""
        return cls(
            root_dir=Path(os.environ.get("TCP_INSTRUMENTATION_ROOT", DEFAULT_ROOT)),
            header_file=os.environ.get("TCP_INSTRUMENTATION_HEADER") or None,
            proc_root=Path(os.environ.get("TCP_INSTRUMENTATION_PROC", DEFAULT_PROC_ROOT)),
        )

    def with_root(self, root: Union[str, os.PathLike]) -> "AgentConfig":
        """Override the connection root directory.

        The header path follows the root unless it was set explicitly.

        Args:
            root: Directory holding ``header`` and one entry per connection id

        Returns:
            Self for method chaining
        """
        old_default = self.root_dir / "header"
        self.root_dir = Path(root)
        if self.header_file == old_default:
            self.header_file = self.root_dir / "header"
        return self

    def with_header(self, header: Union[str, os.PathLike]) -> "AgentConfig":
        """Override the header schema path.

        Returns:
            Self for method chaining
        """
        self.header_file = Path(header)
        return self

    def with_proc_root(self, proc_root: Union[str, os.PathLike]) -> "AgentConfig":
        """Override the process tree root used for correlation.

        Returns:
            Self for method chaining
        """
        self.proc_root = Path(proc_root)
        return self
