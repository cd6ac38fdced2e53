from __future__ import annotations

from typing import Any, Dict, Iterator, Optional

from ..core.catalog import Agent
from ..core.registry import ConnectionSpec
from ..core.render import value_to_text
from ..core.types import VarType
from ..correlation.context import ConnectionInfoContext
from ..correlation.join import ConnectionInfo
from ..procfs.sockets import state_name
from ..procfs.source import ProcFS
from .base import BaseCollector, CollectorConfig


def describe_info(info: ConnectionInfo) -> Dict[str, Any]:
    """Flatten a ConnectionInfo into a JSON-friendly dict."""
    addr_type = VarType.IP_ADDRESS if isinstance(info.spec, ConnectionSpec) else VarType.INET_ADDRESS_IPV6
    return {
        "cid": info.cid,
        "family": info.family.name.lower(),
        "local": f"{value_to_text(addr_type, info.spec.addr_bytes('src'))}:{info.spec.src_port}",
        "remote": f"{value_to_text(addr_type, info.spec.addr_bytes('dst'))}:{info.spec.dst_port}",
        "state": state_name(info.state) if info.state else None,
        "uid": info.uid,
        "pid": info.pid,
        "comm": info.process_name,
    }


class ConnectionInfoCollector(BaseCollector):
    """Emit every tracked connection attributed to its owning process."""

    NAME = "conninfo"

    def __init__(
        self,
        config: CollectorConfig,
        agent: Optional[Agent] = None,
        profiler=None,
        proc: Optional[ProcFS] = None,
    ) -> None:
        super().__init__(config, agent=agent, profiler=profiler)
        self._proc = proc
        self._context: Optional[ConnectionInfoContext] = None

    def do_attach(self, agent: Agent) -> None:
        self._context = ConnectionInfoContext(agent, self._proc)

    def consume(self) -> Iterator[Dict[str, Any]]:
        if self._context is None:
            raise RuntimeError("Collector not attached yet")
        with self.measure("correlation"):
            infos = self._context.refresh()
        for info in infos:
            if not self.config.wants_cid(info.cid):
                continue
            event = describe_info(info)
            event["type"] = "conninfo"
            yield event

    def reset(self) -> None:
        if self._context is not None:
            self._context.clear()
