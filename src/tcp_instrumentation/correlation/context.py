"""
Cached, rebuild-on-refresh view of attributed connections.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterator, List, Optional

from ..procfs.processes import scan_processes
from ..procfs.sockets import read_socket_tables
from ..procfs.source import ProcFS
from .join import ConnectionInfo, catalog_entries, join

if TYPE_CHECKING:
    from ..core.catalog import Agent

LOG = logging.getLogger(__name__)


class ConnectionInfoContext:
    """Holds the last successful correlation result for one agent.

    ``refresh`` rebuilds everything from scratch; the previous result is only
    replaced once the new one is complete, so a failed refresh leaves it intact.
    """

    def __init__(self, agent: "Agent", proc: Optional[ProcFS] = None) -> None:
        self.agent = agent
        self.proc = proc or ProcFS(agent.config.proc_root)
        self._infos: List[ConnectionInfo] = []

    def __iter__(self) -> Iterator[ConnectionInfo]:
        return iter(self._infos)

    def __len__(self) -> int:
        return len(self._infos)

    @property
    def infos(self) -> List[ConnectionInfo]:
        return list(self._infos)

    def refresh(self) -> List[ConnectionInfo]:
        catalog = catalog_entries(self.agent)
        sockets = read_socket_tables(self.proc)
        processes = scan_processes(self.proc)
        infos = join(catalog, sockets, processes)
        self._infos = infos
        LOG.debug(
            "Correlated %d connections (%d attributed to a process)",
            len(infos),
            sum(1 for info in infos if info.attributed),
        )
        return list(infos)

    def find(self, cid: int) -> Optional[ConnectionInfo]:
        for info in self._infos:
            if info.cid == cid:
                return info
        return None

    def clear(self) -> None:
        self._infos = []


def connection_info(agent: "Agent", proc: Optional[ProcFS] = None) -> List[ConnectionInfo]:
    """One-shot correlation for callers that do not keep a context around."""
    return ConnectionInfoContext(agent, proc).refresh()


__all__ = ["ConnectionInfoContext", "connection_info"]
