"""
Base classes for polling collectors.
"""

from __future__ import annotations

import abc
import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from ..core.catalog import Agent, attach
from ..core.config import AgentConfig
from ..core.profiling import RefreshProfiler

LOG = logging.getLogger(__name__)


@dataclass
class CollectorConfig:
    """Common configuration shared by all collectors."""

    agent: AgentConfig = field(default_factory=AgentConfig.local)
    group: str = "read"
    variables: tuple[str, ...] = ()
    cids: tuple[int, ...] = ()
    include_idle: bool = False

    def wants_cid(self, cid: int) -> bool:
        return not self.cids or cid in self.cids

    def wants_variable(self, name: str) -> bool:
        return not self.variables or name in self.variables


class BaseCollector(abc.ABC):
    """Contract for collectors polling the connection tree."""

    NAME: str = ""

    def __init__(
        self,
        config: CollectorConfig,
        agent: Optional[Agent] = None,
        profiler: Optional[RefreshProfiler] = None,
    ) -> None:
        self.config = config
        self._agent = agent
        self._owns_agent = agent is None
        self.profiler = profiler
        self._attached = False

    @property
    def agent(self) -> Agent:
        if self._agent is None:
            raise RuntimeError("Collector not attached yet")
        return self._agent

    def attach(self) -> None:
        if self._attached:
            return
        if self._agent is None:
            self._agent = attach(self.config.agent)
        self.do_attach(self._agent)
        self._attached = True
        LOG.debug("Collector %s attached", self.NAME)

    def detach(self) -> None:
        try:
            if self._owns_agent and self._agent is not None:
                self._agent.detach()
                self._agent = None
        finally:
            self._attached = False

    def measure(self, label: str):
        if self.profiler is None:
            return nullcontext()
        return self.profiler.measure(f"{self.NAME}.{label}")

    def do_attach(self, agent: Agent) -> None:
        """Hook for collectors that validate the catalog on attach."""
        del agent

    @abc.abstractmethod
    def consume(self) -> Iterator[Dict[str, Any]]:
        """Yield raw events to be aggregated."""

    def reset(self) -> None:
        """Drop any per-connection state."""
        pass
