from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterator, List, Optional

from ..core.catalog import Agent, Group, Variable
from ..core.render import value_to_text
from ..core.snapshot import Snapshot, delta_value, snapshot_alloc
from ..exceptions import NoSuchConnectionError, VariableNotFoundError
from .base import BaseCollector, CollectorConfig

LOG = logging.getLogger(__name__)


class TcpStatsCollector(BaseCollector):
    """Per-connection counter deltas between consecutive snapshots of one group."""

    NAME = "tcp"

    def __init__(self, config: CollectorConfig, agent: Optional[Agent] = None, profiler=None) -> None:
        super().__init__(config, agent=agent, profiler=profiler)
        self._group: Optional[Group] = None
        self._previous: Dict[int, Snapshot] = {}
        self._last_emit_ns = time.time_ns()

    @property
    def group(self) -> Group:
        if self._group is None:
            raise RuntimeError("Collector not attached yet")
        return self._group

    def do_attach(self, agent: Agent) -> None:
        group = agent.group_by_name(self.config.group)
        if group is None:
            raise VariableNotFoundError(f"group {self.config.group!r} is not in the header")
        self._group = group

    def _variables(self) -> List[Variable]:
        return [var for var in self.group if self.config.wants_variable(var.name)]

    def consume(self) -> Iterator[Dict[str, Any]]:
        now_ns = time.time_ns()
        elapsed = max(1e-9, (now_ns - self._last_emit_ns) / 1e9)
        self._last_emit_ns = now_ns

        with self.measure("registry"):
            connections = self.agent.connections()

        current: Dict[int, Snapshot] = {}
        variables = self._variables()
        for conn in connections:
            if not self.config.wants_cid(conn.cid):
                continue
            snap = snapshot_alloc(self.group, conn)
            try:
                snap.capture()
            except NoSuchConnectionError as exc:
                LOG.debug("Connection %d vanished before capture: %s", conn.cid, exc)
                continue
            current[conn.cid] = snap

            previous = self._previous.get(conn.cid)
            if previous is None or previous.connection != conn:
                continue

            values = {var.name: value_to_text(var.type, snap.read(var)) for var in variables}
            deltas = {
                var.name: delta_value(var, snap, previous)
                for var in variables
                if var.type.is_counter
            }
            if not self.config.include_idle and deltas and not any(deltas.values()):
                continue
            yield {
                "type": "tcp",
                "cid": conn.cid,
                "group": self.group.name,
                "interval_s": elapsed,
                "values": values,
                "deltas": deltas,
            }

        self._previous = current

    def reset(self) -> None:
        self._previous = {}
