"""
Interval-based aggregator that stamps and emits events coming from collectors.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from ..collectors import BaseCollector
from ..core.profiling import RefreshProfiler
from ..exceptions import InstrumentationError, describe
from .compression import get_strategy

LOG = logging.getLogger(__name__)


@dataclass
class AggregationConfig:
    interval: float = 1.0
    output_path: Optional[Path] = None
    flush_every: int = 5
    fsync: bool = False
    compression: str = "none"
    include_wall_time: bool = True
    include_overhead: bool = False
    extra_labels: Dict[str, Any] = field(default_factory=dict)


class IntervalAggregator:
    def __init__(
        self,
        collectors: Sequence[BaseCollector],
        config: AggregationConfig,
        profiler: Optional[RefreshProfiler] = None,
    ) -> None:
        self.collectors = list(collectors)
        self.config = config
        self.profiler = profiler
        self._compressor = get_strategy(config.compression)
        self._buffer: List[str] = []
        self._last_flush = time.monotonic()

        if self.config.output_path:
            self.config.output_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self.config.output_path.open("ab")
        else:
            self._file = None

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass

    def close(self) -> None:
        if self._file:
            if self._buffer:
                self._flush()
            self._file.close()
            self._file = None

    def run_forever(self) -> None:
        for collector in self.collectors:
            collector.attach()
        try:
            while True:
                start = time.monotonic()
                events = list(self.collect_once())
                if events:
                    self.emit(events)
                elapsed = time.monotonic() - start
                sleep_for = max(0.0, self.config.interval - elapsed)
                if sleep_for:
                    time.sleep(sleep_for)
        finally:
            for collector in self.collectors:
                collector.detach()
            self.close()

    def collect_once(self) -> Iterator[Dict[str, Any]]:
        now_ns = time.time_ns()
        wall_ts = (
            datetime.now(timezone.utc).isoformat()
            if self.config.include_wall_time
            else None
        )
        events: List[Dict[str, Any]] = []
        for collector in self.collectors:
            try:
                events.extend(collector.consume())
            except InstrumentationError as exc:
                # a failed pass of one collector must not stop the others
                LOG.warning("Collector %s failed: %s", collector.NAME, describe(exc))
                continue
        if self.config.include_overhead and self.profiler is not None:
            self.profiler.sample_rss()
            events.append({"type": "overhead", **self.profiler.metrics.summary()})

        for event in events:
            event.setdefault("ts_ns", now_ns)
            if wall_ts:
                event.setdefault("ts", wall_ts)
            if self.config.extra_labels:
                event.setdefault("labels", {}).update(self.config.extra_labels)
            yield event

    def emit(self, events: Iterable[Dict[str, Any]]) -> None:
        for event in events:
            line = json.dumps(event, separators=(",", ":"), sort_keys=True)
            if self._file:
                self._buffer.append(line)
            else:
                print(line)
        if self._file:
            now = time.monotonic()
            if (
                len(self._buffer) >= self.config.flush_every
                or (now - self._last_flush) >= self.config.interval
            ):
                self._flush()

    def _flush(self) -> None:
        # each flush is one independent frame; compressed output is a frame concatenation
        assert self._file is not None
        data = ("\n".join(self._buffer) + "\n").encode("utf-8")
        self._file.write(self._compressor.compress(data))
        self._file.flush()
        if self.config.fsync:
            os.fsync(self._file.fileno())
        self._buffer.clear()
        self._last_flush = time.monotonic()
