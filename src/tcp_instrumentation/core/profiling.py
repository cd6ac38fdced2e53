import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import psutil


@dataclass
class RefreshMetrics:
    """Cost of the full directory walks every refresh pays."""

    refresh_times: Dict[str, List[float]] = field(default_factory=dict)
    rss_bytes: List[int] = field(default_factory=list)
    failures: int = 0

    def record_refresh(self, label: str, duration: float) -> None:
        """Record one refresh duration under ``label``."""
        self.refresh_times.setdefault(label, []).append(duration)

    def record_rss(self, rss: int) -> None:
        self.rss_bytes.append(rss)

    def increment_failures(self) -> None:
        self.failures += 1

    def get_average(self, label: str) -> float:
        """Average refresh duration in seconds for ``label``."""
        samples = self.refresh_times.get(label)
        if not samples:
            return 0.0
        return sum(samples) / len(samples)

    def summary(self) -> Dict[str, object]:
        return {
            "refresh_avg_s": {label: self.get_average(label) for label in self.refresh_times},
            "refresh_count": {label: len(v) for label, v in self.refresh_times.items()},
            "rss_bytes": self.rss_bytes[-1] if self.rss_bytes else None,
            "failures": self.failures,
        }


class RefreshProfiler:
    """Measures the collector's own overhead."""

    def __init__(self, process: Optional[psutil.Process] = None):
        self.metrics = RefreshMetrics()
        self._process = process

    @property
    def process(self) -> psutil.Process:
        if self._process is None:
            self._process = psutil.Process()
        return self._process

    @contextmanager
    def measure(self, label: str):
        """Context manager timing one refresh and sampling RSS afterwards."""
        start_time = time.perf_counter()
        try:
            yield
        except Exception:
            self.metrics.increment_failures()
            raise
        finally:
            self.metrics.record_refresh(label, time.perf_counter() - start_time)
        self.sample_rss()

    def sample_rss(self) -> int:
        rss = self.process.memory_info().rss
        self.metrics.record_rss(rss)
        return rss
