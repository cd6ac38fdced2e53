"""Available collector implementations."""

from .base import BaseCollector, CollectorConfig
from .conninfo import ConnectionInfoCollector, describe_info
from .tcp import TcpStatsCollector

__all__ = [
    "BaseCollector",
    "CollectorConfig",
    "ConnectionInfoCollector",
    "TcpStatsCollector",
    "describe_info",
]
