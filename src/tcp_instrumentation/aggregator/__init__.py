from .compression import get_strategy
from .interval import AggregationConfig, IntervalAggregator

__all__ = ["AggregationConfig", "IntervalAggregator", "get_strategy"]
