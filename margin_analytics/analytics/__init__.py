"""Pure analytics over margin events — no I/O."""
from .durations import match_durations, summarize_durations
from .feed import account_stats, filter_liquidations
from .ledger import replay
from .query import query
from .risk import price_risk_curve
from .windows import TimeRange, aggregate, aggregate_pools, range_start_ms

__all__ = [
    "TimeRange",
    "account_stats",
    "aggregate",
    "aggregate_pools",
    "filter_liquidations",
    "match_durations",
    "price_risk_curve",
    "query",
    "range_start_ms",
    "replay",
    "summarize_durations",
]
