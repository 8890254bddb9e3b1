"""Domain models."""

from signalwatch.core.models.snapshot import (
    METRICS,
    UNKNOWN_LABEL,
    ChannelHistory,
    Metric,
    RateQuote,
    Snapshot,
    WindowResult,
    WindowStrategy,
    truncate_to_second,
)

__all__ = [
    "ChannelHistory",
    "METRICS",
    "Metric",
    "RateQuote",
    "Snapshot",
    "UNKNOWN_LABEL",
    "WindowResult",
    "WindowStrategy",
    "truncate_to_second",
]
