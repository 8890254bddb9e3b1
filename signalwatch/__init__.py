"""signalwatch - monitoring of trading signal providers

Scrapes provider pages into per-channel append-only stores and serves
time-windowed slices with drawdown and profit statistics.
"""

from signalwatch.core.config import ConfigManager, SignalWatchConfig
from signalwatch.core.data.storage import MigrationOutcome, RecordCodec, RecordStore
from signalwatch.core.extraction import ExtractionFailure, FieldExtractor, RateExtractor
from signalwatch.core.models import ChannelHistory, RateQuote, Snapshot, WindowResult
from signalwatch.core.services import (
    ChannelRefresher,
    MonitorServices,
    Period,
    ProviderDirectory,
    StatsEngine,
    TimeScale,
    Windower,
    build_services,
)

__version__ = "0.1.0"

__all__ = [
    "ChannelHistory",
    "ChannelRefresher",
    "ConfigManager",
    "ExtractionFailure",
    "FieldExtractor",
    "MigrationOutcome",
    "MonitorServices",
    "Period",
    "ProviderDirectory",
    "RateExtractor",
    "RateQuote",
    "RecordCodec",
    "RecordStore",
    "SignalWatchConfig",
    "Snapshot",
    "StatsEngine",
    "TimeScale",
    "WindowResult",
    "Windower",
    "build_services",
    "__version__",
]
