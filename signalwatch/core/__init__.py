"""signalwatch core: extraction, storage, windowing and statistics."""

from signalwatch.core.config.settings import ConfigManager, SignalWatchConfig
from signalwatch.core.models import ChannelHistory, RateQuote, Snapshot, WindowResult

__all__ = [
    "ChannelHistory",
    "ConfigManager",
    "RateQuote",
    "SignalWatchConfig",
    "Snapshot",
    "WindowResult",
]
