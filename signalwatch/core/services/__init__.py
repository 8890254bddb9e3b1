"""Core services: windowing, statistics, provider labels, channel roster and refresh."""

from signalwatch.core.services.factory import MonitorServices, build_services
from signalwatch.core.services.providers import ProviderDirectory
from signalwatch.core.services.refresh import ChannelRefresher, RefreshResult, RefreshStatus
from signalwatch.core.services.roster import ChannelRoster, RosterEntry, RosterStats
from signalwatch.core.services.stats import (
    DrawdownStats,
    HistorySummary,
    Period,
    PeriodProfit,
    StatsEngine,
    change_percent,
)
from signalwatch.core.services.windowing import DEFAULT_STALE_LIMIT, TimeScale, Windower

__all__ = [
    "ChannelRefresher",
    "ChannelRoster",
    "DEFAULT_STALE_LIMIT",
    "DrawdownStats",
    "HistorySummary",
    "MonitorServices",
    "Period",
    "PeriodProfit",
    "ProviderDirectory",
    "RefreshResult",
    "RefreshStatus",
    "RosterEntry",
    "RosterStats",
    "StatsEngine",
    "TimeScale",
    "Windower",
    "build_services",
    "change_percent",
]
