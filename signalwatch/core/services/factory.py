"""Wiring of the core services from a :class:`SignalWatchConfig`."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from signalwatch.core.config import SignalWatchConfig
from signalwatch.core.data.storage import RecordStore
from signalwatch.core.extraction import FieldExtractor, RateExtractor
from signalwatch.core.services.providers import ProviderDirectory
from signalwatch.core.services.refresh import ChannelRefresher
from signalwatch.core.services.roster import ChannelRoster
from signalwatch.core.services.stats import StatsEngine
from signalwatch.core.services.windowing import Windower


@dataclass(frozen=True, slots=True)
class MonitorServices:
    config: SignalWatchConfig
    store: RecordStore
    directory: ProviderDirectory
    roster: ChannelRoster
    extractor: FieldExtractor
    rate_extractor: RateExtractor
    windower: Windower
    stats: StatsEngine
    refresher: ChannelRefresher


def build_services(
    config: SignalWatchConfig | None = None,
    *,
    clock: Callable[[], datetime] | None = None,
) -> MonitorServices:
    """Create the service graph described by ``config``."""

    config = config or SignalWatchConfig()
    directory = ProviderDirectory(
        config.store.directory_path,
        unknown_label=config.extraction.unknown_label,
        clock=clock,
    )
    dedupe = timedelta(seconds=config.store.dedupe_seconds) if config.store.dedupe_seconds else None
    store = RecordStore(
        config.store.base_dir,
        tick_dir_name=config.store.tick_dir_name,
        rate_dir_name=config.store.rate_dir_name,
        default_currency=config.store.default_currency,
        dedupe_window=dedupe,
        clock=clock,
        label_lookup=directory.lookup,
    )
    extractor = FieldExtractor(
        clock=clock,
        label_lookup=directory.lookup,
        unknown_label=config.extraction.unknown_label,
        excerpt_chars=config.extraction.excerpt_chars,
    )
    return MonitorServices(
        config=config,
        store=store,
        directory=directory,
        roster=ChannelRoster(config.store.roster_path, clock=clock),
        extractor=extractor,
        rate_extractor=RateExtractor(config.extraction.rate_symbols, clock=clock),
        windower=Windower(config.window.stale_limit),
        stats=StatsEngine(),
        refresher=ChannelRefresher(extractor, store, directory),
    )


__all__ = ["MonitorServices", "build_services"]
