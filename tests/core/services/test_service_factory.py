from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

from signalwatch.core.config import SignalWatchConfig, StoreConfig, WindowConfig
from signalwatch.core.services import RefreshStatus, build_services

NOW = datetime(2025, 5, 24, 15, 22, 13)


def test_build_services_wires_config(tmp_path: Path) -> None:
    config = SignalWatchConfig(
        store=StoreConfig(base_dir=str(tmp_path), default_currency="EUR", dedupe_seconds=30),
        window=WindowConfig(stale_limit=3),
    )

    services = build_services(config, clock=lambda: NOW)

    assert services.config is config
    assert services.store.tick_dir == tmp_path / "tick"
    assert services.store.rate_dir == tmp_path / "rates"
    assert services.store.default_currency == "EUR"
    assert services.store.dedupe_window == timedelta(seconds=30)
    assert services.directory.path == tmp_path / "idtranslation.txt"
    assert services.roster.path == tmp_path / "favorites.txt"
    assert services.windower.stale_limit == 3
    assert services.rate_extractor.symbols == ("XAUUSD", "BTCUSD")


def test_custom_directory_file(tmp_path: Path) -> None:
    labels = tmp_path / "elsewhere" / "labels.txt"
    labels.parent.mkdir()
    labels.write_text("5:Known\n", encoding="utf-8")
    config = SignalWatchConfig(store=StoreConfig(base_dir=str(tmp_path / "data"), directory_file=str(labels)))

    services = build_services(config)

    assert services.directory.lookup("5") == "Known"
    assert services.store.dedupe_window is None


def test_services_share_the_directory(tmp_path: Path, signal_page: str) -> None:
    services = build_services(SignalWatchConfig(store=StoreConfig(base_dir=str(tmp_path))), clock=lambda: NOW)

    result = services.refresher.refresh("2296908", signal_page)

    assert result.status is RefreshStatus.STORED
    latest = services.store.latest("2296908")
    assert latest is not None
    assert latest.provider_label == "GoldHunter EA"
    assert services.extractor.extract_label("<p>no title</p>", "2296908") == "GoldHunter EA"


def test_custom_roster_file(tmp_path: Path) -> None:
    roster_file = tmp_path / "config" / "favorites.txt"
    roster_file.parent.mkdir()
    roster_file.write_text("2296908:1\n", encoding="utf-8")
    config = SignalWatchConfig(store=StoreConfig(base_dir=str(tmp_path / "data"), roster_file=str(roster_file)))

    services = build_services(config)

    assert services.roster.channel_ids() == ["2296908"]
    assert services.roster.favorite_class("2296908") == 1
