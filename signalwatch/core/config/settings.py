"""Configuration management for signalwatch."""

import os
import re
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from signalwatch.core.exceptions import ConfigError

_CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")
_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def _default_home() -> Path:
    return Path.home() / ".signalwatch"


@dataclass
class StoreConfig:
    """Record store layout"""

    base_dir: str = str(_default_home() / "data")
    tick_dir_name: str = "tick"
    rate_dir_name: str = "rates"
    default_currency: str = "USD"
    dedupe_seconds: int = 0
    directory_file: str | None = None
    roster_file: str | None = None

    def __post_init__(self) -> None:
        if not _CURRENCY_PATTERN.match(self.default_currency):
            raise ConfigError(
                f"default_currency must be three upper-case letters, got {self.default_currency!r}",
                key="store.default_currency",
            )
        if self.dedupe_seconds < 0:
            raise ConfigError("dedupe_seconds must not be negative", key="store.dedupe_seconds")
        if not self.tick_dir_name or not self.rate_dir_name:
            raise ConfigError("store directory names must not be empty", key="store")

    @property
    def directory_path(self) -> Path:
        """Provider label file, ``<base_dir>/idtranslation.txt`` unless configured"""
        if self.directory_file:
            return Path(self.directory_file)
        return Path(self.base_dir) / "idtranslation.txt"

    @property
    def roster_path(self) -> Path:
        """Monitored channel list, ``<base_dir>/favorites.txt`` unless configured"""
        if self.roster_file:
            return Path(self.roster_file)
        return Path(self.base_dir) / "favorites.txt"


@dataclass
class ExtractionConfig:
    """Markup extraction settings"""

    unknown_label: str = "unknown"
    rate_symbols: list[str] = field(default_factory=lambda: ["XAUUSD", "BTCUSD"])
    excerpt_chars: int = 500

    def __post_init__(self) -> None:
        if not self.unknown_label:
            raise ConfigError("unknown_label must not be empty", key="extraction.unknown_label")
        if self.excerpt_chars < 0:
            raise ConfigError("excerpt_chars must not be negative", key="extraction.excerpt_chars")
        self.rate_symbols = [symbol.upper() for symbol in self.rate_symbols]


@dataclass
class WindowConfig:
    """History windowing settings"""

    stale_limit: int = 10
    default_lookback_minutes: int = 1440

    def __post_init__(self) -> None:
        if self.stale_limit < 1:
            raise ConfigError("stale_limit must be at least 1", key="window.stale_limit")
        if self.default_lookback_minutes <= 0:
            raise ConfigError(
                "default_lookback_minutes must be positive", key="window.default_lookback_minutes"
            )


@dataclass
class LoggingConfig:
    """Logging settings"""

    level: str = "INFO"
    file: str | None = None
    serialize: bool = True

    def __post_init__(self) -> None:
        self.level = self.level.upper()
        if self.level not in _LOG_LEVELS:
            raise ConfigError(f"unknown log level {self.level!r}", key="logging.level")


@dataclass
class SignalWatchConfig:
    """Top level signalwatch configuration"""

    store: StoreConfig = field(default_factory=StoreConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    window: WindowConfig = field(default_factory=WindowConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "SignalWatchConfig":
        """Build a configuration from a nested dictionary"""
        try:
            store_config = StoreConfig(**config_dict.get("store", {}))
            extraction_config = ExtractionConfig(**config_dict.get("extraction", {}))
            window_config = WindowConfig(**config_dict.get("window", {}))
            logging_config = LoggingConfig(**config_dict.get("logging", {}))
        except TypeError as exc:
            raise ConfigError(f"Unknown configuration key: {exc}") from exc

        return cls(store=store_config, extraction=extraction_config, window=window_config, logging=logging_config)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a TOML friendly dictionary"""
        # TOML has no null
        store_dict = {k: v for k, v in asdict(self.store).items() if v is not None}
        logging_dict = {k: v for k, v in asdict(self.logging).items() if v is not None}
        return {
            "store": store_dict,
            "extraction": asdict(self.extraction),
            "window": asdict(self.window),
            "logging": logging_dict,
        }


class ConfigManager:
    """Loads, updates and persists the configuration file"""

    def __init__(self, config_path: Path | None = None):
        """Initialise the manager.

        Args:
            config_path: path of the TOML file, ``~/.signalwatch/config.toml`` when None
        """
        self.config_path = config_path or _default_home() / "config.toml"
        self.config = self._load_config()

    def _load_config(self) -> SignalWatchConfig:
        file_values: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    file_values = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                raise ConfigError(f"Failed to load config from {self.config_path}: {exc}") from exc

        return SignalWatchConfig.from_dict(deep_update(file_values, load_config_from_env()))

    def get_config(self) -> SignalWatchConfig:
        """Return the active configuration"""
        return self.config

    def update_config(self, **updates: Any) -> None:
        """Apply nested updates, e.g. ``update_config(window={"stale_limit": 5})``"""
        config_dict = self.config.to_dict()
        deep_update(config_dict, updates)
        self.config = SignalWatchConfig.from_dict(config_dict)

    def save_config(self) -> None:
        """Write the configuration back to ``config_path``"""
        import tomli_w

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "wb") as f:
                tomli_w.dump(self.config.to_dict(), f)
        except OSError as exc:
            raise ConfigError(f"Failed to save config to {self.config_path}: {exc}") from exc


def deep_update(d: dict[str, Any], u: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``u`` into ``d``"""
    for k, v in u.items():
        if isinstance(v, dict):
            d[k] = deep_update(d.get(k, {}), v)
        else:
            d[k] = v
    return d


def get_default_config() -> SignalWatchConfig:
    """Return the built-in defaults"""
    return SignalWatchConfig()


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}", key=name) from exc


def load_config_from_env() -> dict[str, Any]:
    """Read ``SIGNALWATCH_*`` environment overrides"""
    config: dict[str, Any] = {}

    store_config: dict[str, Any] = {}
    base_dir = os.getenv("SIGNALWATCH_BASE_DIR")
    if base_dir:
        store_config["base_dir"] = base_dir
    default_currency = os.getenv("SIGNALWATCH_DEFAULT_CURRENCY")
    if default_currency:
        store_config["default_currency"] = default_currency.upper()
    dedupe_seconds = _env_int("SIGNALWATCH_DEDUPE_SECONDS")
    if dedupe_seconds is not None:
        store_config["dedupe_seconds"] = dedupe_seconds
    if store_config:
        config["store"] = store_config

    stale_limit = _env_int("SIGNALWATCH_STALE_LIMIT")
    if stale_limit is not None:
        config["window"] = {"stale_limit": stale_limit}

    logging_config: dict[str, Any] = {}
    logging_level = os.getenv("SIGNALWATCH_LOGGING_LEVEL")
    if logging_level is not None:
        logging_config["level"] = logging_level
    logging_file = os.getenv("SIGNALWATCH_LOGGING_FILE")
    if logging_file is not None:
        logging_config["file"] = logging_file
    if logging_config:
        config["logging"] = logging_config

    return config
