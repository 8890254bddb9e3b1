"""Configuration module."""

from signalwatch.core.config.settings import (
    ConfigManager,
    ExtractionConfig,
    LoggingConfig,
    SignalWatchConfig,
    StoreConfig,
    WindowConfig,
    deep_update,
    get_default_config,
    load_config_from_env,
)

__all__ = [
    "ConfigManager",
    "ExtractionConfig",
    "LoggingConfig",
    "SignalWatchConfig",
    "StoreConfig",
    "WindowConfig",
    "deep_update",
    "get_default_config",
    "load_config_from_env",
]
