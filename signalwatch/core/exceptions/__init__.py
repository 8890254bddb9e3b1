"""Exception handling module."""

from signalwatch.core.exceptions.base import (
    ConfigError,
    ExtractionError,
    MalformedRecordLine,
    RateExtractionError,
    SignalWatchError,
    SnapshotValidationError,
    StoreIOError,
)
from signalwatch.core.exceptions.codes import ErrorCode

__all__ = [
    "SignalWatchError",
    "ExtractionError",
    "RateExtractionError",
    "MalformedRecordLine",
    "StoreIOError",
    "SnapshotValidationError",
    "ConfigError",
    "ErrorCode",
]
