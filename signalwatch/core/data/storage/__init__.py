"""Flat file record storage."""

from signalwatch.core.data.storage.codec import (
    CURRENT_TICK_FIELDS,
    LEGACY_TICK_FIELDS,
    RATE_FIELDS,
    RecordCodec,
)
from signalwatch.core.data.storage.store import (
    RATE_HEADER,
    AppendOutcome,
    MigrationOutcome,
    RecordStore,
    RewriteResult,
    StoreFileInfo,
)

__all__ = [
    "AppendOutcome",
    "CURRENT_TICK_FIELDS",
    "LEGACY_TICK_FIELDS",
    "MigrationOutcome",
    "RATE_FIELDS",
    "RATE_HEADER",
    "RecordCodec",
    "RecordStore",
    "RewriteResult",
    "StoreFileInfo",
]
