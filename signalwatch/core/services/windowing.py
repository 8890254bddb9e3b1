"""Time-window selection over channel histories with a fallback ladder."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from enum import Enum

from signalwatch.core.logging import get_logger
from signalwatch.core.models import Snapshot, WindowResult, WindowStrategy

DEFAULT_STALE_LIMIT = 10

logger = get_logger(__name__)


class TimeScale(Enum):
    """Named display scales and their lookback in minutes (``None`` means everything)."""

    M1 = ("M1", 120)
    M5 = ("M5", 600)
    M15 = ("M15", 1800)
    H1 = ("H1", 7200)
    H4 = ("H4", 28800)
    D1 = ("D1", 172800)
    ALL = ("ALL", None)

    def __init__(self, label: str, lookback_minutes: int | None) -> None:
        self.label = label
        self.lookback_minutes = lookback_minutes

    @property
    def lookback(self) -> timedelta | None:
        if self.lookback_minutes is None:
            return None
        return timedelta(minutes=self.lookback_minutes)

    @classmethod
    def parse(cls, value: str) -> TimeScale:
        normalized = value.strip().upper()
        for scale in cls:
            if scale.label == normalized:
                return scale
        raise ValueError(f"Unknown time scale {value!r}; expected one of {', '.join(s.label for s in cls)}")


class Windower:
    """Selects the part of a history that falls inside a lookback window.

    When the live window is empty the newest records are shown instead, so a
    non-empty history never produces an empty window.
    """

    def __init__(self, stale_limit: int = DEFAULT_STALE_LIMIT) -> None:
        if stale_limit < 1:
            raise ValueError("stale_limit must be at least 1")
        self.stale_limit = stale_limit

    def window(self, history: Sequence[Snapshot], lookback: timedelta, now: datetime) -> WindowResult:
        """Return the records newer than ``now - lookback``.

        An empty strict window over a non-empty history means every record is
        at or before the cutoff, so the newest ``stale_limit`` records are
        returned instead with ``used_fallback`` set. A lookback reaching past
        the representable range puts the cutoff at ``datetime.min`` (or
        ``datetime.max`` for a negative one).
        """

        records = tuple(history)
        cutoff = _cutoff(now, lookback)

        strict = tuple(record for record in records if record.observed_at > cutoff)
        if strict:
            return WindowResult(strict, used_fallback=False, strategy=WindowStrategy.STRICT, cutoff=cutoff)

        if not records:
            return WindowResult((), used_fallback=False, strategy=WindowStrategy.EMPTY, cutoff=cutoff)

        subset = records[-min(self.stale_limit, len(records)) :]
        logger.bind(channel_id=records[-1].channel_id).info(
            f"No records after {cutoff:%Y-%m-%d %H:%M:%S}; showing newest {len(subset)} stale records"
        )
        return WindowResult(subset, used_fallback=True, strategy=WindowStrategy.STALE, cutoff=cutoff)

    def window_for_scale(self, history: Sequence[Snapshot], scale: TimeScale, now: datetime) -> WindowResult:
        lookback = scale.lookback
        if lookback is None:
            return WindowResult(tuple(history), used_fallback=False, strategy=WindowStrategy.ALL)
        return self.window(history, lookback, now)


def _cutoff(now: datetime, lookback: timedelta) -> datetime:
    try:
        return now - lookback
    except OverflowError:
        bound = datetime.min if lookback > timedelta(0) else datetime.max
        return bound.replace(tzinfo=now.tzinfo)


__all__ = ["DEFAULT_STALE_LIMIT", "TimeScale", "Windower"]
