"""Domain records for channel observations and their histories."""

from __future__ import annotations

import math
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal, overload

from signalwatch.core.exceptions import ErrorCode
from signalwatch.core.logging import get_logger

UNKNOWN_LABEL = "unknown"

Metric = Literal["balance", "floating_profit", "total_value", "period_profit"]
METRICS: tuple[str, ...] = ("balance", "floating_profit", "total_value", "period_profit")

_CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")

logger = get_logger(__name__)


def truncate_to_second(value: datetime) -> datetime:
    """Drop sub-second precision from ``value``."""

    return value.replace(microsecond=0)


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One observation of a channel."""

    channel_id: str
    balance: float
    floating_profit: float
    currency_code: str
    observed_at: datetime
    provider_label: str = UNKNOWN_LABEL
    period_profit: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "observed_at", truncate_to_second(self.observed_at))
        if not self.provider_label:
            object.__setattr__(self, "provider_label", UNKNOWN_LABEL)

    @property
    def total_value(self) -> float:
        return self.balance + self.floating_profit

    @property
    def drawdown_percent(self) -> float:
        """Floating profit relative to balance, in percent.

        A zero balance yields ``0.0`` and a warning instead of a division error.
        """

        if self.balance == 0:
            logger.bind(channel_id=self.channel_id, error_code=ErrorCode.DEGENERATE_COMPUTATION.value).warning(
                "Drawdown requested for zero balance; reporting 0.0"
            )
            return 0.0
        return self.floating_profit / self.balance * 100

    def metric(self, name: str) -> float:
        """Return the numeric figure called ``name``."""

        if name not in METRICS:
            raise ValueError(f"Unknown metric {name!r}; expected one of {', '.join(METRICS)}")
        return float(getattr(self, name))

    def validation_errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        if not self.channel_id:
            errors["channel_id"] = "must not be empty"
        if not _CURRENCY_PATTERN.match(self.currency_code or ""):
            errors["currency_code"] = f"expected three upper-case letters, got {self.currency_code!r}"
        for name in ("balance", "floating_profit", "period_profit"):
            if not math.isfinite(getattr(self, name)):
                errors[name] = "must be finite"
        return errors

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors()


@dataclass(frozen=True, slots=True)
class RateQuote:
    """Price of a currency pair at a point in time."""

    symbol: str
    price: float
    observed_at: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbol", self.symbol.upper())
        object.__setattr__(self, "observed_at", truncate_to_second(self.observed_at))

    def validation_errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        if not self.symbol:
            errors["symbol"] = "must not be empty"
        if not math.isfinite(self.price) or self.price <= 0:
            errors["price"] = "must be finite and positive"
        return errors

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors()


class ChannelHistory(Sequence[Snapshot]):
    """Ordered snapshots of one channel, earliest first."""

    __slots__ = ("channel_id", "_records")

    def __init__(self, channel_id: str, records: Sequence[Snapshot] = ()) -> None:
        self.channel_id = channel_id
        self._records: tuple[Snapshot, ...] = tuple(records)

    @overload
    def __getitem__(self, index: int) -> Snapshot: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Snapshot, ...]: ...

    def __getitem__(self, index: int | slice) -> Snapshot | tuple[Snapshot, ...]:
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"ChannelHistory(channel_id={self.channel_id!r}, records={len(self._records)})"

    @property
    def records(self) -> tuple[Snapshot, ...]:
        return self._records

    @property
    def first(self) -> Snapshot | None:
        return self._records[0] if self._records else None

    @property
    def latest(self) -> Snapshot | None:
        return self._records[-1] if self._records else None

    def latest_n(self, n: int) -> tuple[Snapshot, ...]:
        """Return the newest ``n`` snapshots in source order."""

        if n <= 0:
            return ()
        return self._records[-n:]

    def min_of(self, metric: Metric) -> float | None:
        values = [snapshot.metric(metric) for snapshot in self._records]
        return min(values) if values else None

    def max_of(self, metric: Metric) -> float | None:
        values = [snapshot.metric(metric) for snapshot in self._records]
        return max(values) if values else None


class WindowStrategy(str, Enum):
    """Which rung of the fallback ladder produced a window."""

    STRICT = "strict"
    STALE = "stale"
    EMPTY = "empty"
    ALL = "all"


@dataclass(frozen=True, slots=True)
class WindowResult:
    """Subset of a history selected for display."""

    records: tuple[Snapshot, ...]
    used_fallback: bool
    strategy: WindowStrategy
    cutoff: datetime | None = None

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records


__all__ = [
    "ChannelHistory",
    "METRICS",
    "Metric",
    "RateQuote",
    "Snapshot",
    "UNKNOWN_LABEL",
    "WindowResult",
    "WindowStrategy",
    "truncate_to_second",
]
