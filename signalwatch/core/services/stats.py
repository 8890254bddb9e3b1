"""Drawdown and profit statistics over already-selected records."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from signalwatch.core.logging import get_logger
from signalwatch.core.models import METRICS, Snapshot

DEGENERATE_BASE = 0.01

logger = get_logger(__name__)


class Period(Enum):
    """Profit comparison periods."""

    WEEK = 7
    MONTH = 30

    @property
    def delta(self) -> timedelta:
        return timedelta(days=self.value)

    @classmethod
    def parse(cls, value: str) -> Period:
        try:
            return cls[value.strip().upper()]
        except KeyError as exc:
            raise ValueError(f"Unknown period {value!r}; expected week or month") from exc


@dataclass(frozen=True, slots=True)
class DrawdownStats:
    """Min, max and mean drawdown percent of a record set."""

    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0
    count: int = 0
    has_data: bool = False


@dataclass(frozen=True, slots=True)
class PeriodProfit:
    """Change of a metric between two points in time.

    ``available`` is False when either end of the period has no record; the
    numbers are then zero.
    """

    period: Period
    metric: str
    value: float = 0.0
    percent: float = 0.0
    available: bool = False
    reference_at: datetime | None = None
    current_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class HistorySummary:
    count: int = 0
    first_observed: datetime | None = None
    last_observed: datetime | None = None
    min_balance: float | None = None
    max_balance: float | None = None
    min_floating_profit: float | None = None
    max_floating_profit: float | None = None
    min_total_value: float | None = None
    max_total_value: float | None = None


def _latest_at_or_before(records: Sequence[Snapshot], moment: datetime) -> Snapshot | None:
    chosen: Snapshot | None = None
    for record in records:
        if record.observed_at <= moment and (chosen is None or record.observed_at >= chosen.observed_at):
            chosen = record
    return chosen


def change_percent(difference: float, reference: float) -> float:
    """Relative change in percent; a near-zero base scales the raw difference instead."""

    if abs(reference) < DEGENERATE_BASE:
        return difference * 100
    return difference / abs(reference) * 100


class StatsEngine:
    """Pure statistics; callers pick the records, nothing is filtered by time here."""

    def drawdown_stats(self, records: Iterable[Snapshot]) -> DrawdownStats:
        values = [record.drawdown_percent for record in records]
        if not values:
            return DrawdownStats()
        return DrawdownStats(
            min=min(values),
            max=max(values),
            avg=sum(values) / len(values),
            count=len(values),
            has_data=True,
        )

    def period_profit(
        self,
        history: Iterable[Snapshot],
        as_of: datetime,
        period: Period,
        metric: str = "period_profit",
    ) -> PeriodProfit:
        """Compare ``metric`` at ``as_of`` with its value one ``period`` earlier."""

        if metric not in METRICS:
            raise ValueError(f"Unknown metric {metric!r}; expected one of {', '.join(METRICS)}")
        records = tuple(history)
        current = _latest_at_or_before(records, as_of)
        reference = _latest_at_or_before(records, as_of - period.delta)
        if current is None or reference is None:
            logger.debug(f"{period.name.lower()} profit unavailable as of {as_of:%Y-%m-%d %H:%M:%S}")
            return PeriodProfit(period=period, metric=metric)

        base = reference.metric(metric)
        difference = current.metric(metric) - base
        return PeriodProfit(
            period=period,
            metric=metric,
            value=difference,
            percent=change_percent(difference, base),
            available=True,
            reference_at=reference.observed_at,
            current_at=current.observed_at,
        )

    def summarize(self, records: Iterable[Snapshot]) -> HistorySummary:
        items = tuple(records)
        if not items:
            return HistorySummary()
        balances = [record.balance for record in items]
        floating = [record.floating_profit for record in items]
        totals = [record.total_value for record in items]
        return HistorySummary(
            count=len(items),
            first_observed=items[0].observed_at,
            last_observed=items[-1].observed_at,
            min_balance=min(balances),
            max_balance=max(balances),
            min_floating_profit=min(floating),
            max_floating_profit=max(floating),
            min_total_value=min(totals),
            max_total_value=max(totals),
        )


__all__ = [
    "DrawdownStats",
    "HistorySummary",
    "Period",
    "PeriodProfit",
    "StatsEngine",
    "change_percent",
]
