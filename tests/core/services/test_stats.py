from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from signalwatch.core.services import Period, StatsEngine, change_percent

AS_OF = datetime(2025, 5, 31, 12, 0, 0)


def test_drawdown_stats(make_snapshot) -> None:
    records = [
        make_snapshot(AS_OF, balance=1000.0, floating_profit=-100.0),
        make_snapshot(AS_OF, balance=1000.0, floating_profit=-20.0),
        make_snapshot(AS_OF, balance=500.0, floating_profit=15.0),
    ]

    stats = StatsEngine().drawdown_stats(records)

    assert stats.has_data
    assert stats.count == 3
    assert stats.min == pytest.approx(-10.0)
    assert stats.max == pytest.approx(3.0)
    assert stats.avg == pytest.approx(-3.0)


def test_drawdown_stats_without_records() -> None:
    stats = StatsEngine().drawdown_stats([])

    assert not stats.has_data
    assert (stats.min, stats.max, stats.avg, stats.count) == (0.0, 0.0, 0.0, 0)


def test_zero_balance_contributes_zero(make_snapshot) -> None:
    stats = StatsEngine().drawdown_stats([make_snapshot(AS_OF, balance=0.0, floating_profit=-5.0)])

    assert stats.has_data
    assert stats.min == stats.max == 0.0


def test_weekly_profit(make_snapshot) -> None:
    history = [
        make_snapshot(AS_OF - timedelta(days=10), period_profit=50.0),
        make_snapshot(AS_OF - timedelta(days=7, hours=1), period_profit=100.0),
        make_snapshot(AS_OF - timedelta(days=1), period_profit=130.0),
        make_snapshot(AS_OF + timedelta(days=1), period_profit=999.0),
    ]

    result = StatsEngine().period_profit(history, AS_OF, Period.WEEK)

    assert result.available
    assert result.value == pytest.approx(30.0)
    assert result.percent == pytest.approx(30.0)
    assert result.reference_at == AS_OF - timedelta(days=7, hours=1)
    assert result.current_at == AS_OF - timedelta(days=1)


def test_monthly_profit_on_balance(make_snapshot) -> None:
    history = [
        make_snapshot(AS_OF - timedelta(days=30), balance=2000.0),
        make_snapshot(AS_OF, balance=1500.0),
    ]

    result = StatsEngine().period_profit(history, AS_OF, Period.MONTH, metric="balance")

    assert result.value == pytest.approx(-500.0)
    assert result.percent == pytest.approx(-25.0)


def test_profit_unavailable_without_reference(make_snapshot) -> None:
    history = [make_snapshot(AS_OF - timedelta(days=2), period_profit=10.0)]

    result = StatsEngine().period_profit(history, AS_OF, Period.WEEK)

    assert not result.available
    assert result.value == 0.0
    assert result.percent == 0.0


def test_profit_with_near_zero_base(make_snapshot) -> None:
    history = [
        make_snapshot(AS_OF - timedelta(days=8), period_profit=0.0),
        make_snapshot(AS_OF, period_profit=2.5),
    ]

    result = StatsEngine().period_profit(history, AS_OF, Period.WEEK)

    assert result.value == pytest.approx(2.5)
    assert result.percent == pytest.approx(250.0)


def test_unknown_metric_is_rejected(make_snapshot) -> None:
    with pytest.raises(ValueError):
        StatsEngine().period_profit([make_snapshot(AS_OF)], AS_OF, Period.WEEK, metric="equity")


@pytest.mark.parametrize(
    ("difference", "reference", "expected"),
    [(10.0, -200.0, 5.0), (1.0, 0.005, 100.0), (-3.0, 0.0, -300.0)],
)
def test_change_percent(difference: float, reference: float, expected: float) -> None:
    assert change_percent(difference, reference) == pytest.approx(expected)


def test_period_parse() -> None:
    assert Period.parse(" Week ") is Period.WEEK
    assert Period.parse("month").delta == timedelta(days=30)
    with pytest.raises(ValueError):
        Period.parse("year")


def test_summarize(make_snapshot) -> None:
    records = [
        make_snapshot(AS_OF - timedelta(hours=2), balance=1000.0, floating_profit=-50.0),
        make_snapshot(AS_OF - timedelta(hours=1), balance=1200.0, floating_profit=10.0),
    ]

    summary = StatsEngine().summarize(records)

    assert summary.count == 2
    assert summary.first_observed == AS_OF - timedelta(hours=2)
    assert summary.last_observed == AS_OF - timedelta(hours=1)
    assert (summary.min_balance, summary.max_balance) == (1000.0, 1200.0)
    assert (summary.min_total_value, summary.max_total_value) == (950.0, 1210.0)
    assert StatsEngine().summarize([]).count == 0
