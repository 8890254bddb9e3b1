from __future__ import annotations

import math
from datetime import datetime

import pytest

from signalwatch.core.models import UNKNOWN_LABEL, ChannelHistory, RateQuote, Snapshot


def _snapshot(**overrides: object) -> Snapshot:
    values: dict[str, object] = {
        "channel_id": "2296908",
        "balance": 5000.0,
        "floating_profit": -250.0,
        "currency_code": "USD",
        "observed_at": datetime(2025, 5, 24, 15, 22, 13, 987654),
    }
    values.update(overrides)
    return Snapshot(**values)  # type: ignore[arg-type]


def test_observed_at_is_truncated_to_seconds() -> None:
    snapshot = _snapshot()

    assert snapshot.observed_at == datetime(2025, 5, 24, 15, 22, 13)


def test_derived_values() -> None:
    snapshot = _snapshot()

    assert snapshot.total_value == pytest.approx(4750.0)
    assert snapshot.drawdown_percent == pytest.approx(-5.0)
    assert snapshot.provider_label == UNKNOWN_LABEL
    assert snapshot.period_profit == 0.0


def test_zero_balance_drawdown_is_zero_not_nan() -> None:
    snapshot = _snapshot(balance=0.0, floating_profit=-12.0)

    assert snapshot.drawdown_percent == 0.0
    assert not math.isnan(snapshot.drawdown_percent)


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"channel_id": ""}, "channel_id"),
        ({"currency_code": "usd"}, "currency_code"),
        ({"currency_code": "USDT"}, "currency_code"),
        ({"balance": float("nan")}, "balance"),
        ({"floating_profit": float("inf")}, "floating_profit"),
        ({"period_profit": float("-inf")}, "period_profit"),
    ],
)
def test_validation_errors(overrides: dict[str, object], field: str) -> None:
    snapshot = _snapshot(**overrides)

    assert field in snapshot.validation_errors()
    assert not snapshot.is_valid


def test_empty_label_falls_back_to_sentinel() -> None:
    assert _snapshot(provider_label="").provider_label == UNKNOWN_LABEL


def test_rate_quote_validation() -> None:
    observed = datetime(2025, 8, 28, 10, 48, 18)

    assert RateQuote("xauusd", 3397.38, observed).symbol == "XAUUSD"
    assert RateQuote("XAUUSD", 3397.38, observed).is_valid
    assert not RateQuote("XAUUSD", 0.0, observed).is_valid
    assert not RateQuote("", 1.0, observed).is_valid


def test_channel_history_helpers() -> None:
    records = [
        _snapshot(observed_at=datetime(2025, 1, 1, 10, 0, 0), balance=1000.0, floating_profit=5.0),
        _snapshot(observed_at=datetime(2025, 1, 1, 11, 0, 0), balance=1100.0, floating_profit=-20.0),
        _snapshot(observed_at=datetime(2025, 1, 1, 12, 0, 0), balance=1050.0, floating_profit=0.0),
    ]
    history = ChannelHistory("2296908", records)

    assert len(history) == 3
    assert history.first is records[0]
    assert history.latest is records[2]
    assert history.latest_n(2) == (records[1], records[2])
    assert history.latest_n(0) == ()
    assert history.min_of("balance") == 1000.0
    assert history.max_of("total_value") == 1080.0
    assert history.min_of("floating_profit") == -20.0


def test_empty_history() -> None:
    history = ChannelHistory("1")

    assert history.first is None
    assert history.latest is None
    assert history.max_of("balance") is None
    assert list(history) == []


def test_unknown_metric_is_rejected() -> None:
    with pytest.raises(ValueError):
        _snapshot().metric("equity")
