from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import Result

Invoke = Callable[..., Result]

TICKS = (
    "10.05.2025,00:00:00,1000.00,-100.00,100.00\n"
    "17.05.2025,00:00:00,1000.00,-50.00,120.00\n"
    "24.05.2025,00:00:00,500.00,0.00,150.00\n"
)


@pytest.fixture()
def seeded(tick_file: Callable[[str, str], Path]) -> Path:
    return tick_file("123", TICKS)


def _row(result: Result) -> dict[str, object]:
    [line] = [line for line in result.stdout.splitlines() if line.strip()]
    return json.loads(line)


def test_drawdown_over_all_records(invoke: Invoke, seeded: Path) -> None:
    result = invoke("--format", "jsonl", "stats", "drawdown", "123", "--scale", "ALL")

    assert result.exit_code == 0, result.output
    row = _row(result)
    assert row["count"] == 3
    assert row["min"] == -10.0
    assert row["max"] == 0.0
    assert row["avg"] == -5.0
    assert row["strategy"] == "all"


def test_drawdown_table(invoke: Invoke, seeded: Path) -> None:
    result = invoke("--no-color", "stats", "drawdown", "123", "--scale", "ALL")

    assert result.exit_code == 0, result.output
    assert "-10.00" in result.stdout
    assert "-5.00" in result.stdout


def test_drawdown_window_fallback(invoke: Invoke, seeded: Path) -> None:
    result = invoke(
        "--format", "jsonl", "stats", "drawdown", "123", "--lookback-minutes", "60", "--as-of", "2025-06-30T00:00:00"
    )

    assert result.exit_code == 0, result.output
    row = _row(result)
    assert row["fallback"] is True
    assert row["count"] == 3


def test_weekly_profit(invoke: Invoke, seeded: Path) -> None:
    result = invoke("--format", "jsonl", "stats", "profit", "123", "--period", "week", "--as-of", "2025-05-24T12:00:00")

    assert result.exit_code == 0, result.output
    row = _row(result)
    assert row["available"] is True
    assert row["value"] == 30.0
    assert row["percent"] == 25.0
    assert row["reference_at"] == "2025-05-17 00:00:00"
    assert row["current_at"] == "2025-05-24 00:00:00"


def test_monthly_profit_unavailable(invoke: Invoke, seeded: Path) -> None:
    result = invoke(
        "--format", "jsonl", "stats", "profit", "123", "--period", "month", "--as-of", "2025-05-24T12:00:00"
    )

    assert result.exit_code == 0, result.output
    row = _row(result)
    assert row["available"] is False
    assert row["value"] == 0.0
    assert row["reference_at"] is None


def test_profit_on_balance(invoke: Invoke, seeded: Path) -> None:
    result = invoke(
        "--format",
        "jsonl",
        "stats",
        "profit",
        "123",
        "--metric",
        "balance",
        "--as-of",
        "2025-05-24T12:00:00",
    )

    assert result.exit_code == 0, result.output
    row = _row(result)
    assert row["value"] == -500.0
    assert row["percent"] == -50.0


@pytest.mark.parametrize(
    "args",
    [("--period", "year"), ("--metric", "equity"), ("--as-of", "yesterday")],
)
def test_profit_rejects_bad_options(invoke: Invoke, seeded: Path, args: tuple[str, str]) -> None:
    result = invoke("stats", "profit", "123", *args)

    assert result.exit_code == 2


def test_summary(invoke: Invoke, seeded: Path) -> None:
    result = invoke("--format", "jsonl", "stats", "summary", "123")

    assert result.exit_code == 0, result.output
    row = _row(result)
    assert row["count"] == 3
    assert row["first_observed"] == "2025-05-10 00:00:00"
    assert row["min_balance"] == 500.0
    assert row["max_total_value"] == 950.0
