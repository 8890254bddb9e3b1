from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from click.testing import Result

Invoke = Callable[..., Result]

TICKS = (
    "24.05.2025,08:00:00,1000.00,-100.00,0.00\n"
    "24.05.2025,11:30:00,1000.00,-50.00,1.00\n"
    "24.05.2025,11:50:00,500.00,0.00,2.00\n"
)


def _rows(output: str) -> list[dict[str, object]]:
    return [json.loads(line) for line in output.strip().splitlines() if line.strip()]


def test_history_strict_window(invoke: Invoke, tick_file: Callable[[str, str], Path]) -> None:
    tick_file("123", TICKS)

    result = invoke(
        "--format", "jsonl", "history", "show", "123", "--lookback-minutes", "60", "--as-of", "2025-05-24T12:00:00"
    )

    assert result.exit_code == 0, result.output
    rows = _rows(result.stdout)
    assert [row["observed_at"] for row in rows] == ["2025-05-24 11:30:00", "2025-05-24 11:50:00"]
    assert rows[0]["drawdown_percent"] == -5.0
    assert rows[1]["total_value"] == 500.0
    assert {row["strategy"] for row in rows} == {"strict"}
    assert not any(row["fallback"] for row in rows)


def test_history_accepts_offset_as_of(invoke: Invoke, tick_file: Callable[[str, str], Path]) -> None:
    tick_file("123", TICKS)
    as_of = datetime(2025, 5, 24, 12, 0, 0).astimezone()

    result = invoke(
        "--format", "jsonl", "history", "show", "123", "--lookback-minutes", "60", "--as-of", as_of.isoformat()
    )

    assert result.exit_code == 0, result.output
    rows = _rows(result.stdout)
    assert [row["observed_at"] for row in rows] == ["2025-05-24 11:30:00", "2025-05-24 11:50:00"]


def test_history_utc_as_of_gives_a_window(invoke: Invoke, tick_file: Callable[[str, str], Path]) -> None:
    tick_file("123", TICKS)

    result = invoke(
        "--format", "jsonl", "history", "show", "123", "--lookback-minutes", "60",
        "--as-of", "2025-05-24T10:30:00+00:00",
    )

    assert result.exit_code == 0, result.output
    assert result.exception is None
    assert _rows(result.stdout)


def test_history_falls_back_to_stale_records(invoke: Invoke, tick_file: Callable[[str, str], Path]) -> None:
    tick_file("123", TICKS)

    result = invoke(
        "--format", "jsonl", "history", "show", "123", "--lookback-minutes", "60", "--as-of", "2025-05-30T12:00:00"
    )

    assert result.exit_code == 0, result.output
    rows = _rows(result.stdout)
    assert len(rows) == 3
    assert all(row["fallback"] and row["strategy"] == "stale" for row in rows)


def test_history_default_lookback(invoke: Invoke, tick_file: Callable[[str, str], Path]) -> None:
    tick_file("123", TICKS)

    result = invoke("--format", "jsonl", "history", "show", "123", "--as-of", "2025-05-25T09:00:00")

    assert result.exit_code == 0, result.output
    assert len(_rows(result.stdout)) == 2


def test_history_all_scale(invoke: Invoke, tick_file: Callable[[str, str], Path]) -> None:
    tick_file("123", TICKS)

    result = invoke("--format", "jsonl", "history", "show", "123", "--scale", "all")

    assert result.exit_code == 0, result.output
    rows = _rows(result.stdout)
    assert len(rows) == 3
    assert rows[0]["strategy"] == "all"


def test_history_unknown_channel_prints_no_records(invoke: Invoke) -> None:
    result = invoke("--no-color", "history", "show", "404", "--scale", "H1")

    assert result.exit_code == 0, result.output
    assert "No records." in result.stdout


def test_history_rejects_conflicting_options(invoke: Invoke) -> None:
    result = invoke("history", "show", "123", "--scale", "H1", "--lookback-minutes", "30")

    assert result.exit_code == 10
    assert "CONFLICTING_OPTIONS" in result.stderr


def test_history_rejects_non_positive_lookback(invoke: Invoke) -> None:
    result = invoke("history", "show", "123", "--lookback-minutes", "0")

    assert result.exit_code == 10
    assert "INVALID_LOOKBACK" in result.stderr


def test_history_rejects_unknown_scale(invoke: Invoke) -> None:
    result = invoke("history", "show", "123", "--scale", "W1")

    assert result.exit_code == 2


def test_history_output_file(invoke: Invoke, tick_file: Callable[[str, str], Path], tmp_path: Path) -> None:
    tick_file("123", TICKS)
    target = tmp_path / "out.jsonl"

    result = invoke("--format", "jsonl", "--output", str(target), "history", "show", "123", "--scale", "ALL")

    assert result.exit_code == 0, result.output
    assert result.stdout == ""
    assert len(_rows(target.read_text(encoding="utf-8"))) == 3


def test_invalid_config_file(invoke: Invoke, tmp_path: Path) -> None:
    (tmp_path / "config.toml").write_text("[window]\nstale_limit = 0\n", encoding="utf-8")

    result = invoke("history", "show", "123")

    assert result.exit_code == 10
    assert "CONFIG_INVALID" in result.stderr
