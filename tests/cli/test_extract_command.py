from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

from click.testing import Result

Invoke = Callable[..., Result]


def _page(tmp_path: Path, markup: str, name: str = "page.html") -> Path:
    path = tmp_path / name
    path.write_text(markup, encoding="utf-8")
    return path


def _rows(output: str) -> list[dict[str, object]]:
    return [json.loads(line) for line in output.strip().splitlines() if line.strip()]


def test_extract_jsonl(invoke: Invoke, tmp_path: Path, signal_page: str) -> None:
    page = _page(tmp_path, signal_page)

    result = invoke("--format", "jsonl", "extract", str(page), "--channel", "2296908")

    assert result.exit_code == 0, result.output
    [row] = _rows(result.stdout)
    assert row["channel_id"] == "2296908"
    assert row["provider_label"] == "GoldHunter EA"
    assert row["balance"] == 12345.67
    assert row["floating_profit"] == -123.45
    assert row["currency"] == "USD"
    assert row["status"] == "EXTRACTED"
    assert not (tmp_path / "tick").exists()


def test_extract_and_store(invoke: Invoke, tmp_path: Path, signal_page: str) -> None:
    page = _page(tmp_path, signal_page)

    result = invoke("--format", "jsonl", "extract", str(page), "-c", "2296908", "--store")

    assert result.exit_code == 0, result.output
    assert _rows(result.stdout)[0]["status"] == "STORED"
    stored = (tmp_path / "tick" / "2296908.txt").read_text(encoding="utf-8").splitlines()
    assert len(stored) == 1
    assert stored[0].endswith(",12345.67,-123.45,0.00")
    assert "2296908:GoldHunter EA" in (tmp_path / "idtranslation.txt").read_text(encoding="utf-8")


def test_extract_failure_exits_with_data_code(invoke: Invoke, tmp_path: Path) -> None:
    page = _page(tmp_path, "<html><body>Under maintenance</body></html>")

    result = invoke("extract", str(page), "--channel", "7")

    assert result.exit_code == 20
    assert "EXTRACTION_FAILED" in result.stderr
    assert "BALANCE_NOT_FOUND" in result.stderr


def test_store_failure_exits_with_store_code(invoke: Invoke, tmp_path: Path, signal_page: str) -> None:
    page = _page(tmp_path, signal_page)
    (tmp_path / "tick").write_text("not a directory", encoding="utf-8")

    result = invoke("extract", str(page), "--channel", "2296908", "--store")

    assert result.exit_code == 30
    assert "STORE_IO_ERROR" in result.stderr


def test_missing_page(invoke: Invoke, tmp_path: Path) -> None:
    result = invoke("extract", str(tmp_path / "missing.html"), "--channel", "1")

    assert result.exit_code == 10
    assert "PAGE_READ_ERROR" in result.stderr


def test_rates_are_stored_with_header(invoke: Invoke, tmp_path: Path) -> None:
    page = _page(tmp_path, "<p>Gold 2,401.15</p><p>Bitcoin now 64,250.12</p>")

    result = invoke("--format", "jsonl", "rates", str(page), "--store")

    assert result.exit_code == 0, result.output
    rows = _rows(result.stdout)
    assert [(row["symbol"], row["price"], row["status"]) for row in rows] == [
        ("XAUUSD", 2401.15, "STORED"),
        ("BTCUSD", 64250.12, "STORED"),
    ]
    lines = (tmp_path / "rates" / "xauusd.txt").read_text(encoding="utf-8").splitlines()
    assert lines[0] == "timestamp,symbol,price"
    assert lines[1].endswith(",XAUUSD,2401.15000")


def test_rates_for_requested_symbol(invoke: Invoke, tmp_path: Path) -> None:
    page = _page(tmp_path, '<div data-symbol="EURUSD" data-bid="1.08450"></div>')

    result = invoke("--format", "jsonl", "rates", str(page), "--symbol", "eurusd")

    assert result.exit_code == 0, result.output
    assert _rows(result.stdout)[0]["symbol"] == "EURUSD"


def test_rates_not_found(invoke: Invoke, tmp_path: Path) -> None:
    page = _page(tmp_path, "<html>no quotes</html>")

    result = invoke("rates", str(page))

    assert result.exit_code == 20
    assert "RATE_NOT_FOUND" in result.stderr


def test_unknown_format_is_rejected(invoke: Invoke, tmp_path: Path, signal_page: str) -> None:
    page = _page(tmp_path, signal_page)

    result = invoke("--format", "xml", "extract", str(page), "--channel", "1")

    assert result.exit_code == 2
