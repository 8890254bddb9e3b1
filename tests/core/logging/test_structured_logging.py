"""Tests for structured logging with trace propagation."""

from __future__ import annotations

import io
import json
from pathlib import Path

from signalwatch.core.logging import LogConfig, StructuredLogger, configure_logging, get_logger, log_context


def _read_records(stream: io.StringIO) -> list[dict[str, object]]:
    stream.seek(0)
    lines = [line for line in stream.getvalue().splitlines() if line.strip()]
    return [json.loads(line) for line in lines]


def test_structured_log_promotes_channel_and_error_code() -> None:
    buffer = io.StringIO()
    logger = StructuredLogger(LogConfig(console_stream=buffer, console_output=True, file_output=False))

    with logger.context(trace_id="trace-123", channel_id="2296908", error_code="STORE_IO_ERROR", attempt=2):
        logger.logger.info("append failed")

    records = _read_records(buffer)
    assert len(records) == 1
    record = records[0]
    assert record["trace_id"] == "trace-123"
    assert record["channel_id"] == "2296908"
    assert record["error_code"] == "STORE_IO_ERROR"
    assert record["context"]["attempt"] == 2
    assert record["message"] == "append failed"


def test_trace_id_propagates_within_context() -> None:
    buffer = io.StringIO()
    logger = StructuredLogger(LogConfig(console_stream=buffer, console_output=True, file_output=False))

    with logger.context() as trace_id:
        logger.logger.info("first event")
        logger.logger.info("second event")

    logger.logger.info("outside context")

    records = _read_records(buffer)
    assert len(records) == 3
    assert records[0]["trace_id"] == records[1]["trace_id"] == trace_id
    assert records[2]["trace_id"] != trace_id


def test_bound_channel_is_reported() -> None:
    buffer = io.StringIO()
    configure_logging(level="DEBUG", console_stream=buffer)

    get_logger("signalwatch.test").bind(channel_id="42").debug("bound event")

    record = _read_records(buffer)[0]
    assert record["channel_id"] == "42"
    assert record["level"] == "DEBUG"
    assert record["context"]["logger_name"] == "signalwatch.test"


def test_level_filters_lower_records() -> None:
    buffer = io.StringIO()
    configure_logging(level="WARNING", console_stream=buffer)

    get_logger().info("hidden")
    get_logger().warning("shown")

    assert [record["message"] for record in _read_records(buffer)] == ["shown"]


def test_file_sink_writes_json_lines(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "signalwatch.log"
    configure_logging(level="INFO", console_output=False, file_output=True, file_path=str(log_file))

    with log_context(channel_id="7"):
        get_logger().info("to file")

    lines = log_file.read_text(encoding="utf-8").splitlines()
    payload = json.loads(lines[-1])
    assert payload["message"] == "to file"
    assert payload["channel_id"] == "7"


def test_text_console_format() -> None:
    buffer = io.StringIO()
    configure_logging(level="INFO", console_stream=buffer, serialize=False)

    get_logger().bind(channel_id="99").info("plain text")

    output = buffer.getvalue()
    assert "plain text" in output
    assert "| 99 |" in output
    assert not output.lstrip().startswith("{")
