"""Structured logging utilities with trace propagation."""

from __future__ import annotations

import json
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import IO, TYPE_CHECKING, Any, Iterator
from uuid import uuid4

from loguru import logger

from signalwatch.core.logging.config import LogConfig

if TYPE_CHECKING:
    from loguru import Logger

_TRACE_ID_VAR: ContextVar[str | None] = ContextVar("signalwatch_trace_id", default=None)
_CONTEXT_VAR: ContextVar[dict[str, Any]] = ContextVar("signalwatch_log_context", default={})

_PROMOTED_KEYS = ("channel_id", "error_code")
_TEXT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[channel_id]} | {message}"


def _ensure_trace_id() -> str:
    trace_id = _TRACE_ID_VAR.get()
    if trace_id is None:
        trace_id = uuid4().hex
        _TRACE_ID_VAR.set(trace_id)
    return trace_id


def _patch_record(record: dict[str, Any]) -> None:
    extra = record.setdefault("extra", {})
    trace_id = extra.get("trace_id")
    if trace_id:
        _TRACE_ID_VAR.set(trace_id)
    else:
        extra["trace_id"] = _ensure_trace_id()

    context_values = _CONTEXT_VAR.get({})
    if context_values:
        for key in _PROMOTED_KEYS:
            if key in context_values and extra.get(key) is None:
                extra[key] = context_values[key]
        for key, value in context_values.items():
            if key not in {*_PROMOTED_KEYS, "trace_id"}:
                extra.setdefault(key, value)

    for key in _PROMOTED_KEYS:
        extra.setdefault(key, None)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _format_payload(record: dict[str, Any]) -> dict[str, Any]:
    extra = record.get("extra", {})
    context = {k: v for k, v in extra.items() if k not in {"trace_id", *_PROMOTED_KEYS}}
    level_value = record.get("level")
    if hasattr(level_value, "name"):
        level_name = level_value.name
    elif level_value is None:
        level_name = "INFO"
    else:
        level_name = str(level_value)
    payload: dict[str, Any] = {
        "timestamp": record["time"].isoformat() if "time" in record else datetime.now(UTC).isoformat(),
        "level": level_name,
        "message": record.get("message"),
        "trace_id": extra.get("trace_id"),
        "channel_id": extra.get("channel_id"),
        "error_code": extra.get("error_code"),
    }
    if context:
        payload["context"] = context
    exception = record.get("exception")
    if exception:
        payload["exception"] = str(exception)
    return payload


class _StreamJsonSink:
    """Sink writing structured JSON payloads to a text stream.

    Without an explicit stream the sink resolves ``sys.stderr`` on every write
    so redirected or captured stderr keeps working after configuration.
    """

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream

    def __call__(self, message: Any) -> None:
        stream = self._stream or sys.stderr
        payload = _format_payload(message.record)
        stream.write(json.dumps(payload, default=_json_default))
        stream.write("\n")
        stream.flush()


class _StreamTextSink:
    """Sink forwarding already formatted text lines to a stream."""

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream

    def __call__(self, message: Any) -> None:
        stream = self._stream or sys.stderr
        stream.write(str(message))
        stream.flush()


class _FileJsonSink:
    """Sink persisting JSON lines to a file path."""

    def __init__(self, path: str) -> None:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._path = path

    def __call__(self, message: Any) -> None:
        payload = _format_payload(message.record)
        with open(self._path, "a", encoding="utf-8") as file:
            file.write(json.dumps(payload, default=_json_default))
            file.write("\n")


def _configure_from_config(config: LogConfig) -> None:
    handlers: list[dict[str, Any]] = []
    if config.console_output:
        if config.serialize:
            handlers.append({"sink": _StreamJsonSink(config.console_stream), "level": config.level.upper()})
        else:
            handlers.append(
                {
                    "sink": _StreamTextSink(config.console_stream),
                    "level": config.level.upper(),
                    "format": _TEXT_FORMAT + "\n",
                }
            )
    if config.file_output and config.file_path:
        handlers.append({"sink": _FileJsonSink(config.file_path), "level": config.level.upper()})

    configure_kwargs: dict[str, Any] = {"handlers": handlers, "patcher": _patch_record}
    if config.extra:
        configure_kwargs["extra"] = config.extra
    logger.configure(**configure_kwargs)


def configure_logging(level: str = "INFO", **kwargs: Any) -> None:
    """Configure structured logging with the provided level and options."""

    config = LogConfig(level=level, **kwargs)
    _configure_from_config(config)


class StructuredLogger:
    """Wrapper exposing a configured loguru logger with trace-aware context helpers."""

    def __init__(self, config: LogConfig | None = None) -> None:
        self.config = config or LogConfig()
        _configure_from_config(self.config)
        self.logger: Logger = logger

    def configure(self, **kwargs: Any) -> None:
        """Update logger configuration at runtime."""

        self.config = self.config.model_copy(update=kwargs)
        _configure_from_config(self.config)

    @contextmanager
    def context(self, *, trace_id: str | None = None, **extra: Any) -> Iterator[str]:
        """Context manager ensuring a trace id is available for nested log events."""

        with log_context(trace_id=trace_id, **extra) as active_trace:
            yield active_trace


def get_logger(name: str | None = None) -> Logger:
    """Return a logger optionally bound to ``name``."""

    if name:
        return logger.bind(logger_name=name)
    return logger


def bind(**kwargs: Any) -> Logger:
    """Bind structured context to the global logger instance."""

    return logger.bind(**kwargs)


@contextmanager
def log_context(*, trace_id: str | None = None, **extra: Any) -> Iterator[str]:
    """Context manager that propagates trace ids and additional metadata."""

    previous_context = _CONTEXT_VAR.get({})
    context_token = _CONTEXT_VAR.set({**previous_context, **extra})

    active_trace = trace_id or uuid4().hex
    trace_token = _TRACE_ID_VAR.set(active_trace)

    try:
        yield active_trace
    finally:
        _TRACE_ID_VAR.reset(trace_token)
        _CONTEXT_VAR.reset(context_token)


def current_trace_id() -> str:
    """Return the currently active trace id, generating one if required."""

    return _ensure_trace_id()


configure_logging(level="WARNING")


__all__ = [
    "StructuredLogger",
    "bind",
    "configure_logging",
    "current_trace_id",
    "get_logger",
    "log_context",
    "logger",
]
