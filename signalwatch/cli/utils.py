"""Helpers shared across CLI commands."""

from __future__ import annotations

import json
import sys
from contextlib import ExitStack
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Mapping, NoReturn, Sequence, TextIO

import typer

from signalwatch.core.config import ConfigManager
from signalwatch.core.exceptions import (
    ConfigError,
    ExtractionError,
    MalformedRecordLine,
    RateExtractionError,
    SignalWatchError,
    SnapshotValidationError,
    StoreIOError,
)
from signalwatch.core.logging import configure_logging
from signalwatch.core.services import MonitorServices, TimeScale, build_services

from .constants import DATA_EXIT_CODE, STORE_EXIT_CODE, SYSTEM_EXIT_CODE, VALIDATION_EXIT_CODE
from .formatters import OutputFormatter, create_formatter


@dataclass(slots=True)
class CLIOptions:
    """Options resolved from the root callback."""

    format: str = "table"
    output_path: Path | None = None
    no_color: bool = False
    base_dir: Path | None = None
    config_path: Path | None = None


def get_cli_options(ctx: typer.Context) -> CLIOptions:
    """Extract :class:`CLIOptions` from the Typer context object."""

    ctx.ensure_object(dict)
    data = ctx.obj or {}
    return CLIOptions(
        format=str(data.get("format", "table")),
        output_path=data.get("output_path"),
        no_color=bool(data.get("no_color", False)),
        base_dir=data.get("base_dir"),
        config_path=data.get("config_path"),
    )


def get_services(ctx: typer.Context) -> MonitorServices:
    """Factory hook building the service graph for the current invocation."""

    options = get_cli_options(ctx)
    try:
        manager = ConfigManager(options.config_path)
        if options.base_dir is not None:
            manager.update_config(store={"base_dir": str(options.base_dir)})
    except ConfigError as error:
        fail(error)
    config = manager.get_config()
    level = str(ctx.obj.get("log_level") or config.logging.level)
    configure_logging(
        level=level,
        serialize=config.logging.serialize,
        file_output=config.logging.file is not None,
        file_path=config.logging.file,
    )
    try:
        return build_services(config)
    except SignalWatchError as error:
        fail(error)


def prepare_output(ctx: typer.Context) -> tuple[OutputFormatter, TextIO, ExitStack, CLIOptions]:
    """Resolve formatter and writable stream for the current command."""

    options = get_cli_options(ctx)
    formatter = create_formatter(options.format, no_color=options.no_color)

    stack = ExitStack()
    stream: TextIO
    if options.output_path is not None:
        try:
            stream = stack.enter_context(open(options.output_path, "w", encoding="utf-8"))
        except OSError as exc:
            stack.close()
            emit_error(f"Unable to open '{options.output_path}': {exc}", "OUTPUT_WRITE_ERROR")
            raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc
    else:
        stream = sys.stdout

    return formatter, stream, stack, options


def render(ctx: typer.Context, rows: Sequence[Mapping[str, object]], columns: Sequence[str]) -> None:
    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        formatter.render(rows, stream=stream, columns=columns)
    finally:
        stack.close()


def read_page(path: Path) -> str:
    """Read a saved page, exiting with a validation error when it cannot be read."""

    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        emit_error(f"Unable to read '{path}': {exc}", "PAGE_READ_ERROR", details={"path": str(path)})
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc


def parse_as_of(value: str | None) -> datetime:
    """Parse ``--as-of`` into local naive time, the clock the store records use."""

    if value is None:
        return datetime.now().replace(microsecond=0)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid timestamp '{value}'", param_hint="--as-of") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def resolve_scale(scale: str | None, lookback_minutes: int | None) -> TimeScale | None:
    """Validate the mutually exclusive ``--scale`` and ``--lookback-minutes`` options."""

    if scale is not None and lookback_minutes is not None:
        emit_error("Use either --scale or --lookback-minutes, not both.", "CONFLICTING_OPTIONS")
        raise typer.Exit(code=VALIDATION_EXIT_CODE)
    if lookback_minutes is not None and lookback_minutes <= 0:
        emit_error(
            "Lookback must be a positive number of minutes.",
            "INVALID_LOOKBACK",
            details={"lookback_minutes": lookback_minutes},
        )
        raise typer.Exit(code=VALIDATION_EXIT_CODE)
    if scale is None:
        return None
    try:
        return TimeScale.parse(scale)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--scale") from exc


def exit_code_for(error: SignalWatchError) -> int:
    if isinstance(error, (ConfigError, SnapshotValidationError)):
        return VALIDATION_EXIT_CODE
    if isinstance(error, (ExtractionError, RateExtractionError, MalformedRecordLine)):
        return DATA_EXIT_CODE
    if isinstance(error, StoreIOError):
        return STORE_EXIT_CODE
    return SYSTEM_EXIT_CODE


def fail(error: SignalWatchError) -> NoReturn:
    """Report ``error`` on stderr and exit with its mapped code."""

    emit_error(error.message, error.error_code, details=error.details)
    raise typer.Exit(code=exit_code_for(error)) from error


def emit_error(message: str, code: str, *, details: Mapping[str, object] | None = None) -> None:
    """Print a structured error payload to stderr."""

    payload: dict[str, object] = {"code": code, "message": message}
    if details:
        payload["details"] = _sanitize_details(details)
    typer.echo(json.dumps(payload, ensure_ascii=False, default=str), err=True)


def _sanitize_details(details: Mapping[str, object]) -> Mapping[str, object]:
    sanitized: dict[str, object] = {}
    for key, value in details.items():
        if isinstance(value, (str, int, float, bool)) or value is None:
            sanitized[key] = value
        elif isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
            sanitized[key] = [str(item) for item in value]
        else:
            sanitized[key] = str(value)
    return sanitized


__all__ = [
    "CLIOptions",
    "emit_error",
    "exit_code_for",
    "fail",
    "get_cli_options",
    "get_services",
    "parse_as_of",
    "prepare_output",
    "read_page",
    "render",
    "resolve_scale",
]
