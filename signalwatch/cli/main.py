"""Main entry point for the signalwatch command line interface."""

from __future__ import annotations

from pathlib import Path

import typer

from signalwatch.core.logging import configure_logging

from .channels import register as register_channel_commands
from .extract import register as register_extract_commands
from .formatters import create_formatter
from .history import register as register_history_commands
from .stats import register as register_stats_commands
from .store import register as register_store_commands


def create_app() -> typer.Typer:
    """Create a Typer application instance for signalwatch."""

    app = typer.Typer(add_completion=False, help="signalwatch command line interface")

    @app.callback()
    def main(
        ctx: typer.Context,
        format: str = typer.Option(
            "table",
            "--format",
            "-f",
            help="Output format (table or jsonl).",
            show_default=True,
        ),
        output: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Write output to a file instead of stdout.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            help="Log level for structured logs on stderr; defaults to logging.level from the config.",
        ),
        no_color: bool = typer.Option(
            False,
            "--no-color",
            help="Disable colorized output for table format.",
        ),
        base_dir: Path | None = typer.Option(
            None,
            "--base-dir",
            help="Store root directory; overrides the configured base_dir.",
        ),
        config: Path | None = typer.Option(
            None,
            "--config",
            help="Configuration file (defaults to ~/.signalwatch/config.toml).",
        ),
    ) -> None:
        ctx.ensure_object(dict)
        normalized_format = format.strip().lower()
        try:
            create_formatter(normalized_format, no_color=no_color)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--format") from exc

        level = log_level.upper() if log_level else None
        ctx.obj.update(
            {
                "format": normalized_format,
                "output_path": output,
                "log_level": level,
                "no_color": no_color,
                "base_dir": base_dir,
                "config_path": config,
            }
        )
        if level is not None:
            try:
                configure_logging(level=level)
            except ValueError as exc:
                raise typer.BadParameter(str(exc), param_hint="--log-level") from exc

    register_extract_commands(app)
    register_history_commands(app)
    register_stats_commands(app)
    register_store_commands(app)
    register_channel_commands(app)
    return app


app = create_app()


def run() -> None:
    app()


if __name__ == "__main__":
    run()
