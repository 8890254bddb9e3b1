"""Channel history commands."""

from __future__ import annotations

from datetime import timedelta

import typer

from signalwatch.core.exceptions import SignalWatchError
from signalwatch.core.models import WindowResult
from signalwatch.core.services import MonitorServices

from .utils import fail, get_services, parse_as_of, render, resolve_scale

history_app = typer.Typer(help="Channel history.")

HISTORY_COLUMNS = [
    "observed_at",
    "balance",
    "floating_profit",
    "period_profit",
    "total_value",
    "drawdown_percent",
    "strategy",
    "fallback",
]


def register(app: typer.Typer) -> None:
    """Register history commands on the root application."""

    app.add_typer(history_app, name="history", help="Read channel histories")


def select_window(
    services: MonitorServices,
    channel_id: str,
    scale: str | None,
    lookback_minutes: int | None,
    as_of: str | None,
) -> WindowResult:
    """Read ``channel_id`` and cut the window chosen on the command line."""

    resolved_scale = resolve_scale(scale, lookback_minutes)
    now = parse_as_of(as_of)
    try:
        history = services.store.read_all(channel_id)
    except SignalWatchError as error:
        fail(error)

    if resolved_scale is not None:
        return services.windower.window_for_scale(history, resolved_scale, now)
    minutes = lookback_minutes or services.config.window.default_lookback_minutes
    return services.windower.window(history, timedelta(minutes=minutes), now)


@history_app.command("show")
def show_command(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id."),
    lookback_minutes: int | None = typer.Option(None, "--lookback-minutes", help="Window length in minutes."),
    scale: str | None = typer.Option(None, "--scale", help="Named scale: M1, M5, M15, H1, H4, D1 or ALL."),
    as_of: str | None = typer.Option(None, "--as-of", help="Reference time (ISO format); defaults to now."),
) -> None:
    """Show the records of a channel inside a lookback window."""

    services = get_services(ctx)
    result = select_window(services, channel_id, scale, lookback_minutes, as_of)
    rows = [
        {
            "observed_at": record.observed_at,
            "balance": record.balance,
            "floating_profit": record.floating_profit,
            "period_profit": record.period_profit,
            "total_value": record.total_value,
            "drawdown_percent": record.drawdown_percent,
            "strategy": result.strategy.value,
            "fallback": result.used_fallback,
        }
        for record in result.records
    ]
    render(ctx, rows, HISTORY_COLUMNS)


__all__ = ["HISTORY_COLUMNS", "history_app", "register", "select_window", "show_command"]
