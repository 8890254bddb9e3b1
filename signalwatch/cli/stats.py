"""Statistics commands."""

from __future__ import annotations

import typer

from signalwatch.core.exceptions import SignalWatchError
from signalwatch.core.models import METRICS
from signalwatch.core.services import Period

from .history import select_window
from .utils import fail, get_services, parse_as_of, render

stats_app = typer.Typer(help="Channel statistics.")

DRAWDOWN_COLUMNS = ["channel_id", "count", "min", "max", "avg", "strategy", "fallback"]
PROFIT_COLUMNS = ["channel_id", "period", "metric", "value", "percent", "available", "reference_at", "current_at"]
SUMMARY_COLUMNS = [
    "channel_id",
    "count",
    "first_observed",
    "last_observed",
    "min_balance",
    "max_balance",
    "min_floating_profit",
    "max_floating_profit",
    "min_total_value",
    "max_total_value",
]


def register(app: typer.Typer) -> None:
    """Register statistics commands on the root application."""

    app.add_typer(stats_app, name="stats", help="Drawdown and profit statistics")


@stats_app.command("drawdown")
def drawdown_command(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id."),
    lookback_minutes: int | None = typer.Option(None, "--lookback-minutes", help="Window length in minutes."),
    scale: str | None = typer.Option(None, "--scale", help="Named scale: M1, M5, M15, H1, H4, D1 or ALL."),
    as_of: str | None = typer.Option(None, "--as-of", help="Reference time (ISO format); defaults to now."),
) -> None:
    """Drawdown percent statistics over the selected window."""

    services = get_services(ctx)
    window = select_window(services, channel_id, scale, lookback_minutes, as_of)
    stats = services.stats.drawdown_stats(window.records)
    row = {
        "channel_id": channel_id,
        "count": stats.count,
        "min": stats.min,
        "max": stats.max,
        "avg": stats.avg,
        "strategy": window.strategy.value,
        "fallback": window.used_fallback,
    }
    render(ctx, [row], DRAWDOWN_COLUMNS)


@stats_app.command("profit")
def profit_command(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id."),
    period: str = typer.Option("week", "--period", help="week or month."),
    metric: str = typer.Option("period_profit", "--metric", help=f"One of: {', '.join(METRICS)}."),
    as_of: str | None = typer.Option(None, "--as-of", help="Reference time (ISO format); defaults to now."),
) -> None:
    """Profit change over the last week or month."""

    try:
        resolved_period = Period.parse(period)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--period") from exc
    if metric not in METRICS:
        raise typer.BadParameter(f"Unknown metric '{metric}'", param_hint="--metric")

    now = parse_as_of(as_of)
    services = get_services(ctx)
    try:
        history = services.store.read_all(channel_id)
    except SignalWatchError as error:
        fail(error)

    profit = services.stats.period_profit(history, now, resolved_period, metric)
    row = {
        "channel_id": channel_id,
        "period": resolved_period.name.lower(),
        "metric": metric,
        "value": profit.value,
        "percent": profit.percent,
        "available": profit.available,
        "reference_at": profit.reference_at,
        "current_at": profit.current_at,
    }
    render(ctx, [row], PROFIT_COLUMNS)


@stats_app.command("summary")
def summary_command(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id."),
) -> None:
    """Min/max figures over the whole channel history."""

    services = get_services(ctx)
    try:
        history = services.store.read_all(channel_id)
    except SignalWatchError as error:
        fail(error)

    summary = services.stats.summarize(history)
    row: dict[str, object] = {"channel_id": channel_id}
    row.update({column: getattr(summary, column) for column in SUMMARY_COLUMNS[1:]})
    render(ctx, [row], SUMMARY_COLUMNS)


__all__ = ["DRAWDOWN_COLUMNS", "PROFIT_COLUMNS", "SUMMARY_COLUMNS", "register", "stats_app"]
