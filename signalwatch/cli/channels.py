"""Channel roster commands."""

from __future__ import annotations

import typer

from signalwatch.core.exceptions import SignalWatchError

from .constants import VALIDATION_EXIT_CODE
from .utils import emit_error, fail, get_services, render

channels_app = typer.Typer(help="Monitored channel roster.")

LIST_COLUMNS = ["channel_id", "class", "provider_label", "records", "last_observed", "balance"]
CHANGE_COLUMNS = ["channel_id", "class", "action"]
INFO_COLUMNS = ["path", "exists", "size_bytes", "channel_count", "classified_count", "backup_count"]


def register(app: typer.Typer) -> None:
    """Register roster commands on the root application."""

    app.add_typer(channels_app, name="channels", help="List, add and remove monitored channels")


@channels_app.command("list")
def list_command(ctx: typer.Context) -> None:
    """Show every monitored channel with its label and latest stored record."""

    services = get_services(ctx)
    rows = []
    for entry in services.roster.entries():
        try:
            history = services.store.read_all(entry.channel_id)
        except SignalWatchError as error:
            fail(error)
        latest = history.latest
        rows.append(
            {
                "channel_id": entry.channel_id,
                "class": entry.favorite_class,
                "provider_label": services.directory.label_for(entry.channel_id),
                "records": len(history),
                "last_observed": latest.observed_at if latest else None,
                "balance": latest.balance if latest else None,
            }
        )
    render(ctx, rows, LIST_COLUMNS)


@channels_app.command("add")
def add_command(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id (letters and digits)."),
    favorite_class: int | None = typer.Option(None, "--class", help="Class from 1 to 10."),
) -> None:
    """Add a channel to the roster."""

    services = get_services(ctx)
    try:
        added = services.roster.add(channel_id, favorite_class)
    except ValueError as exc:
        emit_error(str(exc), "INVALID_CHANNEL", details={"channel_id": channel_id})
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc
    except SignalWatchError as error:
        fail(error)

    row = {"channel_id": channel_id.strip(), "class": favorite_class, "action": "ADDED" if added else "UNCHANGED"}
    render(ctx, [row], CHANGE_COLUMNS)


@channels_app.command("remove")
def remove_command(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id."),
) -> None:
    """Remove a channel from the roster; its store file is kept."""

    services = get_services(ctx)
    favorite_class = services.roster.favorite_class(channel_id)
    try:
        removed = services.roster.remove(channel_id)
    except SignalWatchError as error:
        fail(error)

    row = {"channel_id": channel_id.strip(), "class": favorite_class, "action": "REMOVED" if removed else "UNCHANGED"}
    render(ctx, [row], CHANGE_COLUMNS)


@channels_app.command("info")
def info_command(ctx: typer.Context) -> None:
    """Describe the roster file."""

    services = get_services(ctx)
    stats = services.roster.stats()
    row = {column: getattr(stats, column) for column in INFO_COLUMNS}
    row["path"] = str(stats.path)
    render(ctx, [row], INFO_COLUMNS)


__all__ = ["CHANGE_COLUMNS", "INFO_COLUMNS", "LIST_COLUMNS", "channels_app", "register"]
