"""Store maintenance commands."""

from __future__ import annotations

import typer

from signalwatch.core.data.storage import MigrationOutcome
from signalwatch.core.exceptions import SignalWatchError

from .constants import STORE_EXIT_CODE
from .utils import emit_error, fail, get_services, render

store_app = typer.Typer(help="Store maintenance.")

MIGRATE_COLUMNS = ["store", "outcome"]
REPAIR_COLUMNS = ["channel_id", "outcome", "changed_lines", "kept_verbatim", "backup"]
INFO_COLUMNS = [
    "channel_id",
    "path",
    "exists",
    "size_bytes",
    "total_lines",
    "record_lines",
    "legacy_lines",
    "current_lines",
    "comment_lines",
    "blank_lines",
    "malformed_lines",
    "first_observed",
    "last_observed",
]


def register(app: typer.Typer) -> None:
    """Register store commands on the root application."""

    app.add_typer(store_app, name="store", help="Migrate, repair and inspect stores")


@store_app.command("migrate")
def migrate_command(ctx: typer.Context) -> None:
    """Rewrite every store file in the current schema, keeping backups."""

    services = get_services(ctx)
    outcomes = services.store.migrate_all()
    rows = [{"store": key, "outcome": outcome.value} for key, outcome in outcomes.items()]
    render(ctx, rows, MIGRATE_COLUMNS)

    failed = [key for key, outcome in outcomes.items() if outcome is MigrationOutcome.FAILED]
    if failed:
        emit_error("Some stores could not be migrated.", "MIGRATION_FAILED", details={"stores": failed})
        raise typer.Exit(code=STORE_EXIT_CODE)


@store_app.command("repair")
def repair_command(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id."),
) -> None:
    """Fix lines split by a decimal comma in one channel store."""

    services = get_services(ctx)
    try:
        result = services.store.repair_file(channel_id)
    except SignalWatchError as error:
        fail(error)

    row = {
        "channel_id": channel_id,
        "outcome": result.outcome.value,
        "changed_lines": result.changed_lines,
        "kept_verbatim": result.kept_verbatim,
        "backup": result.backup_path.name if result.backup_path else None,
    }
    render(ctx, [row], REPAIR_COLUMNS)


@store_app.command("info")
def info_command(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Channel id."),
) -> None:
    """Describe the lines of one channel store."""

    services = get_services(ctx)
    try:
        info = services.store.describe(channel_id)
    except SignalWatchError as error:
        fail(error)

    row = {column: getattr(info, column) for column in INFO_COLUMNS}
    row["path"] = str(info.path)
    render(ctx, [row], INFO_COLUMNS)


__all__ = ["INFO_COLUMNS", "MIGRATE_COLUMNS", "REPAIR_COLUMNS", "register", "store_app"]
