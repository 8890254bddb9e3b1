"""Page extraction commands."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

import typer

from signalwatch.core.exceptions import SignalWatchError
from signalwatch.core.extraction import ExtractionFailure, RateExtractor
from signalwatch.core.models import RateQuote, Snapshot
from signalwatch.core.services import RefreshStatus

from .constants import DATA_EXIT_CODE, STORE_EXIT_CODE
from .utils import emit_error, fail, get_services, read_page, render

SNAPSHOT_COLUMNS = [
    "channel_id",
    "provider_label",
    "balance",
    "floating_profit",
    "total_value",
    "drawdown_percent",
    "currency",
    "observed_at",
    "status",
]

RATE_COLUMNS = ["symbol", "price", "observed_at", "status"]


def register(app: typer.Typer) -> None:
    """Register extraction commands on the root application."""

    app.command("extract")(extract_command)
    app.command("rates")(rates_command)


def extract_command(
    ctx: typer.Context,
    page: Path = typer.Argument(..., help="Saved signal page (HTML)."),
    channel: str = typer.Option(..., "--channel", "-c", help="Channel id the page belongs to."),
    store: bool = typer.Option(False, "--store", help="Append the snapshot to the channel store."),
) -> None:
    """Extract balance and floating profit from a saved signal page."""

    markup = read_page(page)
    services = get_services(ctx)

    if store:
        result = services.refresher.refresh(channel, markup)
        if result.status is RefreshStatus.EXTRACTION_FAILED:
            emit_error(result.reason or "Extraction failed", "EXTRACTION_FAILED", details={"channel_id": channel})
            raise typer.Exit(code=DATA_EXIT_CODE)
        if result.status is RefreshStatus.STORE_FAILED:
            emit_error(result.reason or "Store failed", "STORE_IO_ERROR", details={"channel_id": channel})
            raise typer.Exit(code=STORE_EXIT_CODE)
        rows = [_snapshot_row(result.snapshot, result.status.value)] if result.snapshot is not None else []
        render(ctx, rows, SNAPSHOT_COLUMNS)
        return

    outcome = services.extractor.extract(markup, channel)
    if isinstance(outcome, ExtractionFailure):
        fail(outcome.to_error())
    render(ctx, [_snapshot_row(outcome, "EXTRACTED")], SNAPSHOT_COLUMNS)


def rates_command(
    ctx: typer.Context,
    page: Path = typer.Argument(..., help="Saved quotes page (HTML)."),
    symbol: list[str] | None = typer.Option(None, "--symbol", "-s", help="Symbol to look for; repeatable."),
    store: bool = typer.Option(False, "--store", help="Append quotes to the rate stores."),
) -> None:
    """Extract currency rates from a saved quotes page."""

    markup = read_page(page)
    services = get_services(ctx)
    extractor = services.rate_extractor
    if symbol:
        extractor = RateExtractor(symbol)

    try:
        quotes = extractor.extract(markup)
        status = "EXTRACTED"
        if store:
            for quote in quotes:
                services.store.append_rate(quote)
            status = "STORED"
    except SignalWatchError as error:
        fail(error)

    render(ctx, [_rate_row(quote, status) for quote in quotes], RATE_COLUMNS)


def _snapshot_row(snapshot: Snapshot, status: str) -> Mapping[str, object]:
    return {
        "channel_id": snapshot.channel_id,
        "provider_label": snapshot.provider_label,
        "balance": snapshot.balance,
        "floating_profit": snapshot.floating_profit,
        "total_value": snapshot.total_value,
        "drawdown_percent": snapshot.drawdown_percent,
        "currency": snapshot.currency_code,
        "observed_at": snapshot.observed_at,
        "status": status,
    }


def _rate_row(quote: RateQuote, status: str) -> Mapping[str, object]:
    return {"symbol": quote.symbol, "price": quote.price, "observed_at": quote.observed_at, "status": status}


__all__ = ["RATE_COLUMNS", "SNAPSHOT_COLUMNS", "extract_command", "rates_command", "register"]
