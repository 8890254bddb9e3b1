"""Output formatters for CLI commands."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Mapping, MutableSequence, Sequence, TextIO

from rich.box import SIMPLE
from rich.console import Console
from rich.table import Table


def _plain(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return value


class OutputFormatter:
    """Base class for CLI output formatters."""

    name: str

    def render(
        self,
        rows: Sequence[Mapping[str, object]],
        *,
        stream: TextIO,
        columns: Sequence[str] | None = None,
    ) -> None:
        """Render ``rows`` to ``stream``."""

        raise NotImplementedError


@dataclass(slots=True)
class TableFormatter(OutputFormatter):
    """Rich table with two-decimal floats."""

    name: str = "table"
    no_color: bool = False

    def render(
        self,
        rows: Sequence[Mapping[str, object]],
        *,
        stream: TextIO,
        columns: Sequence[str] | None = None,
    ) -> None:
        console = Console(file=stream, color_system=None if self.no_color else "auto", no_color=self.no_color)

        resolved_columns: MutableSequence[str] = list(columns or (rows[0].keys() if rows else ()))
        table = Table(box=SIMPLE, show_lines=False)
        header_style = "" if self.no_color else "bold"
        for column in resolved_columns:
            table.add_column(column, header_style=header_style, justify="right" if self._numeric(rows, column) else "left")

        if not rows:
            if resolved_columns:
                console.print(table)
            console.print("No records.")
            return

        for row in rows:
            table.add_row(*(self._format_cell(row.get(column)) for column in resolved_columns))
        console.print(table)

    @staticmethod
    def _numeric(rows: Sequence[Mapping[str, object]], column: str) -> bool:
        return any(isinstance(row.get(column), float) for row in rows)

    @staticmethod
    def _format_cell(value: object) -> str:
        if value is None:
            return "-"
        if isinstance(value, bool):
            return "yes" if value else "no"
        if isinstance(value, float):
            return f"{value:.2f}"
        return str(_plain(value))


@dataclass(slots=True)
class JSONLFormatter(OutputFormatter):
    """One JSON object per row."""

    name: str = "jsonl"

    def render(
        self,
        rows: Sequence[Mapping[str, object]],
        *,
        stream: TextIO,
        columns: Sequence[str] | None = None,
    ) -> None:
        for row in rows:
            selected = {column: row.get(column) for column in columns} if columns else dict(row)
            json.dump({key: _plain(value) for key, value in selected.items()}, stream, ensure_ascii=False, default=str)
            stream.write("\n")
        stream.flush()


def create_formatter(name: str, *, no_color: bool = False) -> OutputFormatter:
    """Instantiate a formatter by name."""

    normalized = name.strip().lower()
    if normalized == "table":
        return TableFormatter(no_color=no_color)
    if normalized == "jsonl":
        return JSONLFormatter()
    msg = f"Unsupported format '{name}'. Available formats: table, jsonl."
    raise ValueError(msg)


__all__ = ["JSONLFormatter", "OutputFormatter", "TableFormatter", "create_formatter"]
