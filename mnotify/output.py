from __future__ import annotations
import json
from typing import Any, Iterable, Sequence

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

console = Console(soft_wrap=True)


def emit_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False))


def emit_json_line(data: Any) -> None:
    """One compact JSON document per line, for streams."""
    typer.echo(json.dumps(data, separators=(",", ":"), sort_keys=True, ensure_ascii=False))


def emit_table(title: str, columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*(Text("" if cell is None else str(cell)) for cell in row))
    console.print(table)


def emit_fields(pairs: Iterable[tuple]) -> None:
    """Aligned 'Key: value' lines, skipping empty values."""
    pairs = [(k, v) for k, v in pairs if v not in (None, "")]
    if not pairs:
        return
    width = max(len(k) for k, _ in pairs)
    for key, value in pairs:
        typer.echo(f"{key.ljust(width)}: {value}")
