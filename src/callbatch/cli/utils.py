"""
CLI utility helpers: hex input and output formatting.
"""

from __future__ import annotations

import json
from dataclasses import asdict, fields, is_dataclass
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from callbatch.core.errors import CallBatchError

console = Console()
err_console = Console(stderr=True)


# ── Input helpers ────────────────────────────────────────────────────────


def parse_hex(text: str) -> bytes:
    """Accept hex with or without ``0x``; exit with code 2 on bad input."""
    cleaned = "".join(text.split())
    if cleaned[:2].lower() == "0x":
        cleaned = cleaned[2:]
    try:
        return bytes.fromhex(cleaned)
    except ValueError:
        err_console.print(f"[bold red]Error[/bold red]: not valid hex: {text!r}")
        raise typer.Exit(code=2) from None


# ── Output helpers ───────────────────────────────────────────────────────


def to_plain(obj: Any) -> Any:
    """Convert dataclasses, bytes and lists into JSON-friendly values."""
    if isinstance(obj, bytes):
        return "0x" + obj.hex()
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_plain(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, list | tuple):
        return [to_plain(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): to_plain(v) for k, v in obj.items()}
    return obj


def output_json(payload: Any) -> None:
    console.print_json(json.dumps(to_plain(payload), default=str))


def output_items(title: str, items: list[Any]) -> None:
    """Render a list of dataclasses (or scalars) as an indexed table."""
    table = Table(title=title, show_lines=False)
    table.add_column("#", style="dim", justify="right")
    if items and is_dataclass(items[0]):
        columns = list(asdict(items[0]).keys())
        for col in columns:
            table.add_column(col)
        for index, item in enumerate(items):
            plain = to_plain(item)
            table.add_row(str(index), *(str(plain[col]) for col in columns))
    else:
        table.add_column("value")
        for index, item in enumerate(items):
            table.add_row(str(index), str(to_plain(item)))
    console.print(table)


def output_fields(title: str, obj: Any) -> None:
    """Render a single dataclass as a key/value table."""
    table = Table(title=title, show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in to_plain(obj).items():
        table.add_row(key, str(value))
    console.print(table)


def fail(error: CallBatchError) -> NoReturn:
    err_console.print(f"[bold red]Error[/bold red] ({type(error).__name__}): {error.message}")
    raise typer.Exit(code=1)
