"""
Root Typer application for the callbatch CLI.

Developer tooling for inspecting wire buffers: decode a request envelope,
a tagged response or a failure payload, and list the selectors the
entrypoint service and the failure codec use.
"""

from __future__ import annotations

import typer
from typer import Typer

from callbatch.cli.utils import console, fail, output_fields, output_items, output_json, parse_hex
from callbatch.codec.failures import FAILURE_SELECTORS, decode_failure
from callbatch.codec.requests import decode_request
from callbatch.codec.responses import decode_response
from callbatch.core.errors import (
    BudgetExhausted,
    CallBatchError,
    FallbackUnavailable,
    InvalidTag,
    MalformedPayload,
    PerCallFailure,
    SimulationReport,
    ValueRejected,
)
from callbatch.core.settings import get_settings
from callbatch.core.types import ChainDataRequest, ChainFacts, TryAggregateRequest
from callbatch.entrypoint import selectors_table
from callbatch.logging import configure_logging

app = Typer(
    name="callbatch",
    help="callbatch: batched call aggregation tooling.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        from callbatch import __version__

        try:
            v = pkg_version("callbatch")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"callbatch {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
) -> None:
    """callbatch CLI: inspect request envelopes, responses and failures."""
    settings = get_settings()
    configure_logging(level="DEBUG" if debug or settings.debug else settings.log_level, format=settings.log_format)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("decode")
def decode_cmd(
    buffer: str = typer.Argument(..., help="Request envelope as hex."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Decode a tagged request envelope."""
    try:
        request = decode_request(parse_hex(buffer))
    except CallBatchError as e:
        fail(e)

    items = list(getattr(request, "calls", None) or getattr(request, "addresses", None) or ())
    if as_json:
        payload: dict = {"kind": request.kind.name, "tag": int(request.kind), "items": items}
        if isinstance(request, TryAggregateRequest):
            payload["require_success"] = request.require_success
        output_json(payload)
        return

    console.print(f"[bold]{request.kind.name}[/bold] (tag {int(request.kind)})")
    if isinstance(request, TryAggregateRequest):
        console.print(f"require_success: {request.require_success}")
    if isinstance(request, ChainDataRequest):
        console.print("[dim]No items.[/dim]")
        return
    output_items(f"{len(items)} item(s)", items)


@app.command("response")
def response_cmd(
    buffer: str = typer.Argument(..., help="Tagged success response as hex."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Decode a tagged success response."""
    try:
        kind, result = decode_response(parse_hex(buffer))
    except CallBatchError as e:
        fail(e)

    if as_json:
        output_json({"kind": kind.name, "tag": int(kind), "result": result})
    elif isinstance(result, ChainFacts):
        output_fields(kind.name, result)
    else:
        output_items(f"{kind.name}: {len(result)} result(s)", result)


@app.command("failure")
def failure_cmd(
    payload: str = typer.Argument(..., help="Failure payload as hex."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Decode a failure payload (selector + body)."""
    try:
        failure = decode_failure(parse_hex(payload))
    except CallBatchError as e:
        fail(e)

    details: dict = {}
    match failure:
        case InvalidTag(value=value) | ValueRejected(value=value):
            details["value"] = value
        case PerCallFailure(index=index):
            details["index"] = index
        case BudgetExhausted(used=used, limit=limit):
            details.update(used=used, limit=limit)
        case MalformedPayload(reason=reason):
            details["reason"] = reason
        case SimulationReport(outcomes=outcomes):
            details["outcomes"] = outcomes
        case FallbackUnavailable():
            pass

    if as_json:
        output_json({"failure": type(failure).__name__, "signature": failure.signature, **details})
        return

    console.print(f"[bold red]{type(failure).__name__}[/bold red]  {failure.signature}")
    outcomes = details.pop("outcomes", None)
    for key, value in details.items():
        console.print(f"  {key}: {value}")
    if outcomes is not None:
        output_items(f"{len(outcomes)} simulated outcome(s)", outcomes)


@app.command("selectors")
def selectors_cmd(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """List entrypoint and failure selectors."""
    from rich.table import Table

    rows = [(selector, signature, f"entrypoint ({kind.name})") for selector, signature, kind in selectors_table()]
    rows += [(f"0x{selector.hex()}", cls.signature, "failure") for selector, cls in FAILURE_SELECTORS.items()]

    if as_json:
        output_json([{"selector": s, "signature": sig, "role": role} for s, sig, role in rows])
        return

    table = Table(title="Selectors")
    table.add_column("Selector", style="cyan")
    table.add_column("Signature")
    table.add_column("Role", style="dim")
    for row in rows:
        table.add_row(*row)
    console.print(table)


if __name__ == "__main__":
    app()
