"""canvasedit CLI - apply streamed edit instructions to canvases and render transcripts."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from canvasedit import __version__
from canvasedit.canvas import (
    BatchResult,
    CanvasLoader,
    CanvasOperationExecutor,
    CanvasStore,
    CanvasStoreError,
    OperationResult,
)
from canvasedit.models.operations import Operation, describe_operation
from canvasedit.stream import (
    ScanOrder,
    StreamApplyReport,
    StreamingApplier,
    TagStreamExtractor,
    chunk_text,
    load_mock_chunks,
    mock_stream,
)
from canvasedit.utils.config import get_settings

console = Console()


def run_async(coro: Any) -> Any:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def _configure_logging(quiet: bool) -> None:
    if quiet:
        return
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _get_store(vault: str | None) -> CanvasStore:
    """Build the store from --vault or CANVASEDIT_VAULT_PATH."""
    if vault:
        vault_path = Path(vault).expanduser()
    elif get_settings().vault_path:
        vault_path = Path(get_settings().vault_path).expanduser()
    else:
        console.print("[yellow]No vault specified. Use --vault or set CANVASEDIT_VAULT_PATH[/yellow]")
        sys.exit(1)

    if not vault_path.is_dir():
        console.print(f"[red]Vault not found: {vault_path}[/red]")
        sys.exit(1)

    return CanvasStore(vault_path)


def _detail(result: OperationResult) -> str:
    if result.success:
        return ", ".join(result.affected_ids)
    code = result.code.value if result.code else "Error"
    return f"{code}: {result.error}"


def _print_results(title: str, rows: list[tuple[Operation, OperationResult]]) -> None:
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Operation")
    table.add_column("Status")
    table.add_column("Detail")

    for i, (op, result) in enumerate(rows, start=1):
        status = "[green]ok[/green]" if result.success else "[red]failed[/red]"
        table.add_row(str(i), describe_operation(op), status, _detail(result))

    console.print(table)


def _print_report(report: StreamApplyReport) -> None:
    if report.summary:
        console.print(Panel(report.summary, title=report.canvas_path or "Canvas edit", border_style="blue"))
    _print_results("Applied operations", [(a.operation, a.result) for a in report.applied])
    for warning in report.warnings:
        console.print(f"[yellow]Dropped <{warning.tag}>: {warning.reason}[/yellow]")


@click.group()
@click.version_option(version=__version__, prog_name="canvasedit")
def cli() -> None:
    """canvasedit - streaming edits and transcripts for Obsidian canvases.

    \b
    Commands:
        show <canvas>        Print the model transcript of a canvas
        apply                Apply <canvas_edit> instructions from text
        replay <capture>     Replay a captured model stream onto a canvas
    """
    pass


@cli.command("show")
@click.argument("canvas")
@click.option("--vault", "-v", help="Vault root (defaults to CANVASEDIT_VAULT_PATH)")
@click.option("--select", "-s", "selected", multiple=True, help="Only include these node ids")
@click.option("--quiet", "-q", is_flag=True, help="Suppress log output")
def show(canvas: str, vault: str | None, selected: tuple[str, ...], quiet: bool) -> None:
    """Print the transcript of a canvas.

    \b
    Examples:
        canvasedit show Boards/Plan.canvas --vault ~/Notes
        canvasedit show Boards/Plan.canvas -s n1 -s n2
    """
    _configure_logging(quiet)
    store = _get_store(vault)
    loader = CanvasLoader(store)

    try:
        text = run_async(loader.transcript(canvas, selected_ids=selected or None))
    except CanvasStoreError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    click.echo(text)


@cli.command("apply")
@click.option("--canvas", "-c", help="Target canvas (defaults to the <canvas_edit path>)")
@click.option("--vault", "-v", help="Vault root (defaults to CANVASEDIT_VAULT_PATH)")
@click.option("--input", "-i", "input_file", type=click.File("r"), default="-",
              help="File with model output (default: stdin)")
@click.option("--chunk-size", default=0, help="Feed the input in slices of this many characters")
@click.option("--stream", "streaming", is_flag=True, help="Execute each operation as soon as it completes")
@click.option("--atomic", is_flag=True, help="Write nothing unless every operation succeeds")
@click.option("--order", type=click.Choice([o.value for o in ScanOrder]), default=None,
              help="Emission order for operations completing together")
@click.option("--json", "as_json", is_flag=True, help="Output results as JSON")
@click.option("--quiet", "-q", is_flag=True, help="Suppress log output")
def apply(
    canvas: str | None,
    vault: str | None,
    input_file: Any,
    chunk_size: int,
    streaming: bool,
    atomic: bool,
    order: str | None,
    as_json: bool,
    quiet: bool,
) -> None:
    """Apply canvas edit instructions to a canvas.

    \b
    Examples:
        canvasedit apply -i response.txt --vault ~/Notes
        canvasedit apply -c Boards/Plan.canvas --atomic < response.txt
        canvasedit apply -i response.txt --stream --chunk-size 16
    """
    _configure_logging(quiet)
    store = _get_store(vault)
    executor = CanvasOperationExecutor(store)
    scan_order = ScanOrder(order or get_settings().scan_order)
    chunks = chunk_text(input_file.read(), chunk_size)

    if streaming:
        applier = StreamingApplier(executor, scan_order=scan_order)
        report = run_async(applier.apply_stream(mock_stream(chunks, delay_ms=0), canvas_path=canvas))
        if as_json:
            click.echo(json.dumps([a.result.to_dict() for a in report.applied], ensure_ascii=False))
        else:
            _print_report(report)
        if not report.all_success:
            sys.exit(1)
        return

    extractor = TagStreamExtractor(scan_order=scan_order)
    operations: list[Operation] = []
    for chunk in chunks:
        operations.extend(extractor.feed(chunk))

    target = canvas or extractor.canvas_path
    if target is None:
        console.print("[red]No target canvas. Use --canvas or include <canvas_edit path=...>[/red]")
        sys.exit(1)

    if not operations:
        console.print("[dim]No canvas operations found in input[/dim]")
        return

    batch: BatchResult = run_async(executor.execute_batch(target, operations, atomic=atomic))

    if as_json:
        click.echo(json.dumps(batch.to_dict(), ensure_ascii=False))
    else:
        if extractor.summary:
            console.print(Panel(extractor.summary, title=target, border_style="blue"))
        # A read failure yields a single result that belongs to no operation
        if len(batch.results) == len(operations):
            _print_results("Applied operations", list(zip(operations, batch.results)))
        else:
            console.print(f"[red]{batch.results[0].error}[/red]")
        for warning in extractor.warnings:
            console.print(f"[yellow]Dropped <{warning.tag}>: {warning.reason}[/yellow]")

    if not batch.all_success:
        sys.exit(1)


@cli.command("replay")
@click.argument("capture", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--canvas", "-c", help="Target canvas (defaults to the <canvas_edit path>)")
@click.option("--vault", "-v", help="Vault root (defaults to CANVASEDIT_VAULT_PATH)")
@click.option("--delay-ms", type=int, default=None, help="Delay between chunks")
@click.option("--quiet", "-q", is_flag=True, help="Suppress log output")
def replay(capture: Path, canvas: str | None, vault: str | None, delay_ms: int | None, quiet: bool) -> None:
    """Replay a captured model stream (SSE, plain lines or JSON array).

    \b
    Examples:
        canvasedit replay capture.sse --vault ~/Notes
        canvasedit replay chunks.json -c Boards/Plan.canvas --delay-ms 0
    """
    _configure_logging(quiet)
    settings = get_settings()
    store = _get_store(vault)
    chunks = load_mock_chunks(capture)

    applier = StreamingApplier(CanvasOperationExecutor(store), scan_order=settings.scan_order)
    delay = settings.mock_chunk_delay_ms if delay_ms is None else delay_ms
    report = run_async(applier.apply_stream(mock_stream(chunks, delay_ms=delay), canvas_path=canvas))

    _print_report(report)
    if not report.all_success:
        sys.exit(1)


if __name__ == "__main__":
    cli()
