"""asyncqueue CLI commands for inspecting configuration and exercising the queue."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from asyncqueue.config import Settings, get_settings
from asyncqueue.logging_config import setup_logging
from asyncqueue.task_queue import InvalidConcurrencyError, QueueHooks, TaskQueue

app = typer.Typer(help="asyncqueue task queue CLI", no_args_is_help=True)
console = Console()


def _async_run(coro):
    """Run an async coroutine."""
    return asyncio.run(coro)


def _parse_delays(raw: Optional[str], tasks: int, settings: Settings) -> list[int]:
    """Parse ``40,20,60`` into millisecond delays, or repeat the configured default."""
    if not raw:
        return [settings.asyncqueue_demo_delay_ms] * tasks
    delays = [int(part) for part in raw.split(",") if part.strip()]
    if any(d < 0 for d in delays):
        raise ValueError("delays must not be negative")
    return delays


async def _run_demo(
    delays: list[int],
    concurrency: Optional[int],
    fail_every: int,
    settings: Settings,
) -> tuple[list[tuple[int, str, str]], list[int]]:
    """Push one task per delay and collect the event timeline until drain."""
    loop = asyncio.get_running_loop()
    started_at = loop.time()
    timeline: list[tuple[int, str, str]] = []
    completion_order: list[int] = []
    drained = asyncio.Event()

    def mark(kind: str, detail: str = "") -> None:
        elapsed_ms = round((loop.time() - started_at) * 1000)
        timeline.append((elapsed_ms, kind, detail))

    def worker(task: int, done) -> None:
        mark("dispatch", f"task {task}")
        failed = bool(fail_every) and task % fail_every == 0
        error = f"task {task} failed" if failed else None
        loop.call_later(delays[task - 1] / 1000, done, error, task)

    def on_drain() -> None:
        mark("drain")
        drained.set()

    hooks = QueueHooks(
        saturated=lambda: mark("saturated"),
        unsaturated=lambda: mark("unsaturated"),
        empty=lambda: mark("empty"),
        drain=on_drain,
        error=lambda err, task: mark("error", f"{err} (task {task})"),
    )
    if concurrency is None:
        queue = TaskQueue.from_settings(worker, settings, hooks=hooks)
    else:
        queue = TaskQueue(worker, concurrency, hooks=hooks)

    for number in range(1, len(delays) + 1):
        def on_complete(err, *results, number=number) -> None:
            completion_order.append(number)
            mark("complete", f"task {number}" + (" (error)" if err else ""))

        queue.push(number, on_complete)

    await drained.wait()
    return timeline, completion_order


@app.command()
def demo(
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", help="Tasks in flight at once (defaults to config)"),
    tasks: int = typer.Option(4, "--tasks", "-n", help="Number of tasks when --delays is not given"),
    delays: Optional[str] = typer.Option(None, "--delays", "-d", help="Comma-separated per-task delays in ms"),
    fail_every: int = typer.Option(0, "--fail-every", help="Fail every Nth task (0 disables)"),
) -> None:
    """Run simulated tasks through a queue and show the event timeline."""
    settings = get_settings()
    setup_logging(settings)

    try:
        delay_list = _parse_delays(delays, tasks, settings)
    except ValueError as exc:
        console.print(f"[red]Invalid delays: {exc}[/red]")
        raise typer.Exit(1)
    if not delay_list:
        console.print("[red]Nothing to run: no tasks given.[/red]")
        raise typer.Exit(1)

    try:
        timeline, order = _async_run(_run_demo(delay_list, concurrency, fail_every, settings))
    except InvalidConcurrencyError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="Queue Timeline")
    table.add_column("ms", style="cyan", justify="right")
    table.add_column("Event", style="green")
    table.add_column("Detail", style="white")
    for elapsed_ms, kind, detail in timeline:
        table.add_row(str(elapsed_ms), kind, detail)
    console.print(table)
    console.print(f"Completion order: [bold]{', '.join(str(n) for n in order)}[/bold]")


@app.command()
def config() -> None:
    """Show the active queue settings."""
    settings = get_settings()

    table = Table(title="asyncqueue Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for name, value in settings.model_dump().items():
        table.add_row(name, str(value))
    console.print(table)


@app.command()
def version() -> None:
    """Show asyncqueue version."""
    import importlib.metadata

    try:
        ver = importlib.metadata.version("asyncqueue")
    except importlib.metadata.PackageNotFoundError:
        from asyncqueue import __version__ as ver

    console.print(f"[bold cyan]asyncqueue[/bold cyan] version [green]{ver}[/green]")
