"""Taurobot scraping CLI.

Usage:
    taurobot sources
    taurobot show --source servitoro --limit 20
    taurobot refresh --source mundotoro
    taurobot refresh --all
    taurobot scheduled --source mundotoro
    taurobot clear-cache
    taurobot regional sevilla --upcoming
    taurobot scheduler
"""

import asyncio
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from taurobot.config.settings import get_settings
from taurobot.config.sources import SourceRegistry
from taurobot.core.exceptions import SourceNotFoundError
from taurobot.core.models import Record
from taurobot.core.service import ScraperService
from taurobot.logging import setup_logging
from taurobot.utils.text import truncate

app = typer.Typer(
    name="taurobot",
    help="Bullfighting data scrapers (broadcasts, calendar, ranking, chronicles)",
    add_completion=False,
)
console = Console()


@app.callback()
def configure(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)",
    ),
):
    """Configure logging before any command runs."""
    settings = get_settings()
    setup_logging(
        level=log_level or settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
    )


def _require_source(key: str) -> None:
    try:
        SourceRegistry.require(key)
    except SourceNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _records_table(records: list[Record], limit: int) -> Table:
    table = Table(show_header=True, header_style="bold")
    rows = [record.to_json() for record in records[:limit]]
    columns = list(rows[0].keys()) if rows else []
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*(escape(truncate(_cell(row.get(column)), 60)) for column in columns))
    return table


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(v.get("texto", "") if isinstance(v, dict) else str(v) for v in value)
    return str(value)


@app.command()
def sources():
    """List configured sources."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Key")
    table.add_column("Name")
    table.add_column("Mode")
    table.add_column("TTL")
    table.add_column("Snapshot")
    table.add_column("On failure")
    table.add_column("Schedule")

    for s in SourceRegistry.all(active_only=False):
        mode = s.fetch_mode.value
        if s.headless is not None:
            mode += f" ({s.headless.session_mode.value})"
        table.add_row(
            s.key,
            s.name[:40],
            mode,
            str(s.ttl),
            f"{s.snapshot_name}.json",
            s.failure_policy.value,
            s.schedule_cron or "-",
        )

    console.print(table)
    console.print(f"[bold]Total:[/bold] {len(SourceRegistry.keys())} sources")


@app.command()
def show(
    source: str = typer.Option(..., "--source", "-s", help="Source key"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max records to print"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Max seconds to wait"),
):
    """Print a source's records, scraping only if nothing fresh is available.

    Examples:
        taurobot show --source elmuletazo
        taurobot show --source mundotoro --limit 50
    """
    _require_source(source)

    async def run() -> list[Record]:
        async with ScraperService() as service:
            return await service.get_or_refresh(source, timeout=timeout)

    records = asyncio.run(run())
    if not records:
        console.print(f"[yellow]No data for {source} right now[/yellow]")
        raise typer.Exit(0)

    console.print(_records_table(records, limit))
    console.print(f"[bold]{len(records)}[/bold] records ({min(limit, len(records))} shown)")


@app.command()
def refresh(
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Source key"),
    all_sources: bool = typer.Option(False, "--all", help="Refresh every active source"),
):
    """Scrape now, ignoring the cache, and rewrite the snapshot.

    Examples:
        taurobot refresh --source servitoro
        taurobot refresh --all
    """
    if not source and not all_sources:
        console.print("[red]Error:[/red] Must specify --source or --all")
        raise typer.Exit(1)
    if source:
        _require_source(source)

    async def run() -> dict[str, int]:
        counts: dict[str, int] = {}
        async with ScraperService() as service:
            keys = [source] if source else service.keys()
            for key in keys:
                console.print(f"[cyan]{key}[/cyan] refreshing...")
                counts[key] = len(await service.force_refresh(key))
        return counts

    counts = asyncio.run(run())

    table = Table(show_header=True, header_style="bold")
    table.add_column("Source")
    table.add_column("Records", justify="right")
    table.add_column("Status")
    for key, count in counts.items():
        status = "[green]OK[/green]" if count else "[red]NO DATA[/red]"
        table.add_row(key, str(count), status)
    console.print(table)

    if not all(counts.values()):
        raise typer.Exit(1)


@app.command()
def scheduled(
    source: str = typer.Option(..., "--source", "-s", help="Source key"),
):
    """Run a source's scheduled refresh now, honouring its minimum interval."""
    _require_source(source)

    async def run() -> bool:
        async with ScraperService() as service:
            return await service.run_scheduled(source)

    if asyncio.run(run()):
        console.print(f"[green]OK[/green] - {source} refreshed, schedule marker updated")
    else:
        console.print(f"[yellow]SKIPPED[/yellow] - {source} not due or refresh unsuccessful")


@app.command("clear-cache")
def clear_cache(
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Source key (default: all)"),
    refresh_after: bool = typer.Option(False, "--refresh", help="Scrape again right after clearing"),
):
    """Clear in-memory caches, optionally refreshing afterwards."""
    if source:
        _require_source(source)

    async def run() -> list[str]:
        async with ScraperService() as service:
            cleared = service.clear_cache(source)
            if refresh_after:
                for key in cleared:
                    count = len(await service.force_refresh(key))
                    console.print(f"  {key}: {count} records")
            return cleared

    cleared = asyncio.run(run())
    console.print(f"[green]Cache cleared:[/green] {', '.join(cleared)}")


@app.command()
def regional(
    name: str = typer.Argument(..., help="america or sevilla"),
    city: Optional[str] = typer.Option(None, "--city", "-c", help="City filter (america)"),
    upcoming: bool = typer.Option(False, "--upcoming", "-u", help="Only today onwards"),
):
    """Show events from the hand-maintained regional files."""

    async def run() -> tuple[list[str], list[Record] | None]:
        async with ScraperService() as service:
            reader = service.america if name == "america" else service.sevilla
            cities = await reader.cities()
            if city:
                return cities, await reader.events_for_city(city)
            if upcoming:
                return cities, await reader.upcoming()
            return cities, await reader.events()

    if name not in ("america", "sevilla"):
        raise typer.BadParameter("Must be one of: america, sevilla")

    cities, events = asyncio.run(run())
    if cities:
        console.print(f"[bold]Cities:[/bold] {', '.join(cities)}")
    if not events:
        console.print("[yellow]No events found[/yellow]")
        raise typer.Exit(0)
    console.print(_records_table(events, len(events)))


@app.command()
def scheduler():
    """Run the refresh scheduler in the foreground until interrupted."""
    from taurobot.scheduler import RefreshScheduler

    settings = get_settings()
    if not settings.scheduler_enabled:
        console.print("[yellow]Scheduler disabled (SCHEDULER_ENABLED=false)[/yellow]")
        raise typer.Exit(0)

    async def run() -> None:
        async with ScraperService(settings=settings) as service:
            cron = RefreshScheduler(service)
            cron.start()
            for job in cron.status()["jobs"]:
                console.print(f"[cyan]{job['id']}[/cyan] next run: {job['next_run']}")
            try:
                await asyncio.Event().wait()
            finally:
                cron.shutdown()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[yellow]Scheduler stopped[/yellow]")


@app.command()
def version():
    """Show version information."""
    from taurobot import __version__

    console.print("[bold]Taurobot scrapers[/bold]")
    console.print(f"Version: {__version__}")
    console.print(f"Sources: {len(SourceRegistry.keys())}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
