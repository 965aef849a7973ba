"""calstore CLI commands for inspecting and maintaining the event store."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from calstore.logging_config import setup_logging
from calstore.modules.calendar.errors import StorageError
from calstore.modules.calendar.models import CalendarEvent, Category, Priority
from calstore.modules.calendar.repository import CalendarRepository

app = typer.Typer(help="calstore calendar event store CLI", no_args_is_help=True)
console = Console()

DbOption = typer.Option(None, "--db", help="Database file (defaults to DATABASE_PATH)")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override CALSTORE_LOG_LEVEL"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines"),
) -> None:
    """calstore calendar event store CLI."""
    setup_logging(log_level, json_logs=json_logs or None)


def _with_repository(db: Optional[str], action: Callable[[CalendarRepository], Awaitable[Any]]) -> Any:
    """Open the repository, run ``action`` against it, and close it again."""

    async def _run() -> Any:
        async with CalendarRepository(db) as repo:
            return await action(repo)

    try:
        return asyncio.run(_run())
    except StorageError as exc:
        console.print(f"[red]✗ {exc}[/red]")
        raise typer.Exit(code=1)


def _events_table(title: str, events: list[CalendarEvent]) -> Table:
    table = Table(title=title)
    table.add_column("Date", style="cyan")
    table.add_column("Time", style="green")
    table.add_column("Event", style="white")
    table.add_column("Category", style="yellow")
    table.add_column("Priority", style="magenta")
    table.add_column("ID", style="dim")
    for event in events:
        window = event.time or "all day"
        if event.time and event.end_time:
            window = f"{event.time}–{event.end_time}"
        table.add_row(
            event.date,
            window,
            event.event + (" ↻" if event.is_recurring else ""),
            event.category.display_name,
            f"{event.priority.emoji} {event.priority.value}",
            event.id,
        )
    return table


@app.command()
def init(db: Optional[str] = DbOption) -> None:
    """Create or upgrade the database schema."""
    version = _with_repository(db, lambda repo: repo.schema_version())
    console.print(f"[green]✓[/green] Schema ready (version {version})")


@app.command()
def add(
    title: str = typer.Argument(..., help="Event title"),
    date: str = typer.Option(..., "--date", "-d", help="YYYY-MM-DD"),
    time: Optional[str] = typer.Option(None, "--time", "-t", help="Start time HH:MM"),
    end_time: Optional[str] = typer.Option(None, "--end", "-e", help="End time HH:MM"),
    category: Category = typer.Option(Category.OTHER, "--category", "-c"),
    priority: Priority = typer.Option(Priority.MEDIUM, "--priority", "-p"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    db: Optional[str] = DbOption,
) -> None:
    """Add a one-off event and report any overlapping events."""
    try:
        event = CalendarEvent(
            event=title,
            date=date,
            time=time,
            end_time=end_time,
            category=category,
            priority=priority,
            notes=notes,
        )
    except ValidationError as exc:
        for error in exc.errors():
            console.print(f"[red]✗ {error['msg']}[/red]")
        raise typer.Exit(code=1)

    async def _add(repo: CalendarRepository) -> list[str]:
        conflicts = await repo.check_conflicts(event)
        await repo.save_event(event)
        return conflicts

    conflicts = _with_repository(db, _add)
    console.print(f"[green]✓[/green] Saved {event.event!r} ({event.id})")
    for other_id in conflicts:
        console.print(f"  [yellow]⚠[/yellow] Overlaps with {other_id}")


@app.command()
def agenda(
    start: str = typer.Argument(..., help="First day, YYYY-MM-DD"),
    end: str = typer.Argument(..., help="Last day, YYYY-MM-DD (inclusive)"),
    db: Optional[str] = DbOption,
) -> None:
    """List events in a date range with recurring series expanded."""
    try:
        events = _with_repository(db, lambda repo: repo.get_by_date_range(start, end))
    except ValueError as exc:
        console.print(f"[red]✗ {exc}[/red]")
        raise typer.Exit(code=1)

    if not events:
        console.print("[yellow]No events in range.[/yellow]")
        return
    console.print(_events_table(f"Agenda {start} → {end}", events))


@app.command()
def today(db: Optional[str] = DbOption) -> None:
    """List today's events."""
    events = _with_repository(db, lambda repo: repo.get_today_events())
    if not events:
        console.print("[yellow]Nothing scheduled today.[/yellow]")
        return
    console.print(_events_table("Today", events))


@app.command()
def show(event_id: str = typer.Argument(...), db: Optional[str] = DbOption) -> None:
    """Show one stored event as JSON."""
    event = _with_repository(db, lambda repo: repo.get_by_id(event_id))
    if event is None:
        console.print(f"[red]✗ No event with id {event_id}[/red]")
        raise typer.Exit(code=1)
    console.print_json(data=event.to_wire())


@app.command()
def delete(event_id: str = typer.Argument(...), db: Optional[str] = DbOption) -> None:
    """Delete an event (the whole series for recurring events)."""
    deleted = _with_repository(db, lambda repo: repo.delete_event(event_id))
    if deleted:
        console.print(f"[green]✓[/green] Deleted {event_id}")
    else:
        console.print(f"[yellow]No event with id {event_id}[/yellow]")


@app.command()
def count(db: Optional[str] = DbOption) -> None:
    """Count stored base events."""
    total = _with_repository(db, lambda repo: repo.count())
    console.print(f"{total} event(s)")
