"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.memory_store import InMemoryScheduleStore
from ..config import AppConfig
from ..domain.conflict_validator import ConflictValidator
from ..domain.exceptions import SchedulrError
from ..domain.slot_generator import SlotGenerator
from ..domain.time_arithmetic import DayKey, format_time_12_hour
from ..services.booking import BookingService

app = typer.Typer(
    name="schedulr",
    help="Inspect business hours, open slots and booking conflicts",
    add_completion=False
)

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _build_service(config: AppConfig, data_file: Optional[Path]) -> BookingService:
    """Wire the store, domain components and service from configuration."""
    tz = config.timezone
    source = data_file or config.data_file

    if source is not None:
        store = InMemoryScheduleStore.load_json(source, timezone=tz)
    else:
        store = InMemoryScheduleStore(timezone=tz)

    return BookingService(
        store=store,
        slot_generator=SlotGenerator(increment_minutes=config.slots.increment_minutes, tz=tz),
        conflict_validator=ConflictValidator(policy=config.business_hours_policy, tz=tz),
        timezone=tz,
        include_blocked_time_in_slots=config.slots.include_blocked_time,
        apply_service_padding=config.apply_service_padding,
    )


def _service_from_context(ctx: typer.Context) -> BookingService:
    try:
        config = AppConfig.load_or_default(ctx.obj.get("config_file"))
        _configure_logging(config.log_level)
        return _build_service(config, ctx.obj.get("data_file"))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    data_file: Annotated[Optional[Path], typer.Option("--data", help="JSON file with owners' hours, appointments and blocked time")] = None,
):
    """
    Availability and conflict checks for appointment scheduling.
    """
    ctx.obj = {"config_file": config_file, "data_file": data_file}


@app.command()
def hours(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner (business) id")],
):
    """
    Show an owner's weekly business hours.
    """
    service = _service_from_context(ctx)

    try:
        weekly_hours = asyncio.run(service.get_weekly_hours(owner))
    except SchedulrError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(
        title=f"Business hours for {owner}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Day", style="bold yellow")
    table.add_column("Open")
    table.add_column("From")
    table.add_column("Until")

    for key in DayKey.ordered():
        day = weekly_hours.for_day(key)
        if day.open:
            table.add_row(key.label, "yes", format_time_12_hour(day.start), format_time_12_hour(day.end))
        else:
            table.add_row(key.label, "[dim]closed[/dim]", "", "")

    console.print()
    console.print(table)
    console.print()


@app.command()
def slots(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner (business) id")],
    date: Annotated[str, typer.Option("--date", help="Day to inspect (YYYY-MM-DD)")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Appointment length in minutes")] = None,
    service_id: Annotated[Optional[str], typer.Option("--service", help="Size slots by this service's duration")] = None,
    available_only: Annotated[bool, typer.Option("--available-only", help="Hide slots that cannot be booked")] = False,
):
    """
    List the candidate start times for one day.

    Examples:

        schedulr --data data/sample_schedule.json slots salon-1 --date 2025-01-06 --duration 60

        schedulr --data data/sample_schedule.json slots salon-1 --date 2025-01-06 --service haircut
    """
    if (duration is None) == (service_id is None):
        console.print("[red]Error: pass exactly one of --duration and --service.[/red]")
        raise typer.Exit(1)

    service = _service_from_context(ctx)

    try:
        if service_id is not None:
            availability = asyncio.run(service.get_service_availability(owner, service_id, date))
        else:
            availability = asyncio.run(service.get_availability(owner, date, duration))
    except (SchedulrError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print()
    if not availability.open:
        console.print(f"[yellow]{availability.message} ({availability.day_key.capitalize()} {availability.date}).[/yellow]\n")
        return

    console.print(
        f"[bold cyan]{availability.day_key.capitalize()} {availability.date}[/bold cyan] "
        f"({availability.start} - {availability.end})\n"
    )

    shown = [slot for slot in availability.time_slots if slot.available or not available_only]
    if not shown:
        console.print("[yellow]No slots fit into the business hours of this day.[/yellow]\n")
        return

    for slot in shown:
        style = "green" if slot.available else "dim"
        console.print(f"  [{style}]{slot.format_display()}[/{style}]")

    free = sum(1 for slot in availability.time_slots if slot.available)
    console.print(f"\n[bold]{free}[/bold] of {len(availability.time_slots)} slot(s) available.\n")


@app.command()
def check(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner (business) id")],
    start: Annotated[str, typer.Option("--start", help="Proposed start (ISO-8601)")],
    end: Annotated[str, typer.Option("--end", help="Proposed end (ISO-8601)")],
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Appointment id to ignore, e.g. when rescheduling it")] = None,
):
    """
    Check whether an appointment could be booked, without booking it.
    """
    service = _service_from_context(ctx)

    try:
        result = asyncio.run(service.check_appointment(owner, start, end, exclude_appointment_id=exclude))
    except SchedulrError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print()
    if result.accepted:
        console.print("[bold green]✓ The appointment can be booked.[/bold green]\n")
        return

    console.print(f"[bold red]✗ {result.reason.value}[/bold red] (HTTP {result.http_status}): {result.message}")

    if result.conflicts:
        table = Table(title="Conflicting appointments", show_header=True, header_style="bold cyan")
        table.add_column("Id", style="dim")
        table.add_column("Title", style="bold yellow")
        table.add_column("Start")
        table.add_column("End")
        for conflict in result.conflicts:
            table.add_row(
                conflict.id,
                conflict.title,
                conflict.start_time.format("YYYY-MM-DD HH:mm"),
                conflict.end_time.format("HH:mm"),
            )
        console.print()
        console.print(table)

    console.print()
    raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]schedulr[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
