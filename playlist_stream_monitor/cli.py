"""Command-line interface for Playlist Stream Monitor."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config.settings import Settings
from .config.storage import MonitorStore
from .core.monitor import render_record
from .core.playlists import PlaylistRegistry, normalize_url
from .core.report import combine
from .core.schedules import ScheduleManager
from .errors import MonitorError, PlaylistValidationError
from .models.playlist import extract_playlist_id
from .models.schedule import Schedule
from .utils.dates import previous_day_iso, today_iso
from .utils.logger import setup_logger
from .utils.platform import get_config_dir

app = typer.Typer(help="Daily stream report for artist.tools playlists")
console = Console()

CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to configuration file")
USER_OPTION = typer.Option(..., "--user", "-u", help="User whose playlists to use")


def get_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from file or defaults."""
    return Settings.from_file_or_default(config_path)


def get_logger(settings: Settings) -> logging.Logger:
    """Console-only logger for manual commands."""
    return setup_logger(log_file=None, level=settings.logging.level, console=True)


def get_store(settings: Settings, logger: logging.Logger) -> MonitorStore:
    """Get the configured monitor store."""
    # Import here to avoid circular dependency
    from .service import build_monitor_store

    try:
        return build_monitor_store(settings, logger)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def start(
    config: Optional[Path] = CONFIG_OPTION,
    run_now: bool = typer.Option(
        False,
        "--run-now",
        help="Also run every user's report immediately"
    )
):
    """Start the scheduling service."""
    console.print("[cyan]Starting Playlist Stream Monitor service...[/cyan]")

    from .service import PlaylistReportService

    try:
        service = PlaylistReportService(config_path=config)
        service.start(run_now=run_now)
    except KeyboardInterrupt:
        console.print("\n[yellow]Service stopped by user[/yellow]")
    except Exception as e:
        console.print(f"[red]Service error: {e}[/red]")
        raise typer.Exit(1)


@app.command(name="add-playlist")
def add_playlist(
    url: str = typer.Argument(..., help="artist.tools or Spotify playlist URL"),
    user: str = USER_OPTION,
    config: Optional[Path] = CONFIG_OPTION
):
    """Add a playlist to a user's list."""
    settings = get_settings(config)
    logger = get_logger(settings)
    registry = PlaylistRegistry(get_store(settings, logger), logger)

    try:
        count = registry.add(user, url)
    except PlaylistValidationError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1)
    except MonitorError as e:
        console.print(f"[red]Failed to add playlist: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Playlist added: {url.strip()}[/green]")
    console.print(f"Playlists in list: {count}")


@app.command(name="remove-playlist")
def remove_playlist(
    url: str = typer.Argument(..., help="Playlist URL to remove"),
    user: str = USER_OPTION,
    config: Optional[Path] = CONFIG_OPTION
):
    """Remove a playlist from a user's list."""
    settings = get_settings(config)
    logger = get_logger(settings)
    registry = PlaylistRegistry(get_store(settings, logger), logger)

    try:
        remaining = registry.remove(user, url)
    except PlaylistValidationError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1)
    except MonitorError as e:
        console.print(f"[red]Failed to remove playlist: {e}[/red]")
        raise typer.Exit(1)

    console.print("[green]Playlist removed[/green]")
    console.print(f"Playlists remaining: {remaining}")


@app.command(name="list-playlists")
def list_playlists(
    user: str = USER_OPTION,
    config: Optional[Path] = CONFIG_OPTION
):
    """List a user's monitored playlists."""
    settings = get_settings(config)
    logger = get_logger(settings)
    registry = PlaylistRegistry(get_store(settings, logger), logger)

    try:
        urls = registry.list_urls(user)
    except MonitorError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not urls:
        console.print("[yellow]No playlists being monitored[/yellow]")
        console.print("\nUse 'add-playlist' command to add playlists")
        return

    table = Table(title=f"Monitored Playlists ({user})")
    table.add_column("#", justify="right")
    table.add_column("ID", style="cyan")
    table.add_column("URL", style="green")
    table.add_column("Scraped as")

    for index, url in enumerate(urls, start=1):
        scraped = normalize_url(url)
        table.add_row(
            str(index),
            extract_playlist_id(url),
            url,
            "" if scraped == url else scraped
        )

    console.print(table)


@app.command(name="check-now")
def check_now(
    user: str = USER_OPTION,
    target: Optional[str] = typer.Option(
        None,
        "--target",
        "-t",
        help="Chat to deliver to (defaults to the user)"
    ),
    config: Optional[Path] = CONFIG_OPTION
):
    """Run the report for a user right away."""
    console.print(f"[cyan]Checking playlists of {user}...[/cyan]")

    from .service import build_monitor

    settings = get_settings(config)
    logger = get_logger(settings)

    try:
        monitor = build_monitor(settings, logger)
        result = monitor.run(user, target)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except MonitorError as e:
        console.print(f"[red]Check failed: {e}[/red]")
        raise typer.Exit(1)

    if result.record is None:
        console.print("[yellow]No playlists to check[/yellow]")
        return

    total = len(result.record.playlists)
    console.print(
        f"[green]Checked {total} playlist(s): {total - result.error_count} ok, "
        f"{result.error_count} failed, {len(result.chunks)} message(s) sent[/green]"
    )
    if not result.persisted:
        console.print("[yellow]Warning: today's snapshot could not be saved[/yellow]")


@app.command(name="show-report")
def show_report(
    user: str = USER_OPTION,
    date: Optional[str] = typer.Option(
        None,
        "--date",
        "-d",
        help="Day to show (YYYY-MM-DD, default today)"
    ),
    config: Optional[Path] = CONFIG_OPTION
):
    """Show the report of a stored day without scraping again."""
    settings = get_settings(config)
    logger = get_logger(settings)
    store = get_store(settings, logger)
    day = date or today_iso()

    try:
        record = store.load_day_record(user, day)
        if record is None:
            console.print(f"[yellow]No record stored for {user} on {day}[/yellow]")
            raise typer.Exit(1)
        previous = store.load_day_record(user, previous_day_iso(day))
    except ValueError as e:
        console.print(f"[red]Invalid date {day!r}: {e}[/red]")
        raise typer.Exit(1)
    except MonitorError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    reports, summary = render_record(record, previous)
    console.print(combine(reports, summary), markup=False, highlight=False)


def get_schedules(settings: Settings, logger: logging.Logger) -> ScheduleManager:
    return ScheduleManager(get_store(settings, logger), logger, settings.scheduler.run_time)


def describe_schedule(user: str, schedule: Schedule) -> str:
    state = "enabled" if schedule.enabled else "disabled"
    return f"Schedule for {user}: {schedule.time} ({state})"


@app.command(name="set-schedule")
def set_schedule(
    run_time: str = typer.Argument(..., metavar="HH:MM", help="Daily run time, 24h"),
    user: str = USER_OPTION,
    config: Optional[Path] = CONFIG_OPTION
):
    """Set the time of a user's daily report and enable it."""
    settings = get_settings(config)
    logger = get_logger(settings)
    schedules = get_schedules(settings, logger)

    try:
        schedule = schedules.set_time(user, run_time)
    except PlaylistValidationError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1)
    except MonitorError as e:
        console.print(f"[red]Failed to save schedule: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]{describe_schedule(user, schedule)}[/green]")
    console.print(
        f"A running service picks this up within {settings.scheduler.refresh_minutes} minutes"
    )


@app.command(name="show-schedule")
def show_schedule(
    user: str = USER_OPTION,
    config: Optional[Path] = CONFIG_OPTION
):
    """Show when a user's daily report runs."""
    settings = get_settings(config)
    logger = get_logger(settings)

    try:
        schedule = get_schedules(settings, logger).get(user)
    except MonitorError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(describe_schedule(user, schedule))


@app.command(name="disable-schedule")
def disable_schedule(
    user: str = USER_OPTION,
    config: Optional[Path] = CONFIG_OPTION
):
    """Stop a user's daily report, keeping its time."""
    settings = get_settings(config)
    logger = get_logger(settings)

    try:
        schedule = get_schedules(settings, logger).disable(user)
    except MonitorError as e:
        console.print(f"[red]Failed to save schedule: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[yellow]{describe_schedule(user, schedule)}[/yellow]")
    console.print("Use 'set-schedule' to enable it again")


@app.command()
def init_config(
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output path for config file"
    )
):
    """Initialize a configuration file with defaults."""
    if output is None:
        output = get_config_dir() / 'config.yaml'

    if output.exists():
        overwrite = typer.confirm(
            f"Config file already exists at {output}. Overwrite?",
            default=False
        )
        if not overwrite:
            console.print("[yellow]Cancelled[/yellow]")
            return

    settings = Settings()
    settings.save(output)

    console.print(f"[green]Configuration file created: {output}[/green]")
    console.print("\nAdd your users under 'scheduler.users' and set TELEGRAM_BOT_TOKEN")


if __name__ == "__main__":
    app()
