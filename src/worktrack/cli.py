"""Command-line interface for worktrack."""

import asyncio
import datetime
import signal
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from worktrack.activity import (
    ActivityLog,
    DaySummary,
    MonthSummary,
    format_hours,
    months_to_report,
    summarize_day,
    summarize_month,
)
from worktrack.exceptions import ConfigError
from worktrack.extraction import discover_repositories, resolve_repositories
from worktrack.log import configure_logging
from worktrack.models import RepositoryConfig, Settings, TrackerConfig
from worktrack.tracking import (
    PeriodicScheduler,
    RepositoryStateStore,
    TickResult,
    TimeAttributionEngine,
    build_task_url,
)

app = typer.Typer(
    name="worktrack",
    help="Infer time spent on tasks from activity in local git repositories",
    add_completion=False,
)
console = Console()


def _load(config_file: Optional[Path]) -> tuple[Settings, TrackerConfig]:
    settings = Settings()
    configure_logging(settings.log_level)
    config = TrackerConfig.load(config_file or settings.resolved_config_file)
    return settings, config


def _build_engine(settings: Settings, config: TrackerConfig) -> TimeAttributionEngine:
    resolved = resolve_repositories(config)
    for error in resolved.errors:
        console.print(f"[yellow]Skipping repository:[/yellow] {error}")
    if not resolved.repositories:
        raise ConfigError("No valid repositories to track")

    return TimeAttributionEngine(
        config=config,
        state_store=RepositoryStateStore(settings.resolved_state_file),
        activity_log=ActivityLog(settings.resolved_activity_log_file),
        repositories=resolved.repositories,
        max_concurrency=settings.max_concurrency,
        tick_timeout=settings.tick_timeout_seconds,
    )


def _print_tick(result: TickResult) -> None:
    if result.timed_out:
        console.print("[bold red]Tick timed out;[/bold red] nothing was written")
        return

    for decision in result.decisions:
        if decision.should_log:
            console.print(
                f"[green]Logged {decision.hours:.2f} hours[/green] for [cyan]{decision.task_id}[/cyan] "
                f"[dim]({decision.repo_path}, {decision.branch})[/dim]"
            )
        elif decision.first_sight:
            console.print(
                f"[blue]Initial state captured[/blue] for [cyan]{decision.branch}[/cyan] "
                f"[dim]({decision.repo_path})[/dim]. No time logged on first sight."
            )
        elif decision.changed:
            console.print(
                f"[yellow]Changes detected[/yellow] in [cyan]{decision.repo_path}[/cyan] "
                f"on {decision.branch}, but the tracking interval has not passed."
            )
        else:
            console.print(f"[dim]No new changes in {decision.repo_path} on {decision.branch}.[/dim]")

    for repo_path, error in result.errors.items():
        console.print(f"[red]Skipped {repo_path}:[/red] {error}")
    for error in result.persistence_errors:
        console.print(f"[bold red]Write failed:[/bold red] {error}")


def _print_day(summary: DaySummary, task_tracking_url: Optional[str]) -> None:
    console.print(f"\n[bold blue]Summary for {summary.date:%A, %B %d, %Y}[/bold blue]")
    if not summary.task_hours:
        console.print("[yellow]No time logged yet today.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Task", style="cyan")
    table.add_column("Hours", justify="right", style="yellow")
    table.add_column("Link", style="dim")
    for task_id, hours in summary.task_hours:
        table.add_row(task_id, f"{hours:.2f}", build_task_url(task_id, task_tracking_url) or "")
    table.add_row("[bold]Total[/bold]", f"[bold]{summary.total_hours:.2f}[/bold]", "")
    console.print(table)


def _print_month(summary: MonthSummary) -> None:
    title = summary.name + (" (Previous Month)" if summary.is_previous else "")
    console.print(f"\n[bold green]{title}[/bold green]")
    if not summary.weeks:
        console.print("  [yellow]No entries found for this month.[/yellow]")
        return

    for week in summary.weeks:
        console.print(
            f"\n  [magenta bold]{week.start:%b %d} - {week.end:%b %d} (Week {week.week_number}): "
            f"[yellow]{format_hours(week.total_hours)}[/yellow][/magenta bold]"
        )
        for task_id, hours in week.task_hours:
            console.print(f"    • [cyan]{task_id}[/cyan]: {format_hours(hours)}")

        console.print("\n    [blue]Daily Details:[/blue]")
        for day in week.days:
            tasks = ", ".join(f"{task_id} {format_hours(hours)}" for task_id, hours in day.task_hours)
            console.print(f"      {day.date:%a %b %d}: [yellow]{format_hours(day.total_hours)}[/yellow] [dim]({tasks})[/dim]")

    console.print(f"\n  [bold]Total:[/bold] {format_hours(summary.total_hours)}")


@app.command()
def run(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Watch repositories and log time until interrupted."""
    try:
        settings, config = _load(config_file)
        engine = _build_engine(settings, config)
        activity_log = engine.activity_log

        console.print(
            f"[bold green]Tracking {len(engine.repositories)} repositories[/bold green] "
            f"every {config.tracking_interval_minutes:g} minutes"
        )

        async def tick() -> None:
            result = await engine.run_tick()
            _print_tick(result)
            if result.log_saved:
                _print_day(
                    summarize_day(activity_log.read_entries(), engine.clock().date()),
                    config.task_tracking_url,
                )

        async def main() -> None:
            scheduler = PeriodicScheduler(config.tracking_interval_minutes * 60, tick)
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, scheduler.stop)
                except NotImplementedError:
                    # add_signal_handler is unavailable on Windows event loops
                    pass
            await scheduler.run()

        asyncio.run(main())
        console.print("[bold]Stopped.[/bold]")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def check(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Check every repository once and log time if due."""
    try:
        settings, config = _load(config_file)
        engine = _build_engine(settings, config)
        result = asyncio.run(engine.run_tick())
        _print_tick(result)

        if result.timed_out or result.persistence_errors:
            raise typer.Exit(1)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def status(
    repo_path: Optional[str] = typer.Argument(None, help="Only show this repository path"),
) -> None:
    """Show the stored state of every tracked branch."""
    try:
        settings = Settings()
        store = RepositoryStateStore(settings.resolved_state_file)
        store.load()

        repositories = [repo_path] if repo_path else store.list_repositories()
        if not any(store.list_branches(repo) for repo in repositories):
            console.print("[yellow]No tracked branches yet.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Repository", style="green")
        table.add_column("Branch", style="cyan", no_wrap=True)
        table.add_column("Head", width=10)
        table.add_column("Ahead", justify="right", style="yellow")
        table.add_column("Uncommitted files", justify="right")
        table.add_column("Last logged", style="blue")

        for repo in repositories:
            for branch in store.list_branches(repo):
                state = store.get_branch_state(repo, branch)
                last_logged = (
                    datetime.datetime.fromtimestamp(state.last_log_timestamp / 1000).strftime("%Y-%m-%d %H:%M")
                    if state.last_log_timestamp
                    else "never"
                )
                table.add_row(
                    repo,
                    branch,
                    (state.head_commit_hash or "-")[:8],
                    str(state.commits_ahead_count),
                    "error" if state.status_failed else str(len(state.working_tree_diff_stats or {})),
                    last_logged,
                )

        console.print(table)

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def today(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Show hours logged today per task."""
    try:
        settings = Settings()
        task_tracking_url = _task_tracking_url(settings, config_file)
        entries = ActivityLog(settings.resolved_activity_log_file).read_entries()
        _print_day(summarize_day(entries, datetime.date.today()), task_tracking_url)

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def summary() -> None:
    """Show this month's hours by week, task and day."""
    try:
        settings = Settings()
        entries = ActivityLog(settings.resolved_activity_log_file).read_entries()
        if not entries:
            console.print("[yellow]No entries found in the log file.[/yellow]")
            return

        console.print("[cyan bold]MONTHLY TIME SUMMARY[/cyan bold]")
        for year, month, is_previous in months_to_report(datetime.date.today()):
            _print_month(summarize_month(entries, year, month, is_previous=is_previous))

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def discover(
    folder: Path = typer.Argument(..., help="Folder containing git repositories"),
) -> None:
    """List the repositories that auto-discovery would track in a folder."""
    try:
        repositories: List[RepositoryConfig] = discover_repositories(folder)
        if not repositories:
            console.print(f"[yellow]No git repositories found in {folder}[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Path", style="green")
        table.add_column("Main branch", style="cyan")
        for repository in repositories:
            table.add_row(str(repository.path), repository.main_branch)
        console.print(table)

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from worktrack import __version__

    console.print(f"[bold]worktrack[/bold] version {__version__}")


def _task_tracking_url(settings: Settings, config_file: Optional[Path]) -> Optional[str]:
    path = config_file or settings.resolved_config_file
    if not path.exists():
        return None
    return TrackerConfig.load(path).task_tracking_url


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
