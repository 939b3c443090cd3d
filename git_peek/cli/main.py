"""Command-line interface for git-peek"""

import dataclasses
import sys
import time
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.live import Live
from rich.prompt import Confirm
from rich.table import Table

from git_peek.cli.args import parse_args
from git_peek.config import load_settings
from git_peek.constants import LEGEND_TEXT
from git_peek.core import GitPeek
from git_peek.exceptions import GitPeekError, RepositoryNotFoundError
from git_peek.formatters import (
    format_branch,
    format_changes,
    format_relative_time,
    format_remote_url,
    format_state_symbol,
)
from git_peek.logging_config import get_logger, setup_logging
from git_peek.models.repository import Repository
from git_peek.services.notifier import ConsoleNotifier
from git_peek.utils.paths import normalize_path
from git_peek.utils.threading import get_threading_info

console = Console()
logger = get_logger(__name__)

# How long a one-shot command waits for background refreshes
BACKGROUND_WAIT_SECONDS = 60.0


def resolve_repository(repositories: List[Repository], query: str) -> Repository:
    """Find a repository by id, path, name or unique id prefix.

    Raises:
        RepositoryNotFoundError: nothing (or more than one repository) matches
    """
    for repository in repositories:
        if repository.id == query:
            return repository

    path = normalize_path(query)
    for repository in repositories:
        if repository.path == path:
            return repository

    for matches in (
        [r for r in repositories if r.name == query],
        [r for r in repositories if r.id.startswith(query)],
    ):
        if len(matches) == 1:
            return matches[0]

    raise RepositoryNotFoundError(query)


def build_table(repositories: List[Repository]) -> Table:
    """Render repositories as a table."""
    table = Table()
    table.add_column("", width=1)
    table.add_column("Name", style="bold")
    table.add_column("Branch")
    table.add_column("Changes")
    table.add_column("Sync")
    table.add_column("Remote")
    table.add_column("Updated")
    table.add_column("Id", style="dim")

    for repository in repositories:
        status = repository.git_status
        row_style = None if status is None or status.is_clean else "yellow"
        sync = "pulling…" if repository.is_pulling else repository.sync_label
        table.add_row(
            format_state_symbol(status),
            repository.name,
            format_branch(repository),
            format_changes(status),
            sync,
            format_remote_url(repository.remote_url),
            format_relative_time(repository.last_fetched_at),
            repository.id[:8],
            style=row_style,
        )
    return table


def show_repositories(app: GitPeek) -> None:
    repositories = app.list_repositories()
    if not repositories:
        console.print("[dim]No repositories tracked yet. Add one with 'git-peek add PATH'.[/dim]")
        return

    summary = app.status_summary()
    console.print(build_table(repositories))
    console.print(
        f"[bold]{summary.title}[/bold] - "
        f"{summary.repositories_with_changes} with changes"
    )
    console.print(f"[dim]{LEGEND_TEXT.strip()}[/dim]")


def run_command(app: GitPeek, args) -> int:
    """Execute the parsed subcommand."""
    if args.command == "list":
        show_repositories(app)
        return 0

    if args.command == "add":
        repository = app.add_repository(args.path)
        console.print(f"[green]Added {repository.name}[/green] ({repository.path})")
        app.store.wait_for_pending(timeout=BACKGROUND_WAIT_SECONDS)
        app.store.save()
        show_repositories(app)
        return 0

    if args.command == "remove":
        repository = resolve_repository(app.list_repositories(), args.repo)
        app.remove_repository(repository.id)
        console.print(f"[green]Removed {repository.name}[/green]")
        return 0

    if args.command == "refresh":
        if args.repo:
            repository = resolve_repository(app.list_repositories(), args.repo)
            if not app.refresh_one(repository.id, should_fetch=args.fetch):
                console.print(f"[red]{app.error_message}[/red]")
        elif args.fetch:
            app.refresh_all()
        else:
            app.store.update_all()
        app.store.wait_for_pending(timeout=BACKGROUND_WAIT_SECONDS)
        app.store.save()
        show_repositories(app)
        return 0

    if args.command == "pull":
        repository = resolve_repository(app.list_repositories(), args.repo)
        with console.status(f"Pulling {repository.name}..."):
            message = app.pull(repository.id)
        if message is None:
            console.print(f"[red]{app.error_message}[/red]")
            return 1
        console.print(message)
        app.store.save()
        return 0

    if args.command == "watch":
        return watch(app)

    if args.command == "clear":
        if not args.yes and not Confirm.ask("Stop tracking all repositories?", console=console):
            console.print("[yellow]Cancelled[/yellow]")
            return 1
        app.store.clear_all()
        console.print("[green]All repositories removed[/green]")
        return 0

    console.print(f"[red]Unknown command: {args.command}[/red]")
    return 2


def watch(app: GitPeek) -> int:
    """Monitor until interrupted, redrawing the table every second."""
    app.start()
    console.print(
        f"[dim]Watching {len(app.store)} repositories every {app.monitor.interval:g}s. "
        "Press Ctrl+C to stop.[/dim]"
    )
    try:
        with Live(build_table(app.list_repositories()), console=console, refresh_per_second=1) as live:
            while True:
                time.sleep(1)
                live.update(build_table(app.list_repositories()))
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped watching[/yellow]")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    settings = load_settings(Path(args.settings) if args.settings else None)

    setup_logging(
        verbose=args.verbose,
        debug=args.debug or settings.debug_logging,
        log_to_file=args.command == "watch",
    )

    if args.debug:
        threading_info = get_threading_info()
        console.print("[yellow]Threading Information:[/yellow]")
        console.print(f"  Python version: {threading_info['python_version']}")
        console.print(f"  Threading mode: {threading_info['mode']}")
        console.print(f"  Optimal workers: {threading_info['optimal_workers']}")
        console.print("[yellow]Settings:[/yellow]")
        for key, value in settings.to_dict().items():
            console.print(f"  {key}: {value}")

    notifier = None
    interval = None
    if args.command == "watch":
        if not args.no_notify:
            settings = dataclasses.replace(settings, show_notifications=True)
            notifier = ConsoleNotifier(console)
        interval = args.interval

    app = None
    try:
        app = GitPeek(
            settings=settings,
            storage_path=Path(args.storage) if args.storage else None,
            notifier=notifier,
            interval=interval,
        )
        return run_command(app, args)
    except GitPeekError as e:
        console.print(f"[red]Error: {e}[/red]")
        if e.reason:
            console.print(f"[dim]{e.reason}[/dim]")
        return 1
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    finally:
        if app is not None:
            app.close()


if __name__ == "__main__":
    sys.exit(main())
