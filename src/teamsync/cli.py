#!/usr/bin/env python3
"""
Command-line interface for teamsync.

This module provides the commands that check a Git working copy before a
commit, push or update, list the files each action would touch, and run the
action when nothing blocks it.
"""

import sys
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from .core.availability import PLACEHOLDER_MESSAGES, Placeholder
from .core.config import load_settings
from .core.conflicts import ConflictReport
from .core.errors import TeamError
from .core.git_handler import GitRepository
from .core.query import FileFilter
from .core.session import SessionState, TeamController, TeamSession
from .core.status import FileStatus, FileStatusRecord, Perspective
from .utils.logger import get_logger, setup_logging
from .utils.path import normalize_path

# Rich console for formatted output
console = Console()

logger = get_logger(__name__)

STATUS_COLORS = {
    FileStatus.NEEDS_ADD: "green",
    FileStatus.DELETED: "red",
    FileStatus.MODIFIED: "yellow",
    FileStatus.NEEDS_CHECKOUT: "green",
    FileStatus.NEEDS_UPDATE: "yellow",
    FileStatus.REMOVED: "red",
    FileStatus.NEEDS_MERGE: "magenta",
    FileStatus.CONFLICT_LDRM: "red bold",
}


def create_controller(ctx) -> TeamController:
    """Open the repository and settings named on the command line."""
    repo_path: Path = ctx.obj['repo_path']
    try:
        settings = load_settings(ctx.obj['config'], repo_path=repo_path)
        repository = GitRepository(repo_path, settings.remote, settings.layout_matcher())
    except TeamError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    return TeamController(repository, settings, persist_preferences=ctx.obj['save_preferences'])


def wait_for(session: TeamSession, description: str) -> SessionState:
    """Wait for the session's background work with a spinner."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True
    ) as progress:
        progress.add_task(description, total=None)
        state = session.wait()

    if state is SessionState.FAILED:
        message = session.error.message if session.error else "unknown error"
        console.print(f"[red]✗ {message}[/red]")
        sys.exit(1)
    if state is SessionState.BLOCKED:
        print_report(session.report)
        sys.exit(1)
    return state


def print_report(report: ConflictReport) -> None:
    """Show a conflict report as a panel."""
    body = report.message
    if report.lines():
        body += "\n\n" + "\n".join(f"  {line}" for line in report.lines())
    console.print(Panel(body, title=f"[red]{report.category.value}[/red]", border_style="red"))


def print_placeholder(placeholder: Placeholder) -> None:
    if placeholder is not Placeholder.NONE:
        console.print(f"[dim]{PLACEHOLDER_MESSAGES[placeholder]}[/dim]")


def format_file_table(
    title: str,
    files: Iterable[Path],
    records: Dict[Path, FileStatusRecord],
    perspective: Perspective,
    forced: Iterable[Path] = ()
) -> Table:
    """Format files with their status as a rich table."""
    forced = set(forced)
    table = Table(title=title, show_header=True, header_style="bold blue")
    table.add_column("File", style="cyan")
    table.add_column("Status", style="yellow")

    for path in sorted(files, key=str):
        record = records.get(path)
        status = record.status(perspective) if record else FileStatus.MODIFIED
        color = STATUS_COLORS.get(status, "white")
        status_text = f"[{color}]{status.value}[/]"
        if path in forced:
            status_text += " [dim](forced)[/dim]"
        table.add_row(str(path), status_text)

    return table


def make_file_filter(repo_path: Path, paths: Tuple[Path, ...]) -> Optional[FileFilter]:
    """Limit a status query to files at or below the given paths."""
    if not paths:
        return None
    prefixes = [normalize_path(path.resolve(), repo_path) for path in paths]

    def accept(path: Path) -> bool:
        return any(path == prefix or prefix in path.parents for prefix in prefixes)

    return accept


def records_by_path(session: TeamSession) -> Dict[Path, FileStatusRecord]:
    return {record.path: record for record in session.records}


# Main CLI group
@click.group()
@click.option('--repo-path', type=click.Path(path_type=Path),
              default=Path.cwd(),
              help='Path to the Git working copy')
@click.option('--config', 'config_path', type=click.Path(path_type=Path),
              help='Settings file (YAML, TOML or JSON)')
@click.option('--save-preferences', is_flag=True,
              help='Remember --include-layout choices in the settings file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-file', type=click.Path(path_type=Path), help='Log file path')
@click.pass_context
def cli(ctx, repo_path: Path, config_path: Optional[Path], save_preferences: bool,
        verbose: bool, log_file: Optional[Path]):
    """teamsync - Check a working copy before commit, push and update."""
    ctx.ensure_object(dict)

    # Setup logging
    setup_logging(
        level='DEBUG' if verbose else 'WARNING',
        log_file=log_file,
        verbose=verbose
    )

    # Store common options in context
    ctx.obj['repo_path'] = repo_path.resolve()
    ctx.obj['config'] = config_path
    ctx.obj['save_preferences'] = save_preferences
    ctx.obj['verbose'] = verbose


# Status command
@cli.command()
@click.argument('paths', nargs=-1, type=click.Path(path_type=Path))
@click.option('--include-layout/--no-include-layout', default=None,
              help='List changed layout files for commit')
@click.pass_context
def status(ctx, paths: Tuple[Path, ...], include_layout: Optional[bool]):
    """Show what would be committed and pushed."""
    controller = create_controller(ctx)
    try:
        session = controller.open_commit_push(
            file_filter=make_file_filter(ctx.obj['repo_path'], paths), include_layout=include_layout
        )
        wait_for(session, "Checking status...")

        records = records_by_path(session)
        availability = session.availability

        if availability.commit_files:
            console.print(format_file_table(
                "Files to commit", availability.commit_files, records, Perspective.LOCAL
            ))
        print_placeholder(availability.commit_placeholder)

        if availability.push_files:
            console.print(format_file_table(
                "Files to push", availability.push_files, records, Perspective.REMOTE
            ))
        print_placeholder(availability.push_placeholder)

        if availability.layout_toggle_enabled and not session.include_layout:
            console.print(f"[dim]{len(session.layout_files)} layout file(s) changed; "
                          f"use --include-layout to commit them[/dim]")
    except TeamError as e:
        console.print(f"[red]Failed to check status: {e}[/red]")
        sys.exit(1)
    finally:
        controller.shutdown()


# Commit command
@cli.command()
@click.argument('paths', nargs=-1, type=click.Path(path_type=Path))
@click.option('--message', '-m', required=True, help='Commit message')
@click.option('--include-layout/--no-include-layout', default=None,
              help='Commit changed layout files too')
@click.option('--push', 'push_after', is_flag=True, help='Push after committing')
@click.pass_context
def commit(ctx, paths: Tuple[Path, ...], message: str, include_layout: Optional[bool], push_after: bool):
    """Commit local changes."""
    controller = create_controller(ctx)
    try:
        session = controller.open_commit_push(
            file_filter=make_file_filter(ctx.obj['repo_path'], paths), include_layout=include_layout
        )
        wait_for(session, "Checking status...")
        if include_layout is not None:
            controller.toggle_layout(include_layout)

        if not session.availability.commit_enabled:
            print_placeholder(session.availability.commit_placeholder)
        else:
            files = len(session.availability.commit_files)
            session.commit(message)
            wait_for(session, f"Committing {files} file(s)...")
            console.print(f"[green]✓ Committed {files} file(s)[/green]")

        if push_after:
            run_push(controller)
    except TeamError as e:
        console.print(f"[red]Failed to commit: {e}[/red]")
        sys.exit(1)
    finally:
        controller.shutdown()


def run_push(controller: TeamController) -> None:
    session = controller.open_commit_push()
    wait_for(session, "Checking status...")

    availability = session.availability
    if not availability.push_enabled:
        print_placeholder(availability.push_placeholder)
        return

    session.push()
    wait_for(session, "Pushing...")
    console.print(f"[green]✓ Pushed {len(availability.push_files)} file(s)[/green]")


# Push command
@cli.command()
@click.pass_context
def push(ctx):
    """Push committed changes to the remote."""
    controller = create_controller(ctx)
    try:
        run_push(controller)
    except TeamError as e:
        console.print(f"[red]Failed to push: {e}[/red]")
        sys.exit(1)
    finally:
        controller.shutdown()


# Update command
@cli.command()
@click.argument('paths', nargs=-1, type=click.Path(path_type=Path))
@click.option('--include-layout/--no-include-layout', default=None,
              help='Update changed layout files too')
@click.option('--dry-run', is_flag=True, help='List the files without updating')
@click.pass_context
def update(ctx, paths: Tuple[Path, ...], include_layout: Optional[bool], dry_run: bool):
    """Update the working copy from the remote."""
    controller = create_controller(ctx)
    try:
        session = controller.open_update(
            file_filter=make_file_filter(ctx.obj['repo_path'], paths), include_layout=include_layout
        )
        wait_for(session, "Checking for updates...")
        if include_layout is not None:
            controller.toggle_layout(include_layout)

        availability = session.availability
        records = records_by_path(session)
        listed = availability.files_to_update | availability.forced_files
        if listed:
            console.print(format_file_table(
                "Files to update", listed, records, Perspective.REMOTE, availability.forced_files
            ))
        print_placeholder(availability.placeholder)

        if dry_run or not availability.enabled:
            return

        session.update()
        wait_for(session, "Updating...")
        console.print(f"[green]✓ Updated {len(listed)} file(s)[/green]")
    except TeamError as e:
        console.print(f"[red]Failed to update: {e}[/red]")
        sys.exit(1)
    finally:
        controller.shutdown()


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        console.print(f"\n[red]Unexpected error: {e}[/red]")
        sys.exit(1)


if __name__ == '__main__':
    main()
