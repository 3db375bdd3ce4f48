"""
FILE: nextup/cli/main.py
PURPOSE: Typer-based CLI for one-shot task management commands
EXPORTS:
  - app (Typer application)
  - project_app, label_app (sub-command groups)
  - console, error_console (rich consoles)
  - current_user() -> str
  - open_store() -> SqliteTaskStore
  - print_tasks(tasks, ...) - shared list rendering
  - main() (entry point)
DEPENDENCIES:
  - typer (CLI framework)
  - rich (formatted output)
  - nextup.core.repository (store)
  - nextup.logging_setup (logging configuration)
  - nextup.repl (interactive mode)
NOTES:
  - All listing and mutating commands support --json and --raw flags
  - Error messages go to stderr
  - Exit codes: 0=success, 1=error
  - Global --user/-u selects the owner; default comes from NEXTUP_USER or the OS login
"""

import sys
from typing import Optional, Sequence

# Fix Windows console encoding for Unicode characters
if sys.platform == "win32":
    import io
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8")
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8")

import typer
from rich.console import Console

from .. import __version__, config
from ..core import repository
from ..core.models import TaskView
from ..formatting import TaskFormatter
from ..utils import local_today
from ..logging_setup import setup_logging

# Typer app setup
app = typer.Typer(
    name="nextup",
    help="Terminal task manager: Inbox, Next, Someday and Upcoming",
    add_completion=False,
)

project_app = typer.Typer(name="project", help="Project management commands")
app.add_typer(project_app, name="project")

label_app = typer.Typer(name="label", help="Label management commands")
app.add_typer(label_app, name="label")

# Rich console for formatted output
console = Console()
error_console = Console(stderr=True)

# Per-invocation settings filled in by the callback
state = {"user": None}
_logging_configured = False


def current_user() -> str:
    return state["user"] or config.default_owner()


def open_store() -> repository.SqliteTaskStore:
    return repository.get_store()


def print_tasks(
    tasks: Sequence[TaskView],
    title: str,
    json_output: bool = False,
    raw: bool = False,
    total_count: Optional[int] = None,
    show_list: bool = True,
    show_completed: bool = False,
    empty_message: str = "No tasks found",
    empty_hint: Optional[str] = None,
) -> None:
    """Render a task list in the requested output mode."""
    total = len(tasks) if total_count is None else total_count
    if json_output:
        typer.echo(TaskFormatter.to_json_array(tasks))
        return
    if raw:
        for line in TaskFormatter.to_raw_lines(tasks):
            typer.echo(line)
        return

    if not tasks:
        console.print(f"[dim]{empty_message}[/dim]")
        if empty_hint:
            console.print(f"[dim]{empty_hint}[/dim]")
        return

    console.print(
        TaskFormatter.create_table(
            tasks, title=title, today=local_today(), show_list=show_list, show_completed=show_completed
        )
    )
    console.print(f"\n[dim]Total: {total} task(s)[/dim]")


@app.callback(invoke_without_command=True)
def default_command(
    ctx: typer.Context,
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Owner whose tasks to use"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs on stderr"),
):
    """
    Default callback - sets the owner, configures logging, and launches the
    REPL when no command is specified.
    """
    global _logging_configured
    state["user"] = user
    if not _logging_configured or verbose:
        setup_logging(console_level="DEBUG" if verbose else config.LOG_LEVEL, log_file=config.LOG_FILE)
        _logging_configured = True

    if ctx.invoked_subcommand is None:
        # No command specified, launch REPL
        from ..repl import main as repl_main
        try:
            repl_main(current_user())
        except Exception as e:
            error_console.print(f"[red]Error starting REPL:[/red] {e}")
            raise typer.Exit(1)


# Import command modules to register commands with app
from .commands import (  # noqa: E402,F401
    # System commands
    version,
    repl,
    # Task commands
    add,
    edit,
    show,
    rm,
    mv,
    due,
    # Workflow commands
    ls,
    inbox,
    next_list,
    someday,
    upcoming,
    archive,
    done,
    reopen,
    reorder,
    # Project and label commands
    project_add,
    project_ls,
    label_add,
    label_ls,
    label_attach,
    label_detach,
)


def main():
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
