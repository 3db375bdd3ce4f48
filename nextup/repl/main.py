"""
FILE: nextup/repl/main.py
PURPOSE: Interactive REPL for task management with prompt-toolkit
EXPORTS:
  - REPLContext (session state: owner and store)
  - execute_command(result, context) -> bool
  - run_repl(owner) - Main REPL loop
  - main(owner) - Entry point for REPL mode
DEPENDENCIES:
  - prompt_toolkit (REPL interface, history, completion)
  - click (exceptions raised by the CLI app in non-standalone mode)
  - rich (formatted output)
  - nextup.cli.main (every CLI command runs unchanged inside the REPL)
  - nextup.repl.parser, nextup.repl.completer
NOTES:
  - Lines are parsed with parse_command and handed to the Typer app with
    standalone_mode=False, so the REPL never exits on a command error;
    unexpected errors are reported and the loop continues
  - REPL-only commands: user, help, clear, exit/quit
  - Bottom toolbar shows open counts per list and how many tasks are upcoming
  - Ctrl+D or "exit"/"quit" to exit
"""

import logging
import sqlite3
import sys
from dataclasses import dataclass
from typing import List, Optional

import click
from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import InMemoryHistory
from rich.console import Console

from ..core import repository, service
from ..core.constants import LIST_INBOX, LIST_NEXT, LIST_SOMEDAY
from ..core.exceptions import NextupError
from ..core.views import SystemListView, UpcomingView
from .completer import create_completer
from .parser import ParseResult, parse_command

logger = logging.getLogger(__name__)

# Rich console for formatted output
console = Console()


@dataclass
class REPLContext:
    """
    Persistent context for the REPL session.

    Attributes:
        owner: User whose tasks every command operates on
        store: Store shared by the toolbar and the completer
    """
    owner: str
    store: Optional[repository.SqliteTaskStore] = None

    def __post_init__(self):
        if self.store is None:
            self.store = repository.get_store()

    def get_prompt(self) -> str:
        return f"nextup:[{self.owner}]> "


def format_prompt(context: REPLContext) -> HTML:
    return HTML(f"<b>nextup:[<cyan>{context.owner}</cyan>]&gt; </b>")


def get_bottom_toolbar(context: REPLContext) -> HTML:
    """
    Create bottom toolbar showing open task counts per list.

    Returns:
        HTML formatted toolbar, or a plain title if the store can't be read
    """
    try:
        counts = [
            service.list_tasks(context.store, context.owner, SystemListView(name)).total_count
            for name in (LIST_INBOX, LIST_NEXT, LIST_SOMEDAY)
        ]
        upcoming = service.list_tasks(context.store, context.owner, UpcomingView()).total_count
    except (NextupError, sqlite3.Error):
        logger.debug("toolbar refresh failed", exc_info=True)
        return HTML("<style bg='#444444' fg='#ffffff'> nextup </style>")

    text = f"{counts[0]} inbox | {counts[1]} next | {counts[2]} someday | {upcoming} upcoming"
    return HTML(f"<style bg='#444444' fg='#ffffff'> {text} </style>")


def run_cli(argv: List[str], context: REPLContext) -> int:
    """
    Run one CLI command line inside the REPL.

    Returns:
        The command's exit code (0 on success)
    """
    # Imported here: nextup.cli.main imports this package lazily as well
    from ..cli.main import app

    try:
        result = app(["--user", context.owner] + list(argv), standalone_mode=False, prog_name="nextup")
    except click.exceptions.Abort:
        console.print("[yellow]Cancelled[/yellow]")
        return 1
    except click.exceptions.ClickException as e:
        e.show()
        return e.exit_code
    except Exception as e:
        logger.debug("command failed: %s", argv, exc_info=True)
        console.print(f"[red]Unexpected error:[/red] {e}")
        return 1
    return result if isinstance(result, int) else 0


def handle_help_command() -> None:
    console.print("[bold cyan]nextup REPL[/bold cyan]\n")
    console.print("Every nextup command works here without the 'nextup' prefix:")
    console.print('  [green]add[/green] "Call the bank" --list next --due tomorrow')
    console.print("  [green]inbox[/green] | [green]next[/green] | [green]someday[/green] | [green]upcoming[/green] | [green]archive[/green] | [green]ls[/green]")
    console.print("  [green]mv[/green] 3,5 next    [green]done[/green] 3    [green]reopen[/green] 3    [green]reorder[/green] next 5,3")
    console.print("  [green]project[/green] add|ls|rename|rm    [green]label[/green] add|ls|rename|rm|attach|detach")
    console.print("  [dim]<command> --help shows the options of one command[/dim]\n")
    console.print("REPL commands:")
    console.print("  [green]user[/green] <name>   switch to another user")
    console.print("  [green]clear[/green]         clear the screen")
    console.print("  [green]exit[/green]          leave (or Ctrl+D)")


def execute_command(result: ParseResult, context: REPLContext) -> bool:
    """
    Execute a parsed command.

    Args:
        result: Parsed command from parser
        context: Session context (may be changed by 'user')

    Returns:
        True to continue REPL loop, False to exit
    """
    command = result.command

    if command in ("exit", "quit"):
        console.print("[dim]Goodbye![/dim]")
        return False

    # Empty command (just Enter pressed)
    if not command:
        return True

    if command == "help":
        handle_help_command()
    elif command == "clear":
        console.clear()
    elif command == "user":
        if not result.args:
            console.print(f"Current user: [cyan]{context.owner}[/cyan]")
        else:
            context.owner = result.args[0]
            console.print(f"Switched to user [cyan]{context.owner}[/cyan]")
    elif command == "repl":
        console.print("[dim]Already in the REPL[/dim]")
    else:
        run_cli(result.argv, context)

    # Whitespace after command output for readability
    console.print()
    return True


def run_repl(owner: str) -> None:
    """
    Main REPL loop.

    Sets up prompt_toolkit session with:
    - Command history (in-memory, not persisted)
    - Autocomplete (commands, flags, lists, projects, labels, task IDs)
    - Bottom toolbar with list counts

    Exits on:
    - Ctrl+D (EOFError)
    - "exit" or "quit" commands
    """
    context = REPLContext(owner=owner)

    # In piped/test environments, skip prompt_toolkit entirely
    use_simple_input = not (sys.stdin.isatty() and sys.stdout.isatty())
    session = None
    if not use_simple_input:
        session = PromptSession(
            history=InMemoryHistory(),
            completer=create_completer(context),
            complete_while_typing=True,
            bottom_toolbar=lambda: get_bottom_toolbar(context),
        )

    console.print("[bold cyan]nextup REPL[/bold cyan] - Type 'help' for commands, 'exit' to quit")
    if use_simple_input:
        console.print("[dim](Running in simple mode - no autocomplete)[/dim]")
    console.print()

    while True:
        try:
            if session is None:
                user_input = input(context.get_prompt())
            else:
                user_input = session.prompt(format_prompt(context))

            if not execute_command(parse_command(user_input), context):
                break

        except KeyboardInterrupt:
            console.print("[dim]^C (Press Ctrl+D or type 'exit' to quit)[/dim]")
            continue
        except EOFError:
            console.print()
            console.print("[dim]Goodbye![/dim]")
            break
        except NextupError as e:
            console.print(f"[red]Error:[/red] {e}")
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {e}")


def main(owner: str) -> None:
    """
    Entry point for REPL mode.

    Called when user runs: nextup repl (or just nextup)
    """
    run_repl(owner)
