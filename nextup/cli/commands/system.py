"""
FILE: nextup/cli/commands/system.py
PURPOSE: System commands (version, repl)
"""

import typer

# Import shared objects from main module
# These will be available after main.py imports this module
from ..main import app, console, error_console, current_user, __version__


@app.command()
def version():
    """Show nextup version."""
    console.print(f"nextup v{__version__}")


@app.command()
def repl():
    """
    Launch interactive REPL mode.

    The REPL provides:
    - Command history (up/down arrows)
    - Autocomplete (Tab key)
    - Every nextup command without the 'nextup' prefix
    - Exit with Ctrl+D or type 'exit'

    Example:
        nextup repl
    """
    # Import here to avoid loading REPL dependencies for one-shot commands
    from ...repl import main as repl_main

    try:
        repl_main(current_user())
    except Exception as e:
        error_console.print(f"[red]Error starting REPL:[/red] {e}")
        raise typer.Exit(1)
