"""
FILE: nextup/cli/commands/__init__.py
PURPOSE: CLI command modules
"""

# Export all command handlers for easy importing
from .tasks import (
    add,
    edit,
    show,
    rm,
    mv,
    due,
)
from .workflow import (
    ls,
    inbox,
    next_list,
    someday,
    upcoming,
    archive,
    done,
    reopen,
    reorder,
)
from .projects import (
    project_add,
    project_ls,
    label_add,
    label_ls,
    label_attach,
    label_detach,
)
from .system import (
    version,
    repl,
)

__all__ = [
    "add",
    "edit",
    "show",
    "rm",
    "mv",
    "due",
    "ls",
    "inbox",
    "next_list",
    "someday",
    "upcoming",
    "archive",
    "done",
    "reopen",
    "reorder",
    "project_add",
    "project_ls",
    "label_add",
    "label_ls",
    "label_attach",
    "label_detach",
    "version",
    "repl",
]
