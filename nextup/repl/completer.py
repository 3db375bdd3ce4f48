"""
FILE: nextup/repl/completer.py
PURPOSE: Autocomplete logic for REPL commands and arguments
EXPORTS:
  - NextupCompleter (Completer for command/arg completion)
  - create_completer(context) -> NextupCompleter
DEPENDENCIES:
  - prompt_toolkit.completion (Completer, Completion)
  - nextup.core.service (project, label and task lookups)
NOTES:
  - Suggests command names at the start of the line
  - Suggests list names after mv/reorder and after --list
  - Suggests project names after --project, label names after --label and
    after "label attach|detach <ids>", "label rename|rm" and project names
    after "project rename"
  - Suggests task IDs for commands taking IDs first
  - Lookups go through the session's store and owner; store errors yield nothing
"""

import logging
import sqlite3
from typing import Iterable, List

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from ..core import service
from ..core.constants import SYSTEM_LISTS, VIEW_ARCHIVED, VIEW_UPCOMING
from ..core.exceptions import NextupError
from ..core.views import StatusFilter, ViewFilters

logger = logging.getLogger(__name__)


class NextupCompleter(Completer):
    """Context-aware completer for the nextup REPL."""

    COMMANDS = {
        "add": "Create a new task",
        "edit": "Update task fields",
        "show": "View full task details",
        "rm": "Delete task(s)",
        "mv": "Move task(s) to a list",
        "due": "Set or clear a due date",
        "ls": "List tasks",
        "inbox": "List the Inbox",
        "next": "List Next",
        "someday": "List Someday",
        "upcoming": "Tasks due soon, all lists",
        "archive": "View completed tasks",
        "done": "Mark task(s) done",
        "reopen": "Reopen completed task(s)",
        "reorder": "Set the order of a list",
        "project": "Manage projects",
        "label": "Manage labels",
        "user": "Switch to another user",
        "version": "Show version",
        "help": "Show available commands",
        "clear": "Clear the screen",
        "exit": "Exit REPL",
        "quit": "Exit REPL",
    }

    SUBCOMMANDS = {
        "project": ["add", "ls", "rename", "rm"],
        "label": ["add", "ls", "rename", "rm", "attach", "detach"],
    }

    COMMAND_FLAGS = {
        "add": ["--list", "--due", "--priority", "--project", "--label", "--desc"],
        "edit": ["--name", "--desc", "--priority", "--project"],
        "ls": ["--list", "--label", "--project", "--status", "--archived"],
        "upcoming": ["--days"],
        "rm": ["--yes"],
        "project": ["--yes", "--json", "--raw"],
        "label": ["--color", "--yes", "--json", "--raw"],
    }

    ID_FIRST_COMMANDS = {"done", "reopen", "rm", "edit", "show", "mv", "due"}

    def __init__(self, context):
        self.context = context

    def get_completions(self, document: Document, complete_event) -> Iterable[Completion]:
        text = document.text_before_cursor
        words = text.split()
        typing_new_word = text.endswith(" ")
        current = "" if typing_new_word else (words[-1] if words else "")

        if not words or (len(words) == 1 and not typing_new_word):
            yield from self._match(self.COMMANDS, current)
            return

        command = words[0].lower()
        position = len(words) if typing_new_word else len(words) - 1
        previous = words[position - 1] if position >= 1 else ""

        # Flag values
        if previous in ("--list", "-l"):
            names = SYSTEM_LISTS + ((VIEW_UPCOMING, VIEW_ARCHIVED) if command == "ls" else ())
            yield from self._match(names, current)
            return
        if previous in ("--project", "-p"):
            yield from self._match(self._project_names(), current)
            return
        if previous == "--label":
            yield from self._match(self._label_names(), current)
            return
        if previous in ("--status", "-s"):
            yield from self._match([s.value for s in StatusFilter], current)
            return

        if current.startswith("-"):
            yield from self._match(self.COMMAND_FLAGS.get(command, []), current)
            return

        if command in self.SUBCOMMANDS:
            if position == 1:
                yield from self._match(self.SUBCOMMANDS[command], current)
            elif command == "label" and words[1] in ("attach", "detach"):
                if position == 2:
                    yield from self._task_ids(current)
                elif position == 3:
                    yield from self._match(self._label_names(), current)
            elif command == "label" and words[1] in ("rename", "rm") and position == 2:
                yield from self._match(self._label_names(), current)
            elif command == "project" and words[1] == "rename" and position == 2:
                yield from self._match(self._project_names(), current)
            return

        if command == "mv" and position == 2:
            yield from self._match(SYSTEM_LISTS, current)
            return
        if command == "reorder" and position == 1:
            yield from self._match(SYSTEM_LISTS, current)
            return
        if command in self.ID_FIRST_COMMANDS and position == 1:
            yield from self._task_ids(current)

    @staticmethod
    def _match(candidates, word: str) -> Iterable[Completion]:
        """Yield candidates starting with word (case-insensitive); dict values become meta."""
        stripped = word.strip('"').strip("'").lower()
        for candidate in candidates:
            if not candidate.lower().startswith(stripped):
                continue
            text = f'"{candidate}"' if " " in candidate else candidate
            meta = candidates[candidate] if isinstance(candidates, dict) else ""
            yield Completion(text, start_position=-len(word), display=text, display_meta=meta)

    def _project_names(self) -> List[str]:
        try:
            return [p.name for p in service.list_projects(self.context.store, self.context.owner)]
        except (NextupError, sqlite3.Error):
            logger.debug("project completion failed", exc_info=True)
            return []

    def _label_names(self) -> List[str]:
        try:
            return [l.name for l in service.list_labels(self.context.store, self.context.owner)]
        except (NextupError, sqlite3.Error):
            logger.debug("label completion failed", exc_info=True)
            return []

    def _task_ids(self, word: str) -> Iterable[Completion]:
        """Complete task IDs with the task name and list as meta."""
        try:
            page = service.list_tasks(
                self.context.store, self.context.owner, filters=ViewFilters(status=StatusFilter.ALL)
            )
        except (NextupError, sqlite3.Error):
            logger.debug("task id completion failed", exc_info=True)
            return

        for task in page.tasks[:200]:  # cap for responsiveness
            id_str = str(task.id)
            if id_str.startswith(word):
                name = task.name if len(task.name) <= 40 else task.name[:37] + "..."
                yield Completion(
                    id_str,
                    start_position=-len(word),
                    display=id_str,
                    display_meta=f"{name} [{task.system_list}]",
                )


def create_completer(context) -> NextupCompleter:
    """
    Create a completer bound to a REPL session context.

    Usage:
        completer = create_completer(repl_context)
        session = PromptSession(completer=completer)
    """
    return NextupCompleter(context)
