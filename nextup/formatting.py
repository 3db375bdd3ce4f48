"""
FILE: nextup/formatting.py
PURPOSE: Shared formatting utilities for CLI and REPL output
EXPORTS:
  - TaskFormatter: Class for formatting task views
  - parse_task_ids: Parse comma-separated task IDs
DEPENDENCIES:
  - rich (for table formatting)
  - json (for JSON serialization)
  - nextup.core.models (TaskView, Project, Label)
NOTES:
  - Centralized formatting logic for consistency
  - Task views already carry project name and labels, so no lookups happen here
"""

import json
from dataclasses import asdict
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from rich.table import Table

from .core.models import Label, Project, TaskView
from .utils import format_relative_due, local_today

# list name -> rich style
LIST_STYLES = {
    "inbox": "yellow",
    "next": "bright_magenta",
    "someday": "dim",
}

PRIORITY_STYLES = {
    1: "bold red",
    2: "yellow",
    3: "blue",
    4: "dim",
}


def _due_style(due_date: Optional[str], today: date) -> str:
    if not due_date:
        return "dim"
    if due_date < today.isoformat():
        return "red"
    if due_date == today.isoformat():
        return "bold yellow"
    return "white"


class TaskFormatter:
    """Centralized task display formatting."""

    @staticmethod
    def create_table(
        tasks: Sequence[TaskView],
        title: str = "Tasks",
        today: Optional[date] = None,
        show_list: bool = True,
        show_completed: bool = False,
    ) -> Table:
        """
        Create Rich table for tasks.

        Args:
            tasks: Task views in display order
            title: Table title
            today: Reference date for relative due dates
            show_list: Whether to show the system list column
            show_completed: Whether to show completion date (archive views)

        Returns:
            Rich Table object ready for display
        """
        today = today or local_today()
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("ID", style="cyan", width=6, no_wrap=True)
        table.add_column("Name", style="white")
        if show_list:
            table.add_column("List", width=8)
        table.add_column("Due", width=12)
        table.add_column("P", width=2)
        table.add_column("Project", style="yellow", width=12)
        table.add_column("Labels", style="green")
        if show_completed:
            table.add_column("Completed", style="dim")

        for task in tasks:
            row = [str(task.id), task.name]
            if show_list:
                style = LIST_STYLES.get(task.system_list, "white")
                row.append(f"[{style}]{task.system_list}[/{style}]")

            due_style = _due_style(task.due_date, today)
            row.append(f"[{due_style}]{format_relative_due(task.due_date, today)}[/{due_style}]")

            if task.priority:
                p_style = PRIORITY_STYLES.get(task.priority, "white")
                row.append(f"[{p_style}]{task.priority}[/{p_style}]")
            else:
                row.append("-")

            row.append(task.project_name or "-")
            row.append(", ".join(label.name for label in task.labels) or "-")
            if show_completed:
                row.append(task.completed_at.split("T")[0] if task.completed_at else "-")
            table.add_row(*row)

        return table

    @staticmethod
    def to_json_dict(task: TaskView) -> Dict[str, Any]:
        """Convert a task view to a JSON-serializable dict."""
        return asdict(task)

    @staticmethod
    def to_json_array(tasks: Sequence[TaskView]) -> str:
        return json.dumps([asdict(t) for t in tasks], indent=2)

    @staticmethod
    def to_raw_lines(tasks: Sequence[TaskView]) -> List[str]:
        """
        Convert task list to plain text lines.

        Format: "<id>: [x] <name> (<list>) due <date>"
        """
        lines = []
        for task in tasks:
            marker = "x" if task.is_done else " "
            line = f"{task.id}: [{marker}] {task.name} ({task.system_list})"
            if task.due_date:
                line += f" due {task.due_date}"
            lines.append(line)
        return lines

    @staticmethod
    def projects_to_json(projects: Sequence[Project]) -> str:
        return json.dumps([asdict(p) for p in projects], indent=2)

    @staticmethod
    def labels_to_json(labels: Sequence[Label]) -> str:
        return json.dumps([asdict(l) for l in labels], indent=2)


def parse_task_ids(id_string: str) -> List[int]:
    """
    Parse comma-separated task IDs.

    Args:
        id_string: Comma-separated string of IDs (e.g., "1,2,3")

    Returns:
        List of integers in the order given

    Raises:
        ValueError: If any ID is not a valid integer
    """
    ids = [part.strip() for part in id_string.split(",")]
    return [int(part) for part in ids if part]
