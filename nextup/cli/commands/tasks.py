"""
FILE: nextup/cli/commands/tasks.py
PURPOSE: Task commands (add, edit, show, rm, mv, due)
"""

import json
from typing import List, Optional

import typer
from rich.panel import Panel
from rich.text import Text

from ..main import app, console, current_user, error_console, open_store
from ...core import service
from ...core.constants import DEFAULT_SYSTEM_LIST
from ...core.exceptions import InvalidInputError, NextupError
from ...formatting import TaskFormatter, parse_task_ids
from ...utils import format_relative_due, local_today, parse_due_date


def _resolve_project_id(store, owner_id: str, project_name: Optional[str]) -> Optional[int]:
    if not project_name:
        return None
    return service.find_project_by_name_or_raise(store, owner_id, project_name).id


def _parse_due(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    try:
        return parse_due_date(text, local_today())
    except ValueError:
        raise InvalidInputError(f"Invalid due date '{text}'. Use YYYY-MM-DD, today, tomorrow or +Nd")


@app.command()
def add(
    name: str = typer.Argument(..., help="Task name"),
    system_list: str = typer.Option(DEFAULT_SYSTEM_LIST, "--list", "-l", help="inbox, next or someday"),
    due_date: Optional[str] = typer.Option(None, "--due", "-d", help="Due date (YYYY-MM-DD, today, tomorrow, +Nd)"),
    priority: Optional[int] = typer.Option(None, "--priority", "-P", help="Priority 1 (highest) to 4"),
    project_name: Optional[str] = typer.Option(None, "--project", "-p", help="Project name"),
    label_names: Optional[List[str]] = typer.Option(None, "--label", help="Label name (repeatable)"),
    description: Optional[str] = typer.Option(None, "--desc", help="Task description"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Create a new task at the top of a list.

    Example:
        nextup add "Write documentation"
        nextup add "Renew passport" --list someday --due 2026-03-01
        nextup add "Fix bug" --project Work --label urgent -P 1
    """
    owner = current_user()
    try:
        store = open_store()
        project_id = _resolve_project_id(store, owner, project_name)
        label_ids = [service.find_label_by_name_or_raise(store, owner, n).id for n in label_names or []]

        task = service.create_task(
            store,
            owner,
            name,
            description=description,
            due_date=_parse_due(due_date),
            priority=priority,
            system_list=system_list,
            project_id=project_id,
            label_ids=label_ids,
        )

        if json_output:
            typer.echo(json.dumps(TaskFormatter.to_json_dict(task), indent=2))
        elif raw:
            typer.echo(f"{task.id}: {task.name}")
        else:
            console.print(f"[green]✓ Created task [bold]#{task.id}[/bold] in {task.system_list}:[/green] {task.name}")

    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def edit(
    task_id: int = typer.Argument(..., help="Task ID to edit"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="New task name"),
    description: Optional[str] = typer.Option(None, "--desc", help="New description ('' clears)"),
    priority: Optional[int] = typer.Option(None, "--priority", "-P", help="Priority 1-4 (0 clears)"),
    project_name: Optional[str] = typer.Option(None, "--project", "-p", help="Project name ('' clears)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Update a task's name, description, priority or project.

    Example:
        nextup edit 5 --name "Updated task name"
        nextup edit 5 -P 2 --project Work
        nextup edit 5 --project ""
    """
    owner = current_user()
    changes = {}
    try:
        store = open_store()
        if name is not None:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if priority is not None:
            changes["priority"] = priority or None
        if project_name is not None:
            changes["project_id"] = _resolve_project_id(store, owner, project_name)

        if not changes:
            error_console.print("[red]Error:[/red] Nothing to change (see 'nextup edit --help')")
            raise typer.Exit(1)

        task = service.update_task(store, owner, task_id, **changes)

        if json_output:
            typer.echo(json.dumps(TaskFormatter.to_json_dict(task), indent=2))
        elif raw:
            typer.echo(f"Updated task {task.id}: {task.name}")
        else:
            console.print(f"[blue]✎[/blue] Updated task {task.id}: {task.name}")

    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def show(
    task_id: int = typer.Argument(..., help="Task ID to view"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Show full details for a task including description.

    Example:
        nextup show 5
    """
    try:
        task = service.get_task(open_store(), current_user(), task_id)
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps(TaskFormatter.to_json_dict(task), indent=2))
        return

    labels = ", ".join(label.name for label in task.labels)
    if raw:
        typer.echo(f"Task #{task.id}")
        typer.echo(f"Name: {task.name}")
        if task.description:
            typer.echo(f"Description: {task.description}")
        typer.echo(f"List: {task.system_list}")
        typer.echo(f"Status: {task.status}")
        if task.due_date:
            typer.echo(f"Due: {task.due_date}")
        if task.priority:
            typer.echo(f"Priority: {task.priority}")
        if task.project_name:
            typer.echo(f"Project: {task.project_name}")
        if labels:
            typer.echo(f"Labels: {labels}")
        typer.echo(f"Created: {task.created_at}")
        if task.completed_at:
            typer.echo(f"Completed: {task.completed_at}")
        return

    details = Text()
    details.append(f"Task #{task.id}\n", style="bold cyan")
    details.append(f"{task.name}\n\n", style="bold white")

    if task.description:
        details.append("Description:\n", style="dim")
        details.append(f"{task.description}\n\n", style="white")

    details.append("List: ", style="dim")
    details.append(f"{task.system_list}\n", style="bright_magenta")
    details.append("Status: ", style="dim")
    details.append(f"{task.status}\n", style="green" if task.is_done else "yellow")

    if task.due_date:
        details.append("Due: ", style="dim")
        details.append(f"{task.due_date} ({format_relative_due(task.due_date, local_today())})\n", style="white")
    if task.priority:
        details.append("Priority: ", style="dim")
        details.append(f"{task.priority}\n", style="white")
    if task.project_name:
        details.append("Project: ", style="dim")
        details.append(f"{task.project_name}\n", style="cyan")
    if labels:
        details.append("Labels: ", style="dim")
        details.append(f"{labels}\n", style="green")

    details.append("Created: ", style="dim")
    details.append(f"{(task.created_at or '-').split('T')[0]}\n", style="white")
    if task.completed_at:
        details.append("Completed: ", style="dim")
        details.append(f"{task.completed_at.split('T')[0]}\n", style="green")

    console.print(Panel(details, border_style="blue", padding=(1, 2)))


@app.command()
def rm(
    task_ids: str = typer.Argument(..., help="Task ID(s) to delete (comma-separated)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
):
    """
    Delete one or more tasks permanently.

    Confirms before deleting multiple tasks (use -y to skip).

    Example:
        nextup rm 5
        nextup rm 3,5,7 --yes
    """
    owner = current_user()
    try:
        ids = parse_task_ids(task_ids)
    except ValueError:
        error_console.print(f"[red]Error:[/red] Invalid task ID(s): {task_ids}")
        raise typer.Exit(1)

    store = open_store()
    if not yes and len(ids) > 1:
        console.print(f"[yellow]About to delete {len(ids)} task(s)[/yellow]")
        if not typer.confirm("Continue?", default=False):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    deleted = []
    errors = []
    for task_id in ids:
        try:
            task = service.get_task(store, owner, task_id)
            service.delete_task(store, owner, task_id)
            deleted.append({"id": task.id, "name": task.name})
        except NextupError as e:
            errors.append(str(e))

    if json_output:
        typer.echo(json.dumps(deleted, indent=2))
    elif raw:
        for item in deleted:
            typer.echo(f"Deleted task {item['id']}: {item['name']}")
    else:
        for item in deleted:
            console.print(f"[red]✗[/red] Deleted task {item['id']}: {item['name']}")

    if errors:
        for error in errors:
            error_console.print(f"[red]Error:[/red] {error}")
        if not deleted:
            raise typer.Exit(1)


@app.command()
def mv(
    task_ids: str = typer.Argument(..., help="Task ID(s) to move (comma-separated)"),
    system_list: str = typer.Argument(..., help="Target list: inbox, next or someday"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Move tasks to another list. Moved tasks land on top, first ID first.

    Example:
        nextup mv 5 next
        nextup mv 3,5,7 someday
    """
    try:
        ids = parse_task_ids(task_ids)
    except ValueError:
        error_console.print(f"[red]Error:[/red] Invalid task ID(s): {task_ids}")
        raise typer.Exit(1)

    try:
        tasks = service.move_tasks(open_store(), current_user(), ids, system_list)
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(TaskFormatter.to_json_array(tasks))
    elif raw:
        for task in tasks:
            typer.echo(f"Moved task {task.id} to {task.system_list}")
    else:
        for task in tasks:
            console.print(f"[blue]→[/blue] Moved task {task.id} to [cyan]{task.system_list}[/cyan]")


@app.command()
def due(
    task_id: int = typer.Argument(..., help="Task ID"),
    when: str = typer.Argument(..., help="YYYY-MM-DD, today, tomorrow, +Nd, or 'none' to clear"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Set or clear a task's due date.

    Example:
        nextup due 5 2026-03-01
        nextup due 5 +3d
        nextup due 5 none
    """
    try:
        task = service.update_task(open_store(), current_user(), task_id, due_date=_parse_due(when))
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps(TaskFormatter.to_json_dict(task), indent=2))
    elif raw:
        typer.echo(f"{task.id}: due {task.due_date or 'none'}")
    elif task.due_date:
        console.print(f"[blue]📅[/blue] Task {task.id} due {task.due_date} ({format_relative_due(task.due_date, local_today())})")
    else:
        console.print(f"[blue]📅[/blue] Cleared due date for task {task.id}")
