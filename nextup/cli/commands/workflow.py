"""
FILE: nextup/cli/commands/workflow.py
PURPOSE: Workflow commands (ls, inbox, next, someday, upcoming, archive, done, reopen, reorder)
"""

import json
from typing import Optional

import typer

from ..main import app, console, current_user, error_console, open_store, print_tasks
from ...core import service
from ...core.constants import LIST_INBOX, LIST_NEXT, LIST_SOMEDAY
from ...core.exceptions import NextupError
from ...core.views import (
    ArchivedView,
    LabelView,
    ProjectView,
    SystemListView,
    UpcomingView,
    parse_filters,
    parse_view,
)
from ...formatting import TaskFormatter, parse_task_ids


def _show_list(system_list: str, title: str, json_output: bool, raw: bool, empty_hint: str) -> None:
    try:
        page = service.list_tasks(open_store(), current_user(), SystemListView(system_list))
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    print_tasks(
        page.tasks,
        title,
        json_output=json_output,
        raw=raw,
        total_count=page.total_count,
        show_list=False,
        empty_message=f"{title} is empty",
        empty_hint=empty_hint,
    )


@app.command()
def ls(
    system_list: Optional[str] = typer.Option(None, "--list", "-l", help="inbox, next, someday, upcoming or archived"),
    label_name: Optional[str] = typer.Option(None, "--label", help="Only tasks with this label"),
    project_name: Optional[str] = typer.Option(None, "--project", "-p", help="Only tasks in this project"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="open (default), done or all"),
    archived: bool = typer.Option(False, "--archived", "-a", help="Only archived tasks (overrides --status)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List tasks. Defaults to open tasks across all lists.

    Example:
        nextup ls
        nextup ls --list next
        nextup ls --project Work --status all
        nextup ls --label urgent
        nextup ls --archived --json
    """
    owner = current_user()
    try:
        store = open_store()
        if label_name:
            selector = LabelView(service.find_label_by_name_or_raise(store, owner, label_name).id)
        elif project_name:
            selector = ProjectView(service.find_project_by_name_or_raise(store, owner, project_name).id)
        else:
            selector = parse_view(system_list)
        filters = parse_filters(status, archived)
        page = service.list_tasks(store, owner, selector, filters)
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    archived_view = filters.archived or isinstance(selector, ArchivedView)
    print_tasks(
        page.tasks,
        "Archived Tasks" if archived_view else "Tasks",
        json_output=json_output,
        raw=raw,
        total_count=page.total_count,
        show_completed=archived_view or filters.status.value != "open",
    )


@app.command()
def inbox(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List open tasks in the Inbox (newly captured, not yet triaged).

    Example:
        nextup inbox
    """
    _show_list(LIST_INBOX, "Inbox", json_output, raw, "Use 'nextup add \"...\"' to capture a task")


@app.command("next")
def next_list(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List open tasks in Next (what you are committed to doing soon).

    Example:
        nextup next
    """
    _show_list(LIST_NEXT, "Next", json_output, raw, "Use 'nextup mv <task_id> next' to commit to a task")


@app.command()
def someday(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List open tasks in Someday (parked ideas).

    Example:
        nextup someday
    """
    _show_list(LIST_SOMEDAY, "Someday", json_output, raw, "Use 'nextup mv <task_id> someday' to park a task")


@app.command()
def upcoming(
    days: Optional[int] = typer.Option(None, "--days", help="Horizon in days (default: NEXTUP_UPCOMING_DAYS or 14)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List open tasks due within the horizon, from every list, overdue first.

    Example:
        nextup upcoming
        nextup upcoming --days 7
    """
    try:
        page = service.list_tasks(open_store(), current_user(), UpcomingView(days))
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    print_tasks(
        page.tasks,
        "Upcoming",
        json_output=json_output,
        raw=raw,
        total_count=page.total_count,
        empty_message="Nothing due soon",
        empty_hint="Use 'nextup due <task_id> <date>' to schedule a task",
    )


@app.command()
def archive(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List archived (completed) tasks, most recently completed first.

    Example:
        nextup archive
    """
    try:
        page = service.list_tasks(open_store(), current_user(), ArchivedView())
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    print_tasks(
        page.tasks,
        "Archived Tasks",
        json_output=json_output,
        raw=raw,
        total_count=page.total_count,
        show_completed=True,
        empty_message="No archived tasks",
    )


def _apply_lifecycle(operation, verb: str, task_ids: str, json_output: bool, raw: bool) -> None:
    """Run complete/reopen over comma-separated IDs, reporting per-task failures."""
    try:
        ids = parse_task_ids(task_ids)
    except ValueError:
        error_console.print(f"[red]Error:[/red] Invalid task ID(s): {task_ids}")
        raise typer.Exit(1)

    store = open_store()
    owner = current_user()
    changed = []
    errors = []
    for task_id in ids:
        try:
            outcome = operation(store, owner, task_id)
        except NextupError as e:
            errors.append(f"Error with task {task_id}: {e}")
            continue
        if outcome.ok:
            changed.append(outcome.value)
        else:
            errors.append(outcome.failure.message)

    if json_output:
        typer.echo(TaskFormatter.to_json_array(changed))
    elif raw:
        for task in changed:
            typer.echo(f"{verb}: {task.name}")
    else:
        for task in changed:
            console.print(f"[green]✓[/green] {verb}: {task.name} [dim]({task.system_list})[/dim]")

    if errors:
        for error in errors:
            error_console.print(f"[red]Error:[/red] {error}")
        if not changed:
            raise typer.Exit(1)


@app.command()
def done(
    task_ids: str = typer.Argument(..., help="Task ID(s) to complete (comma-separated)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Mark one or more tasks as done. Done tasks move to the archive.

    Example:
        nextup done 5
        nextup done 3,5,7
    """
    _apply_lifecycle(service.complete_task, "Completed", task_ids, json_output, raw)


@app.command()
def reopen(
    task_ids: str = typer.Argument(..., help="Task ID(s) to reopen (comma-separated)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Reopen completed tasks. Each returns to the top of the list it was in.

    Example:
        nextup reopen 5
    """
    _apply_lifecycle(service.reopen_task, "Reopened", task_ids, json_output, raw)


@app.command()
def reorder(
    system_list: str = typer.Argument(..., help="List to reorder: inbox, next or someday"),
    task_ids: str = typer.Argument(..., help="Task IDs in the new order (comma-separated)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Put tasks of a list in a new order. Listed tasks come first, in the
    order given; the rest of the list keeps its relative order after them.

    Example:
        nextup reorder next 7,3,5
    """
    try:
        ids = parse_task_ids(task_ids)
    except ValueError:
        error_console.print(f"[red]Error:[/red] Invalid task ID(s): {task_ids}")
        raise typer.Exit(1)

    try:
        outcome = service.reorder_tasks(open_store(), current_user(), system_list, ids)
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not outcome.ok:
        error_console.print(f"[red]Error:[/red] {outcome.failure.message}")
        raise typer.Exit(1)

    assignments = outcome.value
    if json_output:
        typer.echo(json.dumps({str(k): v for k, v in assignments.items()}, indent=2))
    elif raw:
        for task_id in ids:
            typer.echo(f"{task_id}: {assignments[task_id]}")
    else:
        console.print(f"[blue]↕[/blue] Reordered {len(ids)} task(s) in [cyan]{system_list}[/cyan]")
