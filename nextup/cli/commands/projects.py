"""
FILE: nextup/cli/commands/projects.py
PURPOSE: Project and label commands (project add/ls/rename/rm, label add/ls/rename/rm/attach/detach)
"""

import json
from typing import Optional

import typer
from rich.table import Table

from ..main import console, current_user, error_console, label_app, open_store, project_app
from ...core import service
from ...core.exceptions import NextupError
from ...formatting import TaskFormatter, parse_task_ids


@project_app.command("add")
def project_add(
    name: str = typer.Argument(..., help="Project name"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Create a new project.

    Example:
        nextup project add "Work"
    """
    try:
        project = service.create_project(open_store(), current_user(), name)
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(project.to_json())
    elif raw:
        typer.echo(f"{project.id}: {project.name}")
    else:
        console.print(f"[green]✓[/green] Created project {project.id}: {project.name}")


@project_app.command("ls")
def project_ls(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List all projects with their task counts.

    Completed counts done and archived tasks.

    Example:
        nextup project ls --json
    """
    projects = service.list_project_summaries(open_store(), current_user())

    if json_output:
        typer.echo(TaskFormatter.projects_to_json(projects))
        return
    if raw:
        for project in projects:
            typer.echo(f"{project.id}: {project.name}")
        return
    if not projects:
        console.print("[dim]No projects found[/dim]")
        return

    table = Table(title="Projects")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Tasks", justify="right")
    table.add_column("Done", justify="right", style="green")
    table.add_column("%", justify="right")
    table.add_column("Created", style="dim")
    for project in projects:
        table.add_row(
            str(project.id),
            project.name,
            str(project.total_task_count),
            str(project.completed_task_count),
            f"{project.completion_percentage}%",
            (project.created_at or "").split("T")[0],
        )
    console.print(table)
    console.print(f"\n[dim]Total: {len(projects)} project(s)[/dim]")


@project_app.command("rename")
def project_rename(
    name: str = typer.Argument(..., help="Current project name"),
    new_name: str = typer.Argument(..., help="New project name"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Rename a project.

    Example:
        nextup project rename Work "Day job"
    """
    store = open_store()
    owner = current_user()
    try:
        project = service.find_project_by_name_or_raise(store, owner, name)
        project = service.rename_project(store, owner, project.id, new_name)
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(project.to_json())
    elif raw:
        typer.echo(f"{project.id}: {project.name}")
    else:
        console.print(f"[green]✓[/green] Renamed project {project.id}: {name} → {project.name}")


@project_app.command("rm")
def project_rm(
    project_ids: str = typer.Argument(..., help="Project ID(s) to delete (comma-separated)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
):
    """
    Delete one or more projects permanently.

    Tasks in a deleted project are kept and no longer belong to any project.

    Example:
        nextup project rm 2
        nextup project rm 2,3 --yes
    """
    try:
        ids = parse_task_ids(project_ids)
    except ValueError:
        error_console.print(f"[red]Error:[/red] Invalid project ID(s): {project_ids}")
        raise typer.Exit(1)

    if not yes:
        console.print(f"[yellow]About to delete {len(ids)} project(s)[/yellow]")
        if not typer.confirm("Continue?", default=False):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    store = open_store()
    owner = current_user()
    names = {p.id: p.name for p in service.list_projects(store, owner)}
    deleted = []
    errors = []
    for project_id in ids:
        try:
            orphaned = service.delete_project(store, owner, project_id)
            deleted.append({"id": project_id, "name": names.get(project_id), "orphaned_tasks": orphaned})
        except NextupError as e:
            errors.append(str(e))

    if json_output:
        typer.echo(json.dumps(deleted, indent=2))
    elif raw:
        for item in deleted:
            typer.echo(f"Deleted project {item['id']}: {item['name']}")
    else:
        for item in deleted:
            console.print(f"[red]✗[/red] Deleted project {item['id']}: {item['name']}")
            if item["orphaned_tasks"]:
                console.print(f"[dim]  {item['orphaned_tasks']} task(s) now have no project[/dim]")

    if errors:
        for error in errors:
            error_console.print(f"[red]Error:[/red] {error}")
        if not deleted:
            raise typer.Exit(1)


@label_app.command("add")
def label_add(
    name: str = typer.Argument(..., help="Label name"),
    color: Optional[str] = typer.Option(None, "--color", "-c", help="Display color (e.g. red, #ff8800)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Create a new label. Names are unique per user, ignoring case.

    Example:
        nextup label add urgent --color red
    """
    try:
        label = service.create_label(open_store(), current_user(), name, color)
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(label.to_json())
    elif raw:
        typer.echo(f"{label.id}: {label.name}")
    else:
        console.print(f"[green]✓[/green] Created label {label.id}: {label.name}")


@label_app.command("ls")
def label_ls(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """List all labels."""
    labels = service.list_labels(open_store(), current_user())

    if json_output:
        typer.echo(TaskFormatter.labels_to_json(labels))
        return
    if raw:
        for label in labels:
            typer.echo(f"{label.id}: {label.name}")
        return
    if not labels:
        console.print("[dim]No labels found[/dim]")
        return

    table = Table(title="Labels")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Color", style="dim")
    for label in labels:
        table.add_row(str(label.id), label.name, label.color or "-")
    console.print(table)


@label_app.command("rename")
def label_rename(
    name: str = typer.Argument(..., help="Current label name"),
    new_name: str = typer.Argument(..., help="New label name"),
    color: Optional[str] = typer.Option(None, "--color", "-c", help="New display color"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Rename a label, optionally changing its color.

    Example:
        nextup label rename urgent asap --color orange
    """
    store = open_store()
    owner = current_user()
    changes = {"name": new_name}
    if color is not None:
        changes["color"] = color
    try:
        label = service.find_label_by_name_or_raise(store, owner, name)
        label = service.update_label(store, owner, label.id, **changes)
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(label.to_json())
    elif raw:
        typer.echo(f"{label.id}: {label.name}")
    else:
        console.print(f"[green]✓[/green] Renamed label {label.id}: {name} → {label.name}")


@label_app.command("rm")
def label_rm(
    name: str = typer.Argument(..., help="Label name"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
):
    """
    Delete a label. It is removed from every task that carries it.

    Example:
        nextup label rm urgent --yes
    """
    store = open_store()
    owner = current_user()
    try:
        label = service.find_label_by_name_or_raise(store, owner, name)
        if not yes and not typer.confirm(f"Delete label '{label.name}'?", default=False):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)
        service.delete_label(store, owner, label.id)
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if raw:
        typer.echo(f"Deleted label {label.id}: {label.name}")
    else:
        console.print(f"[red]✗[/red] Deleted label {label.id}: {label.name}")


def _change_labels(attach: bool, task_ids: str, label_name: str, raw: bool) -> None:
    try:
        ids = parse_task_ids(task_ids)
    except ValueError:
        error_console.print(f"[red]Error:[/red] Invalid task ID(s): {task_ids}")
        raise typer.Exit(1)

    store = open_store()
    owner = current_user()
    operation = service.attach_label if attach else service.detach_label
    try:
        label = service.find_label_by_name_or_raise(store, owner, label_name)
        for task_id in ids:
            task = operation(store, owner, task_id, label.id)
            if raw:
                typer.echo(f"{task.id}: {', '.join(l.name for l in task.labels)}")
            else:
                verb = "Labelled" if attach else "Unlabelled"
                console.print(f"[green]✓[/green] {verb} task {task.id} ({label.name}): {task.name}")
    except NextupError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@label_app.command("attach")
def label_attach(
    task_ids: str = typer.Argument(..., help="Task ID(s) (comma-separated)"),
    label_name: str = typer.Argument(..., help="Label name"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Put a label on one or more tasks.

    Example:
        nextup label attach 3,5 urgent
    """
    _change_labels(True, task_ids, label_name, raw)


@label_app.command("detach")
def label_detach(
    task_ids: str = typer.Argument(..., help="Task ID(s) (comma-separated)"),
    label_name: str = typer.Argument(..., help="Label name"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """Remove a label from one or more tasks."""
    _change_labels(False, task_ids, label_name, raw)
