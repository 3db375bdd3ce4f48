"""
FILE: nextup/core/service.py
PURPOSE: Entry points used by the CLI and REPL (views, task mutations, projects, labels)
EXPORTS:
  - list_tasks(store, owner_id, view, filters) -> TaskPage
  - create_task(store, owner_id, name, ...) -> TaskView
  - get_task(store, owner_id, task_id) -> TaskView
  - update_task(store, owner_id, task_id, ...) -> TaskView
  - move_tasks(store, owner_id, task_ids, system_list) -> List[TaskView]
  - delete_task(store, owner_id, task_id) -> None
  - complete_task(store, owner_id, task_id) -> Outcome[TaskView]
  - reopen_task(store, owner_id, task_id) -> Outcome[TaskView]
  - reorder_tasks(store, owner_id, system_list, task_ids) -> Outcome[Dict[int, int]]
  - create_project / list_projects / find_project_by_name_or_raise
  - list_project_summaries / rename_project / delete_project
  - create_label / list_labels / find_label_by_name_or_raise
  - update_label / delete_label
  - attach_label / detach_label
  - UNSET (sentinel for "field not given" in update_task)
DEPENDENCIES:
  - nextup.core.views, upcoming, ordering, lifecycle (the engine)
  - nextup.core.store (TaskStore)
  - nextup.core.exceptions (validation errors)
NOTES:
  - complete/reopen/reorder return Outcome values (NotFound/ValidationFailed
    are results, not errors); call .unwrap() to raise instead
  - CRUD helpers (create/update/move/delete, projects, labels) validate input
    and raise NextupError subclasses
  - A system_list change always takes a fresh top-of-list sort_order in the
    same transaction
  - project_id and label ids are checked against the owner before any write
"""

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..utils import iso_timestamp, to_iso_date, utcnow
from . import lifecycle, ordering
from .cancellation import CancelToken
from .constants import (
    DEFAULT_SYSTEM_LIST,
    MAX_DESCRIPTION_LENGTH,
    MAX_LABEL_NAME_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PROJECT_NAME_LENGTH,
    PRIORITY_MAX,
    PRIORITY_MIN,
    SYSTEM_LISTS,
    VIEW_UPCOMING,
)
from .exceptions import (
    InvalidInputError,
    LabelNotFoundError,
    ProjectNotFoundError,
    TaskNotFoundError,
)
from .models import Label, Project, ProjectSummary, TaskPage, TaskView
from .outcomes import Outcome
from .store import TaskStore, UnitOfWork
from .views import ViewFilters, ViewSelector, parse_view, resolve_page

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str, None]


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


# --- Validation helpers ---


def _clean_name(name: str, kind: str = "Task name", max_length: int = MAX_NAME_LENGTH) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidInputError(f"{kind} cannot be empty")
    if len(name) > max_length:
        raise InvalidInputError(f"{kind} must be at most {max_length} characters")
    return name


def _clean_description(description: Optional[str]) -> Optional[str]:
    # Strip outer whitespace but keep internal formatting
    description = description.strip() if description else None
    if not description:
        return None
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidInputError(f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters")
    return description


def _check_priority(priority: Optional[int]) -> Optional[int]:
    if priority is None:
        return None
    if isinstance(priority, bool) or not isinstance(priority, int) or not PRIORITY_MIN <= priority <= PRIORITY_MAX:
        raise InvalidInputError(f"Priority must be between {PRIORITY_MIN} and {PRIORITY_MAX}")
    return priority


def _check_list(system_list: str) -> str:
    system_list = (system_list or "").strip().lower()
    if system_list == VIEW_UPCOMING:
        raise InvalidInputError("Upcoming is computed from due dates; set a due date instead")
    if system_list not in SYSTEM_LISTS:
        raise InvalidInputError(
            f"Invalid list '{system_list}'. Must be one of: {', '.join(SYSTEM_LISTS)}"
        )
    return system_list


def _check_due_date(due_date: DateLike) -> Optional[str]:
    try:
        return to_iso_date(due_date)
    except ValueError:
        raise InvalidInputError(f"Invalid due date '{due_date}'. Use YYYY-MM-DD")


def _require_project(store: TaskStore, uow: UnitOfWork, owner_id: str, project_id: int) -> Project:
    project = store.get_project(uow, owner_id, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


def _require_label(store: TaskStore, uow: UnitOfWork, owner_id: str, label_id: int) -> Label:
    label = store.get_label(uow, owner_id, label_id)
    if label is None:
        raise LabelNotFoundError(label_id)
    return label


# --- Views ---


def list_tasks(
    store: TaskStore,
    owner_id: str,
    view: Union[None, str, Mapping, ViewSelector] = None,
    filters: Optional[ViewFilters] = None,
    now: Optional[datetime] = None,
    cancel: Optional[CancelToken] = None,
) -> TaskPage:
    """
    List tasks for a view.

    Args:
        store: Task store
        owner_id: Owner whose tasks are listed
        view: "inbox" | "next" | "someday" | "upcoming" | "archived" |
            {"label": id} | {"project": id} | {"archived": True} | selector | None
        filters: Status/archived filters (default: open, not archived)
        now: Reference time for the Upcoming view
        cancel: Optional cancellation token

    Returns:
        TaskPage with ordered tasks and total_count

    Raises:
        InvalidInputError: If the view is not recognized
    """
    selector = parse_view(view)
    return resolve_page(store, owner_id, selector, filters, now=now, cancel=cancel)


# --- Task CRUD ---


def create_task(
    store: TaskStore,
    owner_id: str,
    name: str,
    *,
    description: Optional[str] = None,
    due_date: DateLike = None,
    priority: Optional[int] = None,
    system_list: str = DEFAULT_SYSTEM_LIST,
    project_id: Optional[int] = None,
    label_ids: Iterable[int] = (),
    now: Optional[datetime] = None,
    cancel: Optional[CancelToken] = None,
) -> TaskView:
    """
    Create a new task at the top of its list.

    Args:
        store: Task store
        owner_id: Owner of the new task
        name: Task name (required, trimmed, max 500 characters)
        description: Optional description (max 4000 characters)
        due_date: Optional due date (date, datetime or YYYY-MM-DD)
        priority: Optional priority 1 (highest) to 4
        system_list: inbox (default), next or someday
        project_id: Optional project of the same owner
        label_ids: Labels of the same owner to attach
        now: Creation time (defaults to current UTC time)
        cancel: Optional cancellation token

    Returns:
        The new TaskView

    Raises:
        InvalidInputError: If any field is invalid
        ProjectNotFoundError: If project_id is not one of the owner's projects
        LabelNotFoundError: If a label id is not one of the owner's labels

    Notes:
        - Task starts open, not archived
        - sort_order comes from insert_at_top inside the insert transaction
    """
    name = _clean_name(name)
    description = _clean_description(description)
    due = _check_due_date(due_date)
    priority = _check_priority(priority)
    system_list = _check_list(system_list)
    label_ids = list(dict.fromkeys(label_ids))
    timestamp = iso_timestamp(now or utcnow())

    with store.unit_of_work(cancel) as uow:
        if project_id is not None:
            _require_project(store, uow, owner_id, project_id)
        for label_id in label_ids:
            _require_label(store, uow, owner_id, label_id)

        sort_order = ordering.insert_at_top(store, uow, owner_id, system_list)
        task_id = store.insert_task(
            uow,
            owner_id=owner_id,
            name=name,
            system_list=system_list,
            sort_order=sort_order,
            created_at=timestamp,
            description=description,
            due_date=due,
            priority=priority,
            project_id=project_id,
        )
        for label_id in label_ids:
            store.attach_label(uow, task_id, label_id)
        view = store.get_task_view(uow, owner_id, task_id)

    logger.info("create owner=%s task=%s list=%s sort_order=%s", owner_id, task_id, system_list, sort_order)
    return view


def get_task(
    store: TaskStore, owner_id: str, task_id: int, cancel: Optional[CancelToken] = None
) -> TaskView:
    """
    Fetch one task.

    Raises:
        TaskNotFoundError: If the task doesn't exist or belongs to another owner
    """
    with store.snapshot(cancel) as uow:
        view = store.get_task_view(uow, owner_id, task_id)
    if view is None:
        raise TaskNotFoundError(task_id)
    return view


def update_task(
    store: TaskStore,
    owner_id: str,
    task_id: int,
    *,
    name=UNSET,
    description=UNSET,
    due_date=UNSET,
    priority=UNSET,
    system_list=UNSET,
    project_id=UNSET,
    now: Optional[datetime] = None,
    cancel: Optional[CancelToken] = None,
) -> TaskView:
    """
    Update plain task fields. Fields left as UNSET are not touched; None clears.

    Returns:
        Updated TaskView

    Raises:
        TaskNotFoundError: If the task doesn't exist or belongs to another owner
        InvalidInputError: If a field is invalid
        ProjectNotFoundError: If project_id is not one of the owner's projects

    Notes:
        - Moving to another list puts the task at the top of that list
        - Lifecycle fields (status, archived, completed_at) are not editable
          here; use complete_task / reopen_task
    """
    fields: Dict[str, object] = {}
    if name is not UNSET:
        fields["name"] = _clean_name(name)
    if description is not UNSET:
        fields["description"] = _clean_description(description)
    if due_date is not UNSET:
        fields["due_date"] = _check_due_date(due_date)
    if priority is not UNSET:
        fields["priority"] = _check_priority(priority)
    if system_list is not UNSET:
        system_list = _check_list(system_list)
    timestamp = iso_timestamp(now or utcnow())

    with store.unit_of_work(cancel) as uow:
        task = store.get_task(uow, owner_id, task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        if project_id is not UNSET:
            if project_id is not None:
                _require_project(store, uow, owner_id, project_id)
            fields["project_id"] = project_id

        if system_list is not UNSET and system_list != task.system_list:
            fields["system_list"] = system_list
            fields["sort_order"] = ordering.insert_at_top(store, uow, owner_id, system_list)

        store.update_task_fields(uow, task_id, fields, timestamp)
        view = store.get_task_view(uow, owner_id, task_id)

    logger.info("update owner=%s task=%s fields=%s", owner_id, task_id, sorted(fields))
    return view


def move_tasks(
    store: TaskStore,
    owner_id: str,
    task_ids: Sequence[int],
    system_list: str,
    now: Optional[datetime] = None,
    cancel: Optional[CancelToken] = None,
) -> List[TaskView]:
    """
    Move several tasks to a list in one transaction.

    Args:
        task_ids: Tasks to move; the first id ends up at the very top
        system_list: Target list

    Returns:
        Updated TaskViews in the order given

    Raises:
        TaskNotFoundError: If any task is missing (nothing is moved)
        InvalidInputError: If system_list is not a stored list

    Notes:
        - Tasks already in the target list are left where they are
    """
    system_list = _check_list(system_list)
    timestamp = iso_timestamp(now or utcnow())

    with store.unit_of_work(cancel) as uow:
        tasks = []
        for task_id in task_ids:
            task = store.get_task(uow, owner_id, task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            tasks.append(task)

        # Insert last-to-first so the first id ends up on top
        for task in reversed(tasks):
            if task.system_list == system_list:
                continue
            top = ordering.insert_at_top(store, uow, owner_id, system_list)
            store.update_task_fields(uow, task.id, {"system_list": system_list, "sort_order": top}, timestamp)

        views = [store.get_task_view(uow, owner_id, task.id) for task in tasks]

    logger.info("move owner=%s tasks=%s list=%s", owner_id, list(task_ids), system_list)
    return views


def delete_task(
    store: TaskStore, owner_id: str, task_id: int, cancel: Optional[CancelToken] = None
) -> None:
    """
    Delete task permanently (hard delete).

    Raises:
        TaskNotFoundError: If the task doesn't exist or belongs to another owner
    """
    with store.unit_of_work(cancel) as uow:
        if store.get_task(uow, owner_id, task_id) is None:
            raise TaskNotFoundError(task_id)
        store.delete_task(uow, task_id)
    logger.info("delete owner=%s task=%s", owner_id, task_id)


# --- Lifecycle and ordering ---


def complete_task(
    store: TaskStore,
    owner_id: str,
    task_id: int,
    now: Optional[datetime] = None,
    cancel: Optional[CancelToken] = None,
) -> Outcome[TaskView]:
    """Mark a task done and archived. Idempotent. See lifecycle.complete."""
    return lifecycle.complete(store, owner_id, task_id, now=now, cancel=cancel)


def reopen_task(
    store: TaskStore,
    owner_id: str,
    task_id: int,
    now: Optional[datetime] = None,
    cancel: Optional[CancelToken] = None,
) -> Outcome[TaskView]:
    """Reopen a task at the top of its original list. Idempotent. See lifecycle.reopen."""
    return lifecycle.reopen(store, owner_id, task_id, now=now, cancel=cancel)


def reorder_tasks(
    store: TaskStore,
    owner_id: str,
    system_list: str,
    task_ids: Sequence[int],
    now: Optional[datetime] = None,
    cancel: Optional[CancelToken] = None,
) -> Outcome[Dict[int, int]]:
    """Atomically re-sequence a list. See ordering.reorder."""
    system_list = (system_list or "").strip().lower()
    return ordering.reorder(store, owner_id, system_list, task_ids, now=now, cancel=cancel)


# --- Projects ---


def create_project(
    store: TaskStore, owner_id: str, name: str, now: Optional[datetime] = None
) -> Project:
    """
    Create a new project.

    Raises:
        InvalidInputError: If name is empty, too long, or already used by this owner
    """
    name = _clean_name(name, "Project name", MAX_PROJECT_NAME_LENGTH)
    with store.unit_of_work() as uow:
        if any(p.name.lower() == name.lower() for p in store.list_projects(uow, owner_id)):
            raise InvalidInputError(f"Project '{name}' already exists")
        project = store.create_project(uow, owner_id, name, iso_timestamp(now or utcnow()))
    logger.info("create project owner=%s project=%s", owner_id, project.id)
    return project


def list_projects(store: TaskStore, owner_id: str) -> List[Project]:
    with store.snapshot() as uow:
        return store.list_projects(uow, owner_id)


def find_project_by_name_or_raise(store: TaskStore, owner_id: str, name: str) -> Project:
    """
    Find project by name (case-insensitive).

    Raises:
        InvalidInputError: If project not found (lists the available names)
    """
    projects = list_projects(store, owner_id)
    project = next((p for p in projects if p.name.lower() == name.strip().lower()), None)
    if not project:
        available = ", ".join(p.name for p in projects) or "none"
        raise InvalidInputError(f"Project '{name}' not found. Available projects: {available}")
    return project


def list_project_summaries(store: TaskStore, owner_id: str) -> List[ProjectSummary]:
    """Projects with total/completed task counts and completion percentage."""
    with store.snapshot() as uow:
        return store.list_project_summaries(uow, owner_id)


def rename_project(store: TaskStore, owner_id: str, project_id: int, name: str) -> Project:
    """
    Rename a project.

    Raises:
        ProjectNotFoundError: If the project isn't the owner's
        InvalidInputError: If the name is empty, too long, or used by another
            of the owner's projects
    """
    name = _clean_name(name, "Project name", MAX_PROJECT_NAME_LENGTH)
    with store.unit_of_work() as uow:
        project = _require_project(store, uow, owner_id, project_id)
        if any(p.id != project_id and p.name.lower() == name.lower() for p in store.list_projects(uow, owner_id)):
            raise InvalidInputError(f"Project '{name}' already exists")
        store.rename_project(uow, project_id, name)
    logger.info("rename project owner=%s project=%s", owner_id, project_id)
    project.name = name
    return project


def delete_project(store: TaskStore, owner_id: str, project_id: int) -> int:
    """
    Delete a project. Its tasks stay where they are, without a project.

    Returns:
        Number of tasks that lost their project

    Raises:
        ProjectNotFoundError: If the project isn't the owner's
    """
    with store.unit_of_work() as uow:
        _require_project(store, uow, owner_id, project_id)
        orphaned = store.delete_project(uow, project_id)
    logger.info("delete project owner=%s project=%s orphaned=%d", owner_id, project_id, orphaned)
    return orphaned


# --- Labels ---


def create_label(
    store: TaskStore,
    owner_id: str,
    name: str,
    color: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Label:
    """
    Create a new label.

    Raises:
        InvalidInputError: If name is empty, too long, or already used by this
            owner (case-insensitive)
    """
    name = _clean_name(name, "Label name", MAX_LABEL_NAME_LENGTH)
    color = color.strip() if color else None
    with store.unit_of_work() as uow:
        if store.find_label_by_name(uow, owner_id, name) is not None:
            raise InvalidInputError(f"Label '{name}' already exists")
        label = store.create_label(uow, owner_id, name, color, iso_timestamp(now or utcnow()))
    logger.info("create label owner=%s label=%s", owner_id, label.id)
    return label


def list_labels(store: TaskStore, owner_id: str) -> List[Label]:
    with store.snapshot() as uow:
        return store.list_labels(uow, owner_id)


def find_label_by_name_or_raise(store: TaskStore, owner_id: str, name: str) -> Label:
    """
    Find label by name (case-insensitive).

    Raises:
        InvalidInputError: If label not found (lists the available names)
    """
    with store.snapshot() as uow:
        label = store.find_label_by_name(uow, owner_id, name.strip())
        if label is None:
            available = ", ".join(l.name for l in store.list_labels(uow, owner_id)) or "none"
            raise InvalidInputError(f"Label '{name}' not found. Available labels: {available}")
    return label


def update_label(
    store: TaskStore, owner_id: str, label_id: int, *, name=UNSET, color=UNSET
) -> Label:
    """
    Rename a label and/or change its color. None clears the color.

    Raises:
        LabelNotFoundError: If the label isn't the owner's
        InvalidInputError: If the name is invalid or used by another label
    """
    if name is not UNSET:
        name = _clean_name(name, "Label name", MAX_LABEL_NAME_LENGTH)
    if color is not UNSET:
        color = color.strip() if color else None

    with store.unit_of_work() as uow:
        label = _require_label(store, uow, owner_id, label_id)
        if name is not UNSET:
            clash = store.find_label_by_name(uow, owner_id, name)
            if clash is not None and clash.id != label_id:
                raise InvalidInputError(f"Label '{name}' already exists")
            label.name = name
        if color is not UNSET:
            label.color = color
        store.update_label(uow, label_id, label.name, label.color)
    logger.info("update label owner=%s label=%s", owner_id, label_id)
    return label


def delete_label(store: TaskStore, owner_id: str, label_id: int) -> None:
    """
    Delete a label and detach it from every task.

    Raises:
        LabelNotFoundError: If the label isn't the owner's
    """
    with store.unit_of_work() as uow:
        _require_label(store, uow, owner_id, label_id)
        store.delete_label(uow, label_id)
    logger.info("delete label owner=%s label=%s", owner_id, label_id)


def attach_label(
    store: TaskStore, owner_id: str, task_id: int, label_id: int, cancel: Optional[CancelToken] = None
) -> TaskView:
    """
    Attach a label to a task. Attaching twice is harmless.

    Raises:
        TaskNotFoundError: If the task isn't the owner's
        LabelNotFoundError: If the label isn't the owner's
    """
    with store.unit_of_work(cancel) as uow:
        if store.get_task(uow, owner_id, task_id) is None:
            raise TaskNotFoundError(task_id)
        _require_label(store, uow, owner_id, label_id)
        store.attach_label(uow, task_id, label_id)
        view = store.get_task_view(uow, owner_id, task_id)
    return view


def detach_label(
    store: TaskStore, owner_id: str, task_id: int, label_id: int, cancel: Optional[CancelToken] = None
) -> TaskView:
    """
    Remove a label from a task. Removing a label the task doesn't carry is harmless.

    Raises:
        TaskNotFoundError: If the task isn't the owner's
        LabelNotFoundError: If the label isn't the owner's
    """
    with store.unit_of_work(cancel) as uow:
        if store.get_task(uow, owner_id, task_id) is None:
            raise TaskNotFoundError(task_id)
        _require_label(store, uow, owner_id, label_id)
        store.detach_label(uow, task_id, label_id)
        view = store.get_task_view(uow, owner_id, task_id)
    return view
