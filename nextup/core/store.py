"""
FILE: nextup/core/store.py
PURPOSE: Ports (interfaces) between the engine and the Task Record Store
EXPORTS:
  - TaskQuery (dataclass describing one filtered, sorted task query)
  - ORDER_MANUAL, ORDER_COMPLETED_DESC, ORDER_DUE: query orderings
  - UnitOfWork (Protocol): one transaction against the store
  - TaskStore (Protocol): the store adapter
DEPENDENCIES:
  - typing, dataclasses (stdlib)
  - nextup.core.models
  - nextup.core.cancellation (CancelToken)
NOTES:
  - The engine depends on these Protocols, not on SQLite
  - Every engine read and write takes an explicit UnitOfWork; atomicity of a
    multi-row write is a property of the call, not of ambient state
  - nextup.core.repository.SqliteTaskStore is the shipped implementation
"""

from dataclasses import dataclass
from typing import ContextManager, Dict, List, Mapping, Optional, Protocol, Tuple

from .cancellation import CancelToken
from .models import Label, Project, ProjectSummary, Task, TaskView

# Query orderings
ORDER_MANUAL = "manual"                   # sort_order ASC, id ASC
ORDER_COMPLETED_DESC = "completed_desc"   # completed_at DESC, id DESC
ORDER_DUE = "due"                         # due_date ASC, priority ASC (NULL last), id ASC


@dataclass(frozen=True)
class TaskQuery:
    """
    Store-level description of a task query.

    Attributes:
        owner_id: Owner every row must belong to (always applied)
        system_list: Restrict to one stored list
        project_id: Restrict to tasks in this project
        label_id: Restrict to tasks carrying this label
        status: Restrict to this status ("open"/"done")
        archived: True = only archived, False = only non-archived, None = both
        due_on_or_before: Only tasks with a due date <= this YYYY-MM-DD value
        order: One of ORDER_MANUAL, ORDER_COMPLETED_DESC, ORDER_DUE
    """

    owner_id: str
    system_list: Optional[str] = None
    project_id: Optional[int] = None
    label_id: Optional[int] = None
    status: Optional[str] = None
    archived: Optional[bool] = None
    due_on_or_before: Optional[str] = None
    order: str = ORDER_MANUAL


class UnitOfWork(Protocol):
    """One transaction. Commits on clean exit of the store's context manager."""

    cancel: Optional[CancelToken]
    readonly: bool


class TaskStore(Protocol):
    """Task Record Store adapter consumed by the engine."""

    # --- transactions ---

    def unit_of_work(self, cancel: Optional[CancelToken] = None) -> ContextManager[UnitOfWork]: ...

    def snapshot(self, cancel: Optional[CancelToken] = None) -> ContextManager[UnitOfWork]: ...

    # --- reads ---

    def get_task(self, uow: UnitOfWork, owner_id: str, task_id: int) -> Optional[Task]: ...

    def get_tasks_by_ids(self, uow: UnitOfWork, task_ids: List[int]) -> Dict[int, Task]: ...

    def get_task_view(self, uow: UnitOfWork, owner_id: str, task_id: int) -> Optional[TaskView]: ...

    def query_task_views(self, uow: UnitOfWork, query: TaskQuery) -> List[TaskView]: ...

    # --- ordering ---

    def min_sort_order(self, uow: UnitOfWork, owner_id: str, system_list: str) -> Optional[int]: ...

    def sort_sequence(self, uow: UnitOfWork, owner_id: str, system_list: str) -> List[Tuple[int, int]]: ...

    def set_sort_orders(self, uow: UnitOfWork, assignments: Mapping[int, int], updated_at: str) -> None: ...

    # --- task writes ---

    def insert_task(
        self,
        uow: UnitOfWork,
        *,
        owner_id: str,
        name: str,
        system_list: str,
        sort_order: int,
        created_at: str,
        description: Optional[str] = None,
        due_date: Optional[str] = None,
        priority: Optional[int] = None,
        project_id: Optional[int] = None,
    ) -> int: ...

    def set_lifecycle(
        self,
        uow: UnitOfWork,
        task_id: int,
        *,
        status: str,
        is_archived: bool,
        completed_at: Optional[str],
        updated_at: str,
        sort_order: Optional[int] = None,
    ) -> None: ...

    def update_task_fields(self, uow: UnitOfWork, task_id: int, fields: Mapping[str, object], updated_at: str) -> None: ...

    def delete_task(self, uow: UnitOfWork, task_id: int) -> None: ...

    # --- projects and labels (collaborator records) ---

    def create_project(self, uow: UnitOfWork, owner_id: str, name: str, created_at: str) -> Project: ...

    def get_project(self, uow: UnitOfWork, owner_id: str, project_id: int) -> Optional[Project]: ...

    def list_projects(self, uow: UnitOfWork, owner_id: str) -> List[Project]: ...

    def list_project_summaries(self, uow: UnitOfWork, owner_id: str) -> List[ProjectSummary]: ...

    def rename_project(self, uow: UnitOfWork, project_id: int, name: str) -> None: ...

    def delete_project(self, uow: UnitOfWork, project_id: int) -> int: ...

    def create_label(self, uow: UnitOfWork, owner_id: str, name: str, color: Optional[str], created_at: str) -> Label: ...

    def get_label(self, uow: UnitOfWork, owner_id: str, label_id: int) -> Optional[Label]: ...

    def find_label_by_name(self, uow: UnitOfWork, owner_id: str, name: str) -> Optional[Label]: ...

    def list_labels(self, uow: UnitOfWork, owner_id: str) -> List[Label]: ...

    def update_label(self, uow: UnitOfWork, label_id: int, name: str, color: Optional[str]) -> None: ...

    def delete_label(self, uow: UnitOfWork, label_id: int) -> None: ...

    def attach_label(self, uow: UnitOfWork, task_id: int, label_id: int) -> None: ...

    def detach_label(self, uow: UnitOfWork, task_id: int, label_id: int) -> None: ...
