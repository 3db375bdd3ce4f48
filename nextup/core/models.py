"""
FILE: nextup/core/models.py
PURPOSE: Domain models for tasks, task views, projects, and labels
EXPORTS:
  - Task (dataclass)
  - LabelRef (dataclass)
  - TaskView (dataclass, Task plus project name and labels)
  - TaskPage (dataclass)
  - Project (dataclass)
  - Label (dataclass)
  - ProjectSummary (dataclass, Project plus task counts)
DEPENDENCIES:
  - dataclasses (stdlib)
  - json (stdlib)
  - typing (stdlib)
NOTES:
  - All stored models have from_row() for SQLite row conversion
  - All models have to_json() for serialization
  - Optional fields use None as default
  - Timestamps stored as ISO-8601 strings, due dates as YYYY-MM-DD strings
"""

from dataclasses import dataclass, asdict, field, fields
from typing import List, Optional
import json

from .constants import DEFAULT_SYSTEM_LIST, STATUS_OPEN, STATUS_DONE


@dataclass
class Task:
    """A task filed in one system list, optionally inside a project."""

    id: int
    owner_id: str
    name: str
    system_list: str = DEFAULT_SYSTEM_LIST
    sort_order: int = 0
    status: str = STATUS_OPEN
    is_archived: bool = False
    description: Optional[str] = None
    due_date: Optional[str] = None
    priority: Optional[int] = None
    project_id: Optional[int] = None
    completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Task":
        """Convert SQLite row to Task object."""
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            system_list=row["system_list"],
            sort_order=row["sort_order"],
            status=row["status"],
            is_archived=bool(row["is_archived"]),
            description=row["description"],
            due_date=row["due_date"],
            priority=row["priority"],
            project_id=row["project_id"],
            completed_at=row["completed_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @property
    def is_done(self) -> bool:
        return self.status == STATUS_DONE

    def to_json(self) -> str:
        """Serialize task to JSON string."""
        return json.dumps(asdict(self), indent=2)


@dataclass
class LabelRef:
    """Label summary attached to a task view."""

    id: int
    name: str
    color: Optional[str] = None


@dataclass
class TaskView(Task):
    """Read model returned by every view: the task plus its project name and labels."""

    project_name: Optional[str] = None
    labels: List[LabelRef] = field(default_factory=list)

    @classmethod
    def from_task(
        cls,
        task: Task,
        project_name: Optional[str] = None,
        labels: Optional[List[LabelRef]] = None,
    ) -> "TaskView":
        values = {f.name: getattr(task, f.name) for f in fields(Task)}
        return cls(**values, project_name=project_name, labels=list(labels or []))


@dataclass
class TaskPage:
    """A resolved view: ordered tasks plus the number of matching tasks."""

    tasks: List[TaskView]
    total_count: int

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)


@dataclass
class Project:
    """A project for organizing related tasks."""

    id: int
    owner_id: str
    name: str
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Project":
        """Convert SQLite row to Project object."""
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            created_at=row["created_at"],
        )

    def to_json(self) -> str:
        """Serialize project to JSON string."""
        return json.dumps(asdict(self), indent=2)


@dataclass
class Label:
    """A cross-cutting label; names are unique per owner (case-insensitive)."""

    id: int
    owner_id: str
    name: str
    color: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Label":
        """Convert SQLite row to Label object."""
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            color=row["color"],
            created_at=row["created_at"],
        )

    def to_json(self) -> str:
        """Serialize label to JSON string."""
        return json.dumps(asdict(self), indent=2)


@dataclass
class ProjectSummary(Project):
    """A project plus counts of its tasks; completed means done and archived."""

    total_task_count: int = 0
    completed_task_count: int = 0
    completion_percentage: int = 0

    @classmethod
    def from_row(cls, row) -> "ProjectSummary":
        total = row["total_task_count"] or 0
        completed = row["completed_task_count"] or 0
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            created_at=row["created_at"],
            total_task_count=total,
            completed_task_count=completed,
            completion_percentage=round(completed / total * 100) if total else 0,
        )
