"""
FILE: nextup/core/exceptions.py
PURPOSE: Custom exception classes for error handling
EXPORTS:
  - NextupError (base exception)
  - TaskNotFoundError
  - ProjectNotFoundError
  - LabelNotFoundError
  - ValidationFailedError
  - InvalidInputError
  - OperationCancelledError
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - All exceptions inherit from NextupError for easy catching
  - Exceptions include context (IDs) for helpful error messages
  - Engine operations return Outcome values; Outcome.unwrap() raises these
  - CLI and REPL catch NextupError and display it
"""

from typing import Iterable, Tuple


class NextupError(Exception):
    """Base exception for all nextup errors."""
    pass


class TaskNotFoundError(NextupError):
    """Task(s) with given ID(s) don't exist for this owner."""

    def __init__(self, *task_ids: int):
        self.task_ids = tuple(task_ids)
        self.task_id = task_ids[0] if task_ids else None
        if len(task_ids) > 1:
            super().__init__(f"Tasks {', '.join(map(str, task_ids))} not found")
        else:
            super().__init__(f"Task {self.task_id} not found")


class ProjectNotFoundError(NextupError):
    """Project with given ID doesn't exist for this owner."""

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class LabelNotFoundError(NextupError):
    """Label with given ID doesn't exist for this owner."""

    def __init__(self, label_id: int):
        self.label_id = label_id
        super().__init__(f"Label {label_id} not found")


class ValidationFailedError(NextupError):
    """A batch operation was rejected before any row was written."""

    def __init__(self, message: str, task_ids: Iterable[int] = ()):
        self.task_ids: Tuple[int, ...] = tuple(task_ids)
        super().__init__(message)


class InvalidInputError(NextupError):
    """Input validation failed."""

    def __init__(self, message: str):
        super().__init__(message)


class OperationCancelledError(NextupError):
    """The caller cancelled the operation (or its deadline passed) before commit."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)
