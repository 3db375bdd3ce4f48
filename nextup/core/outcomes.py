"""
FILE: nextup/core/outcomes.py
PURPOSE: Typed results for engine operations (success value or domain failure)
EXPORTS:
  - FailureKind (enum: NOT_FOUND, VALIDATION_FAILED)
  - Failure (dataclass)
  - Outcome (generic dataclass)
  - success(value) -> Outcome
  - not_found(task_id) -> Outcome
  - validation_failed(message, task_ids) -> Outcome
DEPENDENCIES:
  - nextup.core.exceptions (for unwrap())
NOTES:
  - complete/reopen/reorder report NotFound and ValidationFailed as values
  - unwrap() turns a failure into the matching NextupError for callers that raise
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Iterable, Optional, Tuple, TypeVar

from .exceptions import TaskNotFoundError, ValidationFailedError

T = TypeVar("T")


class FailureKind(str, Enum):
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"


@dataclass(frozen=True)
class Failure:
    """Why an operation did not apply. Nothing was written when this is returned."""

    kind: FailureKind
    message: str
    task_ids: Tuple[int, ...] = field(default_factory=tuple)

    def to_exception(self) -> Exception:
        if self.kind is FailureKind.NOT_FOUND:
            return TaskNotFoundError(*self.task_ids)
        return ValidationFailedError(self.message, self.task_ids)


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of an engine operation: either a value or a Failure."""

    value: Optional[T] = None
    failure: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def is_not_found(self) -> bool:
        return self.failure is not None and self.failure.kind is FailureKind.NOT_FOUND

    def unwrap(self) -> T:
        """
        Return the value, or raise the exception matching the failure.

        Raises:
            TaskNotFoundError: Failure kind is NOT_FOUND
            ValidationFailedError: Failure kind is VALIDATION_FAILED
        """
        if self.failure is not None:
            raise self.failure.to_exception()
        return self.value


def success(value: T = None) -> Outcome[T]:
    return Outcome(value=value)


def not_found(task_ids: Iterable[int], message: Optional[str] = None) -> Outcome:
    ids = tuple(task_ids)
    if message is None:
        message = "Task(s) not found: " + ", ".join(str(i) for i in ids)
    return Outcome(failure=Failure(FailureKind.NOT_FOUND, message, ids))


def validation_failed(message: str, task_ids: Iterable[int] = ()) -> Outcome:
    return Outcome(failure=Failure(FailureKind.VALIDATION_FAILED, message, tuple(task_ids)))
