"""
FILE: nextup/core/lifecycle.py
PURPOSE: Open <-> Done/Archived state machine for tasks
EXPORTS:
  - complete(store, owner_id, task_id, now, cancel) -> Outcome[TaskView]
  - reopen(store, owner_id, task_id, now, cancel) -> Outcome[TaskView]
DEPENDENCIES:
  - nextup.core.store (TaskStore)
  - nextup.core.ordering (insert_at_top for reopen)
  - nextup.core.outcomes (typed results)
  - nextup.utils (timestamps)
NOTES:
  - Two states only: Open (not archived) and Done+Archived
  - status, is_archived and completed_at always change together
  - Both operations are idempotent no-op successes on a task already in the
    target state; completing twice never overwrites completed_at
  - Reopen keeps system_list and moves the task to the top of that list
  - A missing or foreign task is a NotFound outcome, never an exception
"""

import logging
from datetime import datetime
from typing import Optional

from ..utils import iso_timestamp, utcnow
from .cancellation import CancelToken
from .constants import STATUS_DONE, STATUS_OPEN
from .models import TaskView
from .ordering import insert_at_top
from .outcomes import Outcome, not_found, success
from .store import TaskStore

logger = logging.getLogger(__name__)


def complete(
    store: TaskStore,
    owner_id: str,
    task_id: int,
    now: Optional[datetime] = None,
    cancel: Optional[CancelToken] = None,
) -> Outcome[TaskView]:
    """
    Mark task as done and archive it.

    Args:
        store: Task store
        owner_id: Caller; the task must belong to this owner
        task_id: ID of task to complete
        now: Completion time (defaults to current UTC time)
        cancel: Optional cancellation token

    Returns:
        Outcome with the updated TaskView, or NotFound

    Raises:
        OperationCancelledError: If cancelled before commit (nothing written)

    Notes:
        - First transition sets status=done, is_archived=true,
          completed_at=now, updated_at=now
        - Already done: returns the task unchanged
        - sort_order is left alone; the archive view orders by completed_at
    """
    with store.unit_of_work(cancel) as uow:
        task = store.get_task(uow, owner_id, task_id)
        if task is None:
            return not_found([task_id])

        if task.status == STATUS_DONE:
            logger.debug("complete no-op task=%s already done", task_id)
        else:
            timestamp = iso_timestamp(now or utcnow())
            store.set_lifecycle(
                uow,
                task_id,
                status=STATUS_DONE,
                is_archived=True,
                completed_at=timestamp,
                updated_at=timestamp,
            )
            logger.info("complete owner=%s task=%s", owner_id, task_id)

        view = store.get_task_view(uow, owner_id, task_id)

    return success(view)


def reopen(
    store: TaskStore,
    owner_id: str,
    task_id: int,
    now: Optional[datetime] = None,
    cancel: Optional[CancelToken] = None,
) -> Outcome[TaskView]:
    """
    Reopen a completed task in its original list.

    Args:
        store: Task store
        owner_id: Caller; the task must belong to this owner
        task_id: ID of task to reopen
        now: Reopen time (defaults to current UTC time)
        cancel: Optional cancellation token

    Returns:
        Outcome with the updated TaskView, or NotFound

    Raises:
        OperationCancelledError: If cancelled before commit (nothing written)

    Notes:
        - Sets status=open, is_archived=false, completed_at=None, updated_at=now
        - system_list is preserved (never defaults to inbox)
        - sort_order comes from insert_at_top in the same transaction, so the
          task reappears first in its list
        - Already open: returns the task unchanged (position kept)
    """
    with store.unit_of_work(cancel) as uow:
        task = store.get_task(uow, owner_id, task_id)
        if task is None:
            return not_found([task_id])

        if task.status == STATUS_OPEN:
            logger.debug("reopen no-op task=%s already open", task_id)
        else:
            timestamp = iso_timestamp(now or utcnow())
            top = insert_at_top(store, uow, owner_id, task.system_list)
            store.set_lifecycle(
                uow,
                task_id,
                status=STATUS_OPEN,
                is_archived=False,
                completed_at=None,
                updated_at=timestamp,
                sort_order=top,
            )
            logger.info("reopen owner=%s task=%s list=%s sort_order=%s", owner_id, task_id, task.system_list, top)

        view = store.get_task_view(uow, owner_id, task_id)

    return success(view)
