"""
FILE: nextup/core/ordering.py
PURPOSE: Per-(owner, list) manual ordering: top insertion and atomic bulk reorder
EXPORTS:
  - insert_at_top(store, uow, owner_id, system_list) -> int
  - reorder(store, owner_id, system_list, ordered_task_ids, now, cancel) -> Outcome[Dict[int, int]]
  - validate_reorder(store, uow, owner_id, system_list, ordered_task_ids) -> Optional[Outcome]
DEPENDENCIES:
  - nextup.core.store (TaskStore, UnitOfWork)
  - nextup.core.outcomes (typed results)
  - nextup.utils (timestamps)
NOTES:
  - sort_order is unique within (owner, list) after every commit
  - Top position is "one less than the current minimum", read inside the same
    unit of work as the write it serves; there is no global counter
  - reorder validates the whole batch before writing anything; a failure
    leaves every row untouched
"""

import logging
from datetime import datetime
from typing import Dict, Optional, Sequence

from ..utils import iso_timestamp, utcnow
from .cancellation import CancelToken
from .constants import SYSTEM_LISTS
from .outcomes import Outcome, not_found, success, validation_failed
from .store import TaskStore, UnitOfWork

logger = logging.getLogger(__name__)


def insert_at_top(store: TaskStore, uow: UnitOfWork, owner_id: str, system_list: str) -> int:
    """
    Return a sort_order that puts a task first in its (owner, list) pair.

    Args:
        store: Task store
        uow: The unit of work the caller will write the task in
        owner_id: Owner of the list
        system_list: Stored list ('inbox', 'next', 'someday')

    Returns:
        0 for an empty list, otherwise current minimum - 1

    Raises:
        ValueError: If system_list is not a stored list

    Notes:
        - Archived rows count toward the minimum so the value never collides
          with a task that is later reopened
    """
    if system_list not in SYSTEM_LISTS:
        raise ValueError(f"'{system_list}' is not a stored system list")
    current_min = store.min_sort_order(uow, owner_id, system_list)
    return 0 if current_min is None else current_min - 1


def validate_reorder(
    store: TaskStore,
    uow: UnitOfWork,
    owner_id: str,
    system_list: str,
    ordered_task_ids: Sequence[int],
) -> Optional[Outcome]:
    """
    Check every precondition of a reorder batch.

    Returns:
        None when the batch may be applied, otherwise the failure Outcome

    Notes:
        - Empty batches, duplicate ids and non-stored target lists are
          ValidationFailed
        - Ids with no row at all are NotFound
        - Ids of another owner or of another list are ValidationFailed
    """
    if system_list not in SYSTEM_LISTS:
        return validation_failed(
            f"Cannot reorder '{system_list}': only {', '.join(SYSTEM_LISTS)} have a manual order"
        )

    ids = list(ordered_task_ids)
    if not ids:
        return validation_failed("Task IDs must not be empty")

    seen = set()
    duplicates = []
    for task_id in ids:
        if task_id in seen and task_id not in duplicates:
            duplicates.append(task_id)
        seen.add(task_id)
    if duplicates:
        return validation_failed(
            "Duplicate task IDs in reorder batch: " + ", ".join(str(i) for i in duplicates),
            duplicates,
        )

    tasks = store.get_tasks_by_ids(uow, ids)

    missing = [task_id for task_id in ids if task_id not in tasks]
    if missing:
        return not_found(missing)

    foreign = [task_id for task_id in ids if tasks[task_id].owner_id != owner_id]
    if foreign:
        return validation_failed(
            "Tasks do not belong to the caller: " + ", ".join(str(i) for i in foreign),
            foreign,
        )

    wrong_list = [task_id for task_id in ids if tasks[task_id].system_list != system_list]
    if wrong_list:
        return validation_failed(
            f"Tasks are not in list '{system_list}': " + ", ".join(str(i) for i in wrong_list),
            wrong_list,
        )

    return None


def reorder(
    store: TaskStore,
    owner_id: str,
    system_list: str,
    ordered_task_ids: Sequence[int],
    now: Optional[datetime] = None,
    cancel: Optional[CancelToken] = None,
) -> Outcome[Dict[int, int]]:
    """
    Re-sequence a list: the i-th id gets sort_order = i.

    Args:
        store: Task store
        owner_id: Caller; every id must belong to this owner
        system_list: Target list; every id must currently be in it
        ordered_task_ids: Task ids in their new display order
        now: Timestamp for updated_at (defaults to current UTC time)
        cancel: Optional cancellation token, checked up to COMMIT

    Returns:
        Outcome whose value maps each batch id to its new sort_order, or a
        NotFound / ValidationFailed failure with zero rows written

    Raises:
        OperationCancelledError: If cancelled before commit (nothing written)

    Notes:
        - Rows of the same (owner, list) that are not in the batch (archived
          tasks, tasks the caller did not send) are renumbered after the batch,
          keeping their relative order, in the same transaction
        - The whole write is one unit of work; readers never see a partial
          renumbering
    """
    ids = list(ordered_task_ids)
    timestamp = iso_timestamp(now or utcnow())

    with store.unit_of_work(cancel) as uow:
        failure = validate_reorder(store, uow, owner_id, system_list, ids)
        if failure is not None:
            logger.info(
                "reorder rejected owner=%s list=%s reason=%s", owner_id, system_list, failure.failure.message
            )
            return failure

        assignments: Dict[int, int] = {task_id: index for index, task_id in enumerate(ids)}
        batch = set(ids)
        next_position = len(ids)
        for task_id, _ in store.sort_sequence(uow, owner_id, system_list):
            if task_id in batch:
                continue
            assignments[task_id] = next_position
            next_position += 1

        store.set_sort_orders(uow, assignments, timestamp)

    logger.info("reorder owner=%s list=%s count=%d", owner_id, system_list, len(ids))
    return success({task_id: assignments[task_id] for task_id in ids})
