"""
FILE: nextup/core/upcoming.py
PURPOSE: Upcoming projection: open tasks due within a horizon, across all lists
EXPORTS:
  - horizon_date(now, horizon_days) -> str
  - upcoming_query(owner_id, horizon_days, now) -> TaskQuery
  - project_upcoming(store, owner_id, horizon_days, now, cancel) -> List[TaskView]
DEPENDENCIES:
  - nextup.core.store (TaskStore, TaskQuery, ORDER_DUE)
  - nextup.config (default horizon)
NOTES:
  - Membership is computed from current state on every call, never stored
  - No lower bound: overdue tasks always qualify
  - Today is the local calendar date unless a reference time is given
  - Order: due date, then priority (tasks without priority last), then id
  - Read-only; the Upcoming view has no manual order
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from .. import config
from ..utils import local_today
from .cancellation import CancelToken
from .constants import STATUS_OPEN
from .exceptions import InvalidInputError
from .models import TaskView
from .store import ORDER_DUE, TaskQuery, TaskStore

logger = logging.getLogger(__name__)


def horizon_date(now: Union[date, datetime], horizon_days: int) -> str:
    """
    Last due date (inclusive, YYYY-MM-DD) that falls inside the horizon.

    A horizon reaching past the last representable date covers every due date.

    Raises:
        InvalidInputError: If horizon_days is negative
    """
    if horizon_days < 0:
        raise InvalidInputError(f"Upcoming horizon must be >= 0 days, got {horizon_days}")
    today = now.date() if isinstance(now, datetime) else now
    try:
        return (today + timedelta(days=horizon_days)).isoformat()
    except OverflowError:
        return date.max.isoformat()


def upcoming_query(owner_id: str, horizon_days: int, now: Union[date, datetime]) -> TaskQuery:
    return TaskQuery(
        owner_id=owner_id,
        status=STATUS_OPEN,
        archived=False,
        due_on_or_before=horizon_date(now, horizon_days),
        order=ORDER_DUE,
    )


def project_upcoming(
    store: TaskStore,
    owner_id: str,
    horizon_days: Optional[int] = None,
    now: Optional[Union[date, datetime]] = None,
    cancel: Optional[CancelToken] = None,
) -> List[TaskView]:
    """
    List open, non-archived tasks due on or before now + horizon_days.

    Args:
        store: Task store
        owner_id: Owner whose tasks are projected
        horizon_days: Days ahead to include (defaults to config.UPCOMING_DAYS)
        now: Reference date or time (defaults to the local calendar date)
        cancel: Optional cancellation token

    Returns:
        TaskViews ordered most overdue first; each reports its stored system_list

    Raises:
        InvalidInputError: If horizon_days is negative
    """
    if horizon_days is None:
        horizon_days = config.UPCOMING_DAYS
    query = upcoming_query(owner_id, horizon_days, now or local_today())

    with store.snapshot(cancel) as uow:
        tasks = store.query_task_views(uow, query)

    logger.debug("upcoming owner=%s through=%s count=%d", owner_id, query.due_on_or_before, len(tasks))
    return tasks
