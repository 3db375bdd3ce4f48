"""
FILE: nextup/core/views.py
PURPOSE: View Resolver: turn a view selector plus filters into an ordered task list
EXPORTS:
  - SystemListView, LabelView, ProjectView, ArchivedView, UpcomingView (selectors)
  - ViewSelector (Union of the selectors)
  - StatusFilter (enum), ViewFilters (dataclass)
  - parse_view(view) -> Optional[ViewSelector]
  - parse_filters(status, archived) -> ViewFilters
  - build_query(owner_id, selector, filters) -> TaskQuery
  - resolve(store, owner_id, selector, filters, now, cancel) -> List[TaskView]
  - resolve_page(store, owner_id, selector, filters, now, cancel) -> TaskPage
DEPENDENCIES:
  - nextup.core.store (TaskStore, TaskQuery, orderings)
  - nextup.core.upcoming (UpcomingView delegates there)
NOTES:
  - Selector is a tagged variant; filters are orthogonal to it
  - "Archived wins": archived=True (or ArchivedView) returns exactly the
    archived set whatever the status filter says
  - Default (no selector, no filters): open, non-archived tasks of the owner
  - Non-archived views sort by sort_order; archived views (and status=done,
    whose rows are all archived) sort by completed_at desc, then id desc
  - Label/Project selectors join through the association but otherwise
    behave exactly like a system list
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import List, Mapping, Optional, Union

from .cancellation import CancelToken
from .constants import (
    FILTER_ALL,
    STATUS_DONE,
    STATUS_OPEN,
    SYSTEM_LISTS,
    VIEW_ARCHIVED,
    VIEW_UPCOMING,
)
from .exceptions import InvalidInputError
from .models import TaskPage, TaskView
from .store import ORDER_COMPLETED_DESC, ORDER_MANUAL, TaskQuery, TaskStore
from .upcoming import project_upcoming

logger = logging.getLogger(__name__)


# --- Selectors ---


@dataclass(frozen=True)
class SystemListView:
    """Tasks filed in one stored list."""

    system_list: str

    def __post_init__(self):
        if self.system_list not in SYSTEM_LISTS:
            raise InvalidInputError(
                f"Invalid list '{self.system_list}'. Must be one of: {', '.join(SYSTEM_LISTS)}"
            )


@dataclass(frozen=True)
class LabelView:
    """Tasks carrying a label."""

    label_id: int


@dataclass(frozen=True)
class ProjectView:
    """Tasks belonging to a project."""

    project_id: int


@dataclass(frozen=True)
class ArchivedView:
    """Every archived task of the owner, newest completion first."""


@dataclass(frozen=True)
class UpcomingView:
    """Computed due-date view; horizon None means the configured default."""

    horizon_days: Optional[int] = None


ViewSelector = Union[SystemListView, LabelView, ProjectView, ArchivedView, UpcomingView]


# --- Filters ---


class StatusFilter(str, Enum):
    OPEN = STATUS_OPEN
    DONE = STATUS_DONE
    ALL = FILTER_ALL


@dataclass(frozen=True)
class ViewFilters:
    """
    Lifecycle filters applied on top of a selector.

    Attributes:
        status: open (default), done, or all
        archived: when True, the result is exactly the archived set and
            status is ignored
    """

    status: StatusFilter = StatusFilter.OPEN
    archived: bool = False


DEFAULT_FILTERS = ViewFilters()


def parse_filters(status: Optional[str] = None, archived: bool = False) -> ViewFilters:
    """
    Build ViewFilters from loose input (CLI flags, API query strings).

    Raises:
        InvalidInputError: If status is not open, done or all
    """
    if status is None or status == "":
        return ViewFilters(archived=archived)
    try:
        return ViewFilters(status=StatusFilter(status.lower()), archived=archived)
    except ValueError:
        valid = ", ".join(s.value for s in StatusFilter)
        raise InvalidInputError(f"Invalid status '{status}'. Must be one of: {valid}")


def _parse_id(value, kind: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid {kind} id '{value}'")


def parse_view(view: Union[None, str, Mapping, ViewSelector]) -> Optional[ViewSelector]:
    """
    Turn an external view description into a selector.

    Accepted forms:
        None or ""                      -> None (all lists)
        "inbox" | "next" | "someday"    -> SystemListView
        "upcoming"                      -> UpcomingView()
        "archived"                      -> ArchivedView()
        "label:<id>", {"label": id}     -> LabelView
        "project:<id>", {"project": id} -> ProjectView
        {"archived": True}              -> ArchivedView()
        a selector instance             -> itself

    Raises:
        InvalidInputError: If the view is not recognized
    """
    if view is None:
        return None
    if isinstance(view, (SystemListView, LabelView, ProjectView, ArchivedView, UpcomingView)):
        return view

    if isinstance(view, Mapping):
        if "label" in view:
            return LabelView(_parse_id(view["label"], "label"))
        if "project" in view:
            return ProjectView(_parse_id(view["project"], "project"))
        if view.get("archived") is True:
            return ArchivedView()
        raise InvalidInputError(f"Unrecognized view {dict(view)!r}")

    text = str(view).strip().lower()
    if not text:
        return None
    if text in SYSTEM_LISTS:
        return SystemListView(text)
    if text == VIEW_UPCOMING:
        return UpcomingView()
    if text in (VIEW_ARCHIVED, "archive"):
        return ArchivedView()
    kind, sep, value = text.partition(":")
    if sep and kind == "label":
        return LabelView(_parse_id(value, "label"))
    if sep and kind == "project":
        return ProjectView(_parse_id(value, "project"))

    valid = ", ".join(SYSTEM_LISTS + (VIEW_UPCOMING, VIEW_ARCHIVED, "label:<id>", "project:<id>"))
    raise InvalidInputError(f"Unknown view '{view}'. Must be one of: {valid}")


# --- Resolution ---


def build_query(
    owner_id: str,
    selector: Optional[ViewSelector] = None,
    filters: Optional[ViewFilters] = None,
) -> TaskQuery:
    """
    Translate a (non-Upcoming) selector and filters into a store query.

    Raises:
        ValueError: If called with an UpcomingView (use upcoming.upcoming_query)
    """
    filters = filters or DEFAULT_FILTERS
    if isinstance(selector, UpcomingView):
        raise ValueError("UpcomingView is resolved by the Upcoming projector")

    system_list = selector.system_list if isinstance(selector, SystemListView) else None
    label_id = selector.label_id if isinstance(selector, LabelView) else None
    project_id = selector.project_id if isinstance(selector, ProjectView) else None

    # Archived flag (or the Archived selector) overrides the status filter
    if filters.archived or isinstance(selector, ArchivedView):
        status, archived, order = None, True, ORDER_COMPLETED_DESC
    elif filters.status is StatusFilter.OPEN:
        status, archived, order = STATUS_OPEN, False, ORDER_MANUAL
    elif filters.status is StatusFilter.DONE:
        status, archived, order = STATUS_DONE, True, ORDER_COMPLETED_DESC
    else:
        status, archived, order = None, None, ORDER_MANUAL

    return TaskQuery(
        owner_id=owner_id,
        system_list=system_list,
        project_id=project_id,
        label_id=label_id,
        status=status,
        archived=archived,
        order=order,
    )


def resolve(
    store: TaskStore,
    owner_id: str,
    selector: Optional[ViewSelector] = None,
    filters: Optional[ViewFilters] = None,
    now: Optional[Union[date, datetime]] = None,
    cancel: Optional[CancelToken] = None,
) -> List[TaskView]:
    """
    Resolve a view request into an ordered list of tasks.

    Args:
        store: Task store
        owner_id: Owner whose tasks are listed
        selector: What to list (None = every list)
        filters: Lifecycle filters (default: open, not archived)
        now: Reference time, only used by UpcomingView
        cancel: Optional cancellation token

    Returns:
        Ordered TaskViews

    Notes:
        - UpcomingView ignores filters: its membership is fixed (open, not
          archived, due within the horizon)
    """
    if isinstance(selector, UpcomingView):
        return project_upcoming(store, owner_id, selector.horizon_days, now=now, cancel=cancel)

    query = build_query(owner_id, selector, filters)
    with store.snapshot(cancel) as uow:
        tasks = store.query_task_views(uow, query)
    logger.debug("resolve owner=%s selector=%s count=%d", owner_id, selector, len(tasks))
    return tasks


def resolve_page(
    store: TaskStore,
    owner_id: str,
    selector: Optional[ViewSelector] = None,
    filters: Optional[ViewFilters] = None,
    now: Optional[Union[date, datetime]] = None,
    cancel: Optional[CancelToken] = None,
) -> TaskPage:
    """Like resolve(), plus the total number of matching tasks."""
    tasks = resolve(store, owner_id, selector, filters, now=now, cancel=cancel)
    return TaskPage(tasks=tasks, total_count=len(tasks))
