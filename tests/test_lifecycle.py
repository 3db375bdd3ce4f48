"""
Tests for the Open <-> Done/Archived lifecycle.
"""

from datetime import timedelta

from nextup.core import lifecycle, service
from nextup.core.exceptions import TaskNotFoundError
from nextup.core.outcomes import FailureKind, not_found

import pytest

from conftest import NOW, OTHER_OWNER, OWNER, sort_orders


def test_complete_sets_done_archived_and_timestamp(store):
    task = service.create_task(store, OWNER, "Write report", system_list="next", now=NOW)

    outcome = lifecycle.complete(store, OWNER, task.id, now=NOW)

    assert outcome.ok
    done = outcome.value
    assert done.status == "done"
    assert done.is_archived is True
    assert done.completed_at == "2026-02-13T09:30:00.000000+00:00"
    assert done.updated_at == done.completed_at
    assert done.system_list == "next"


def test_complete_twice_keeps_first_completed_at(store):
    task = service.create_task(store, OWNER, "Write report", now=NOW)
    first = lifecycle.complete(store, OWNER, task.id, now=NOW).value

    second = lifecycle.complete(store, OWNER, task.id, now=NOW + timedelta(days=1))

    assert second.ok
    assert second.value.completed_at == first.completed_at
    assert second.value.updated_at == first.updated_at
    assert second.value.status == "done"


def test_complete_missing_task_is_not_found(store):
    outcome = lifecycle.complete(store, OWNER, 12345, now=NOW)

    assert outcome.is_not_found
    assert outcome.failure.kind is FailureKind.NOT_FOUND
    with pytest.raises(TaskNotFoundError):
        outcome.unwrap()


def test_not_found_for_several_tasks_unwraps_to_task_not_found():
    with pytest.raises(TaskNotFoundError) as excinfo:
        not_found([4, 7]).unwrap()

    assert excinfo.value.task_ids == (4, 7)
    assert excinfo.value.task_id == 4


def test_complete_other_owners_task_is_not_found(store):
    task = service.create_task(store, OTHER_OWNER, "Private", now=NOW)

    outcome = lifecycle.complete(store, OWNER, task.id, now=NOW)

    assert outcome.is_not_found
    assert service.get_task(store, OTHER_OWNER, task.id).status == "open"


def test_reopen_returns_to_top_of_original_list(store):
    task = service.create_task(store, OWNER, "Learn piano", system_list="someday", now=NOW)
    service.create_task(store, OWNER, "Sail", system_list="someday", now=NOW)
    lifecycle.complete(store, OWNER, task.id, now=NOW)
    newest = service.create_task(store, OWNER, "Paint", system_list="someday", now=NOW)

    outcome = lifecycle.reopen(store, OWNER, task.id, now=NOW + timedelta(hours=1))

    reopened = outcome.value
    assert reopened.status == "open"
    assert reopened.is_archived is False
    assert reopened.completed_at is None
    assert reopened.system_list == "someday"
    assert reopened.sort_order < newest.sort_order
    assert sort_orders(store, OWNER, "someday")[0][0] == task.id


def test_reopen_open_task_is_noop(store):
    task = service.create_task(store, OWNER, "Still open", now=NOW)
    service.create_task(store, OWNER, "Newer", now=NOW)

    outcome = lifecycle.reopen(store, OWNER, task.id, now=NOW + timedelta(hours=1))

    assert outcome.ok
    assert outcome.value.sort_order == task.sort_order
    assert outcome.value.updated_at == task.updated_at


def test_reopen_other_owners_task_is_not_found(store):
    task = service.create_task(store, OTHER_OWNER, "Private", now=NOW)
    lifecycle.complete(store, OTHER_OWNER, task.id, now=NOW)

    assert lifecycle.reopen(store, OWNER, task.id, now=NOW).is_not_found


@pytest.mark.parametrize("system_list", ["inbox", "next", "someday"])
def test_complete_then_reopen_preserves_list(store, system_list):
    task = service.create_task(store, OWNER, "Round trip", system_list=system_list, now=NOW)

    lifecycle.complete(store, OWNER, task.id, now=NOW)
    reopened = lifecycle.reopen(store, OWNER, task.id, now=NOW).value

    assert reopened.system_list == system_list
