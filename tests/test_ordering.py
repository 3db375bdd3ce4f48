"""
Tests for manual ordering: top insertion and atomic bulk reorder.
"""

import pytest

from nextup.core import ordering, service
from nextup.core.exceptions import TaskNotFoundError
from nextup.core.outcomes import FailureKind

from conftest import NOW, OTHER_OWNER, OWNER, sort_orders


def _ids(store, owner_id, system_list):
    return [task_id for task_id, _ in sort_orders(store, owner_id, system_list)]


def test_insert_at_top_empty_list_is_zero(store):
    with store.unit_of_work() as uow:
        assert ordering.insert_at_top(store, uow, OWNER, "next") == 0


def test_new_tasks_go_on_top(store):
    a = service.create_task(store, OWNER, "A", system_list="next", now=NOW)
    b = service.create_task(store, OWNER, "B", system_list="next", now=NOW)
    c = service.create_task(store, OWNER, "C", system_list="next", now=NOW)

    assert (a.sort_order, b.sort_order, c.sort_order) == (0, -1, -2)
    assert _ids(store, OWNER, "next") == [c.id, b.id, a.id]


def test_insert_at_top_counts_archived_rows(store):
    a = service.create_task(store, OWNER, "A", system_list="inbox", now=NOW)
    b = service.create_task(store, OWNER, "B", system_list="inbox", now=NOW)
    service.complete_task(store, OWNER, b.id, now=NOW).unwrap()

    with store.unit_of_work() as uow:
        top = ordering.insert_at_top(store, uow, OWNER, "inbox")
    assert top == b.sort_order - 1
    assert top < a.sort_order


def test_insert_at_top_is_scoped_per_owner_and_list(store):
    service.create_task(store, OWNER, "A", system_list="next", now=NOW)
    service.create_task(store, OWNER, "B", system_list="next", now=NOW)

    with store.unit_of_work() as uow:
        assert ordering.insert_at_top(store, uow, OTHER_OWNER, "next") == 0
        assert ordering.insert_at_top(store, uow, OWNER, "someday") == 0


def test_insert_at_top_rejects_upcoming(store):
    with store.unit_of_work() as uow:
        with pytest.raises(ValueError):
            ordering.insert_at_top(store, uow, OWNER, "upcoming")


def test_reorder_assigns_positions_in_batch_order(store):
    a = service.create_task(store, OWNER, "A", system_list="next", now=NOW)
    b = service.create_task(store, OWNER, "B", system_list="next", now=NOW)
    c = service.create_task(store, OWNER, "C", system_list="next", now=NOW)

    outcome = service.reorder_tasks(store, OWNER, "next", [a.id, c.id, b.id], now=NOW)

    assert outcome.ok
    assert outcome.value == {a.id: 0, c.id: 1, b.id: 2}
    assert sort_orders(store, OWNER, "next") == [(a.id, 0), (c.id, 1), (b.id, 2)]


def test_partial_reorder_keeps_rest_after_batch(store):
    a = service.create_task(store, OWNER, "A", system_list="next", now=NOW)
    b = service.create_task(store, OWNER, "B", system_list="next", now=NOW)
    c = service.create_task(store, OWNER, "C", system_list="next", now=NOW)
    d = service.create_task(store, OWNER, "D", system_list="next", now=NOW)
    # Current order: d, c, b, a

    outcome = service.reorder_tasks(store, OWNER, "next", [a.id], now=NOW)

    assert outcome.ok
    assert sort_orders(store, OWNER, "next") == [(a.id, 0), (d.id, 1), (c.id, 2), (b.id, 3)]


def test_reorder_renumbers_archived_rows_without_collision(store):
    a = service.create_task(store, OWNER, "A", system_list="next", now=NOW)
    b = service.create_task(store, OWNER, "B", system_list="next", now=NOW)
    done = service.create_task(store, OWNER, "Done", system_list="next", now=NOW)
    service.complete_task(store, OWNER, done.id, now=NOW).unwrap()

    assert service.reorder_tasks(store, OWNER, "next", [a.id, b.id], now=NOW).ok

    orders = [order for _, order in sort_orders(store, OWNER, "next")]
    assert len(orders) == len(set(orders))

    reopened = service.reopen_task(store, OWNER, done.id, now=NOW).unwrap()
    assert _ids(store, OWNER, "next")[0] == reopened.id


def test_reorder_wrong_list_changes_nothing(store):
    a = service.create_task(store, OWNER, "A", system_list="next", now=NOW)
    b = service.create_task(store, OWNER, "B", system_list="next", now=NOW)
    stray = service.create_task(store, OWNER, "Stray", system_list="inbox", now=NOW)
    before_next = sort_orders(store, OWNER, "next")
    before_inbox = sort_orders(store, OWNER, "inbox")

    outcome = service.reorder_tasks(store, OWNER, "next", [a.id, stray.id, b.id], now=NOW)

    assert not outcome.ok
    assert outcome.failure.kind is FailureKind.VALIDATION_FAILED
    assert outcome.failure.task_ids == (stray.id,)
    assert sort_orders(store, OWNER, "next") == before_next
    assert sort_orders(store, OWNER, "inbox") == before_inbox


def test_reorder_foreign_task_is_validation_failure(store):
    mine = service.create_task(store, OWNER, "Mine", system_list="next", now=NOW)
    theirs = service.create_task(store, OTHER_OWNER, "Theirs", system_list="next", now=NOW)
    before = sort_orders(store, OTHER_OWNER, "next")

    outcome = service.reorder_tasks(store, OWNER, "next", [theirs.id, mine.id], now=NOW)

    assert outcome.failure.kind is FailureKind.VALIDATION_FAILED
    assert outcome.failure.task_ids == (theirs.id,)
    assert sort_orders(store, OTHER_OWNER, "next") == before


def test_reorder_missing_task_is_not_found(store):
    a = service.create_task(store, OWNER, "A", system_list="next", now=NOW)

    outcome = service.reorder_tasks(store, OWNER, "next", [a.id, 9999], now=NOW)

    assert outcome.is_not_found
    assert outcome.failure.task_ids == (9999,)


def test_reorder_several_missing_tasks_unwrap_to_not_found(store):
    a = service.create_task(store, OWNER, "A", system_list="next", now=NOW)

    outcome = service.reorder_tasks(store, OWNER, "next", [a.id, 9998, 9999], now=NOW)

    assert outcome.is_not_found
    with pytest.raises(TaskNotFoundError) as excinfo:
        outcome.unwrap()
    assert excinfo.value.task_ids == (9998, 9999)
    assert str(excinfo.value) == "Tasks 9998, 9999 not found"


@pytest.mark.parametrize("ids", [[], [1, 1]])
def test_reorder_rejects_empty_or_duplicate_batch(store, ids):
    service.create_task(store, OWNER, "A", system_list="next", now=NOW)

    outcome = service.reorder_tasks(store, OWNER, "next", ids, now=NOW)

    assert outcome.failure.kind is FailureKind.VALIDATION_FAILED


def test_reorder_upcoming_is_rejected(store):
    a = service.create_task(store, OWNER, "A", due_date="2026-02-14", now=NOW)

    outcome = service.reorder_tasks(store, OWNER, "upcoming", [a.id], now=NOW)

    assert outcome.failure.kind is FailureKind.VALIDATION_FAILED
    assert "upcoming" in outcome.failure.message
