"""
Tests for the service layer: task CRUD validation, list moves, projects, labels.
"""

import pytest

from nextup.core import service
from nextup.core.exceptions import (
    InvalidInputError,
    LabelNotFoundError,
    ProjectNotFoundError,
    TaskNotFoundError,
)

from conftest import NOW, OTHER_OWNER, OWNER, sort_orders


def test_create_task_defaults(store):
    task = service.create_task(store, OWNER, "  Buy milk  ", now=NOW)

    assert task.name == "Buy milk"
    assert task.system_list == "inbox"
    assert task.status == "open"
    assert task.is_archived is False
    assert task.priority is None
    assert task.due_date is None
    assert task.created_at == task.updated_at
    assert task.labels == []


def test_create_task_with_all_fields(store):
    project = service.create_project(store, OWNER, "Home", now=NOW)
    label = service.create_label(store, OWNER, "errand", color="blue", now=NOW)

    task = service.create_task(
        store,
        OWNER,
        "Fix sink",
        description="  Kitchen, not bathroom\n",
        due_date="2026-02-20",
        priority=2,
        system_list="NEXT",
        project_id=project.id,
        label_ids=[label.id, label.id],
        now=NOW,
    )

    assert task.description == "Kitchen, not bathroom"
    assert task.due_date == "2026-02-20"
    assert task.priority == 2
    assert task.system_list == "next"
    assert task.project_name == "Home"
    assert [l.name for l in task.labels] == ["errand"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": ""},
        {"name": "   "},
        {"name": "x" * 501},
        {"name": "ok", "description": "d" * 4001},
        {"name": "ok", "priority": 0},
        {"name": "ok", "priority": 5},
        {"name": "ok", "system_list": "upcoming"},
        {"name": "ok", "system_list": "later"},
        {"name": "ok", "due_date": "2026-02-30"},
        {"name": "ok", "due_date": "2026-02-251"},
        {"name": "ok", "due_date": "2026-02-25garbage"},
        {"name": "ok", "due_date": "20260225"},
    ],
)
def test_create_task_validation(store, kwargs):
    with pytest.raises(InvalidInputError):
        service.create_task(store, OWNER, **kwargs, now=NOW)

    assert service.list_tasks(store, OWNER).total_count == 0


def test_create_task_due_date_accepts_iso_datetime(store):
    task = service.create_task(store, OWNER, "Timed", due_date=" 2026-02-25T10:00:00 ", now=NOW)

    assert task.due_date == "2026-02-25"


def test_create_task_rejects_foreign_project_and_label(store):
    project = service.create_project(store, OTHER_OWNER, "Theirs", now=NOW)
    label = service.create_label(store, OTHER_OWNER, "theirs", now=NOW)

    with pytest.raises(ProjectNotFoundError):
        service.create_task(store, OWNER, "Task", project_id=project.id, now=NOW)
    with pytest.raises(LabelNotFoundError):
        service.create_task(store, OWNER, "Task", label_ids=[label.id], now=NOW)


def test_update_task_fields_and_clear(store):
    task = service.create_task(store, OWNER, "Draft", priority=3, due_date="2026-02-20", now=NOW)

    updated = service.update_task(store, OWNER, task.id, name="Final", priority=None, due_date=None, now=NOW)

    assert updated.name == "Final"
    assert updated.priority is None
    assert updated.due_date is None
    assert updated.sort_order == task.sort_order


def test_update_task_list_change_goes_to_top(store):
    first = service.create_task(store, OWNER, "First next", system_list="next", now=NOW)
    task = service.create_task(store, OWNER, "Moving", now=NOW)

    moved = service.update_task(store, OWNER, task.id, system_list="next", now=NOW)

    assert moved.system_list == "next"
    assert moved.sort_order == first.sort_order - 1
    assert sort_orders(store, OWNER, "next")[0][0] == task.id
    assert sort_orders(store, OWNER, "inbox") == []


def test_update_task_same_list_keeps_position(store):
    task = service.create_task(store, OWNER, "Stay", system_list="next", now=NOW)
    service.create_task(store, OWNER, "Newer", system_list="next", now=NOW)

    same = service.update_task(store, OWNER, task.id, system_list="next", now=NOW)

    assert same.sort_order == task.sort_order


def test_update_other_owners_task_not_found(store):
    task = service.create_task(store, OTHER_OWNER, "Theirs", now=NOW)

    with pytest.raises(TaskNotFoundError):
        service.update_task(store, OWNER, task.id, name="Mine now")


def test_move_tasks_first_id_on_top(store):
    a = service.create_task(store, OWNER, "A", now=NOW)
    b = service.create_task(store, OWNER, "B", now=NOW)
    existing = service.create_task(store, OWNER, "Existing", system_list="someday", now=NOW)

    moved = service.move_tasks(store, OWNER, [a.id, b.id], "someday", now=NOW)

    assert [t.system_list for t in moved] == ["someday", "someday"]
    assert [task_id for task_id, _ in sort_orders(store, OWNER, "someday")] == [a.id, b.id, existing.id]


def test_move_tasks_is_all_or_nothing(store):
    a = service.create_task(store, OWNER, "A", now=NOW)

    with pytest.raises(TaskNotFoundError):
        service.move_tasks(store, OWNER, [a.id, 999], "next", now=NOW)

    assert service.get_task(store, OWNER, a.id).system_list == "inbox"


def test_delete_task(store):
    task = service.create_task(store, OWNER, "Gone", now=NOW)

    service.delete_task(store, OWNER, task.id)

    with pytest.raises(TaskNotFoundError):
        service.get_task(store, OWNER, task.id)
    with pytest.raises(TaskNotFoundError):
        service.delete_task(store, OWNER, task.id)


def test_delete_other_owners_task_not_found(store):
    task = service.create_task(store, OTHER_OWNER, "Theirs", now=NOW)

    with pytest.raises(TaskNotFoundError):
        service.delete_task(store, OWNER, task.id)
    assert service.get_task(store, OTHER_OWNER, task.id).name == "Theirs"


def test_projects_are_per_owner_and_unique(store):
    service.create_project(store, OWNER, "Work", now=NOW)
    service.create_project(store, OTHER_OWNER, "Work", now=NOW)

    with pytest.raises(InvalidInputError):
        service.create_project(store, OWNER, "work", now=NOW)

    assert [p.name for p in service.list_projects(store, OWNER)] == ["Work"]
    assert service.find_project_by_name_or_raise(store, OWNER, "WORK").owner_id == OWNER
    with pytest.raises(InvalidInputError, match="Available projects: Work"):
        service.find_project_by_name_or_raise(store, OWNER, "Play")


def test_labels_attach_and_detach(store):
    label = service.create_label(store, OWNER, "Urgent", now=NOW)
    task = service.create_task(store, OWNER, "Call", now=NOW)

    with pytest.raises(InvalidInputError):
        service.create_label(store, OWNER, "urgent", now=NOW)

    attached = service.attach_label(store, OWNER, task.id, label.id)
    again = service.attach_label(store, OWNER, task.id, label.id)
    assert [l.id for l in attached.labels] == [label.id]
    assert [l.id for l in again.labels] == [label.id]

    detached = service.detach_label(store, OWNER, task.id, label.id)
    assert detached.labels == []

    assert service.find_label_by_name_or_raise(store, OWNER, "URGENT").id == label.id
    with pytest.raises(InvalidInputError):
        service.find_label_by_name_or_raise(store, OWNER, "later")


def test_attach_label_checks_ownership(store):
    theirs = service.create_label(store, OTHER_OWNER, "theirs", now=NOW)
    task = service.create_task(store, OWNER, "Mine", now=NOW)
    label = service.create_label(store, OWNER, "mine", now=NOW)
    foreign_task = service.create_task(store, OTHER_OWNER, "Theirs", now=NOW)

    with pytest.raises(LabelNotFoundError):
        service.attach_label(store, OWNER, task.id, theirs.id)
    with pytest.raises(TaskNotFoundError):
        service.attach_label(store, OWNER, foreign_task.id, label.id)


def test_project_summaries_count_completed_tasks(store):
    project = service.create_project(store, OWNER, "Garden", now=NOW)
    service.create_project(store, OWNER, "Empty", now=NOW)
    tasks = [service.create_task(store, OWNER, f"T{i}", project_id=project.id, now=NOW) for i in range(3)]
    service.create_task(store, OWNER, "No project", now=NOW)
    service.complete_task(store, OWNER, tasks[0].id, now=NOW).unwrap()

    summaries = {p.name: p for p in service.list_project_summaries(store, OWNER)}

    assert list(summaries) == ["Empty", "Garden"]
    garden = summaries["Garden"]
    assert garden.total_task_count == 3
    assert garden.completed_task_count == 1
    assert garden.completion_percentage == 33
    assert summaries["Empty"].total_task_count == 0
    assert summaries["Empty"].completion_percentage == 0


def test_rename_project(store):
    project = service.create_project(store, OWNER, "Work", now=NOW)
    service.create_project(store, OWNER, "Home", now=NOW)
    task = service.create_task(store, OWNER, "Report", project_id=project.id, now=NOW)

    renamed = service.rename_project(store, OWNER, project.id, "  Day job ")

    assert renamed.name == "Day job"
    assert service.get_task(store, OWNER, task.id).project_name == "Day job"
    assert service.rename_project(store, OWNER, project.id, "DAY JOB").name == "DAY JOB"
    with pytest.raises(InvalidInputError):
        service.rename_project(store, OWNER, project.id, "home")
    with pytest.raises(InvalidInputError):
        service.rename_project(store, OWNER, project.id, "  ")


def test_rename_other_owners_project_not_found(store):
    theirs = service.create_project(store, OTHER_OWNER, "Theirs", now=NOW)

    with pytest.raises(ProjectNotFoundError):
        service.rename_project(store, OWNER, theirs.id, "Mine now")
    with pytest.raises(ProjectNotFoundError):
        service.delete_project(store, OWNER, theirs.id)
    assert [p.name for p in service.list_projects(store, OTHER_OWNER)] == ["Theirs"]


def test_delete_project_keeps_its_tasks(store):
    project = service.create_project(store, OWNER, "Abandoned", now=NOW)
    first = service.create_task(store, OWNER, "First", project_id=project.id, now=NOW)
    second = service.create_task(store, OWNER, "Second", project_id=project.id, now=NOW)
    before = sort_orders(store, OWNER, "inbox")

    orphaned = service.delete_project(store, OWNER, project.id)

    assert orphaned == 2
    assert service.list_projects(store, OWNER) == []
    inbox = service.list_tasks(store, OWNER, "inbox").tasks
    assert [t.id for t in inbox] == [second.id, first.id]
    assert all(t.project_id is None and t.project_name is None for t in inbox)
    assert sort_orders(store, OWNER, "inbox") == before


def test_update_label_name_and_color(store):
    label = service.create_label(store, OWNER, "urgent", color="red", now=NOW)
    service.create_label(store, OWNER, "later", now=NOW)
    task = service.create_task(store, OWNER, "Call", label_ids=[label.id], now=NOW)

    updated = service.update_label(store, OWNER, label.id, name="asap")
    assert (updated.name, updated.color) == ("asap", "red")
    assert [l.name for l in service.get_task(store, OWNER, task.id).labels] == ["asap"]

    assert service.update_label(store, OWNER, label.id, color=None).color is None
    with pytest.raises(InvalidInputError):
        service.update_label(store, OWNER, label.id, name="LATER")
    with pytest.raises(LabelNotFoundError):
        service.update_label(store, OTHER_OWNER, label.id, name="stolen")


def test_delete_label_detaches_it_everywhere(store):
    label = service.create_label(store, OWNER, "errand", now=NOW)
    keep = service.create_label(store, OWNER, "home", now=NOW)
    task = service.create_task(store, OWNER, "Groceries", label_ids=[label.id, keep.id], now=NOW)

    with pytest.raises(LabelNotFoundError):
        service.delete_label(store, OTHER_OWNER, label.id)

    service.delete_label(store, OWNER, label.id)

    assert [l.name for l in service.list_labels(store, OWNER)] == ["home"]
    assert [l.name for l in service.get_task(store, OWNER, task.id).labels] == ["home"]
    assert service.list_tasks(store, OWNER).total_count == 1
