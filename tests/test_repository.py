"""
Tests for the SQLite store: schema constraints, transactions, cancellation,
legacy migration.
"""

import sqlite3
import threading

import pytest

from nextup import config
from nextup.core import repository, service
from nextup.core.cancellation import CancelToken
from nextup.core.exceptions import OperationCancelledError
from nextup.core.repository import SqliteTaskStore

from conftest import NOW, OWNER, sort_orders

LEGACY_SCHEMA = """
CREATE TABLE tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id TEXT NOT NULL,
    project_id INTEGER,
    name TEXT NOT NULL,
    description TEXT,
    due_date TEXT,
    priority INTEGER,
    status TEXT NOT NULL DEFAULT 'open',
    system_list TEXT NOT NULL DEFAULT 'inbox',
    sort_order INTEGER NOT NULL DEFAULT 0,
    is_archived INTEGER NOT NULL DEFAULT 0,
    completed_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


def _raw_insert(store, **overrides):
    row = {
        "owner_id": OWNER,
        "name": "raw",
        "status": "open",
        "system_list": "inbox",
        "sort_order": 0,
        "is_archived": 0,
        "completed_at": None,
        "created_at": "2026-02-13T00:00:00.000000+00:00",
        "updated_at": "2026-02-13T00:00:00.000000+00:00",
    }
    row.update(overrides)
    columns = ", ".join(row)
    placeholders = ", ".join("?" for _ in row)
    with store.unit_of_work() as uow:
        uow.execute(f"INSERT INTO tasks ({columns}) VALUES ({placeholders})", tuple(row.values()))


def test_get_store_uses_configured_path(temp_db):
    store = repository.get_store()

    assert store.db_path == config.DB_PATH
    assert temp_db.exists()


def test_schema_rejects_upcoming_as_stored_list(store):
    with pytest.raises(sqlite3.IntegrityError):
        _raw_insert(store, system_list="upcoming")


@pytest.mark.parametrize(
    "overrides",
    [
        {"status": "done", "is_archived": 1, "completed_at": None},
        {"status": "done", "is_archived": 0, "completed_at": "2026-02-13T00:00:00.000000+00:00"},
        {"status": "open", "is_archived": 1, "completed_at": None},
        {"status": "open", "is_archived": 0, "completed_at": "2026-02-13T00:00:00.000000+00:00"},
        {"priority": 5},
    ],
)
def test_schema_rejects_inconsistent_lifecycle(store, overrides):
    with pytest.raises(sqlite3.IntegrityError):
        _raw_insert(store, **overrides)


def test_expected_indexes_exist(store):
    with store.snapshot() as uow:
        names = {row["name"] for row in uow.execute("SELECT name FROM sqlite_master WHERE type = 'index'")}

    assert {
        "ix_tasks_owner",
        "ix_tasks_owner_list_open",
        "ix_tasks_project",
        "ix_tasks_due_open",
    } <= names


def test_exception_rolls_back_unit_of_work(store):
    task = service.create_task(store, OWNER, "Keep me", now=NOW)

    with pytest.raises(RuntimeError):
        with store.unit_of_work() as uow:
            store.update_task_fields(uow, task.id, {"name": "Changed"}, "2026-02-14T00:00:00.000000+00:00")
            raise RuntimeError("boom")

    assert service.get_task(store, OWNER, task.id).name == "Keep me"


def test_cancelled_reorder_writes_nothing(store):
    a = service.create_task(store, OWNER, "A", system_list="next", now=NOW)
    b = service.create_task(store, OWNER, "B", system_list="next", now=NOW)
    before = sort_orders(store, OWNER, "next")
    token = CancelToken()
    token.cancel()

    with pytest.raises(OperationCancelledError):
        service.reorder_tasks(store, OWNER, "next", [a.id, b.id], now=NOW, cancel=token)

    assert sort_orders(store, OWNER, "next") == before


def test_cancel_before_commit_rolls_back(store):
    task = service.create_task(store, OWNER, "Keep me", now=NOW)
    token = CancelToken()

    with pytest.raises(OperationCancelledError):
        with store.unit_of_work(token) as uow:
            store.update_task_fields(uow, task.id, {"name": "Changed"}, "2026-02-14T00:00:00.000000+00:00")
            token.cancel()

    assert service.get_task(store, OWNER, task.id).name == "Keep me"


def test_expired_deadline_cancels(store):
    with pytest.raises(OperationCancelledError, match="Deadline"):
        service.create_task(store, OWNER, "Too late", cancel=CancelToken.with_timeout(0))


def test_concurrent_readers_never_see_partial_reorder(store):
    tasks = [service.create_task(store, OWNER, f"T{i}", system_list="next", now=NOW) for i in range(20)]
    ids = [t.id for t in tasks]
    forward, backward = ids, list(reversed(ids))
    valid_orders = {tuple(forward), tuple(backward)}
    service.reorder_tasks(store, OWNER, "next", forward, now=NOW)
    seen = []
    stop = threading.Event()

    def reader():
        while True:
            seen.append(tuple(task_id for task_id, _ in sort_orders(store, OWNER, "next")))
            if stop.is_set():
                break

    thread = threading.Thread(target=reader)
    thread.start()
    try:
        for i in range(10):
            service.reorder_tasks(store, OWNER, "next", backward if i % 2 == 0 else forward, now=NOW)
    finally:
        stop.set()
        thread.join()

    assert seen
    assert set(seen) <= valid_orders


def test_delete_removes_label_links(store):
    label = service.create_label(store, OWNER, "urgent", now=NOW)
    task = service.create_task(store, OWNER, "Labelled", label_ids=[label.id], now=NOW)

    service.delete_task(store, OWNER, task.id)

    with store.snapshot() as uow:
        (links,) = uow.execute("SELECT COUNT(*) FROM task_labels").fetchone()
    assert links == 0


def test_legacy_upcoming_rows_move_to_top_of_inbox(tmp_path):
    db_path = tmp_path / "legacy.db"
    conn = sqlite3.connect(str(db_path))
    conn.executescript(LEGACY_SCHEMA)
    rows = [
        (OWNER, "old inbox", "inbox", 0),
        (OWNER, "legacy a", "upcoming", 0),
        (OWNER, "legacy b", "upcoming", 1),
    ]
    conn.executemany(
        "INSERT INTO tasks (owner_id, name, system_list, sort_order, created_at, updated_at) "
        "VALUES (?, ?, ?, ?, '2025-01-01', '2025-01-01')",
        rows,
    )
    conn.commit()
    conn.close()

    store = SqliteTaskStore(db_path)

    inbox = service.list_tasks(store, OWNER, "inbox").tasks
    assert [t.name for t in inbox] == ["legacy a", "legacy b", "old inbox"]
    assert all(t.system_list == "inbox" for t in inbox)
    orders = [t.sort_order for t in inbox]
    assert len(set(orders)) == len(orders)

    # Second open finds nothing left to migrate
    SqliteTaskStore(db_path)
    assert [t.name for t in service.list_tasks(store, OWNER, "inbox").tasks] == [
        "legacy a",
        "legacy b",
        "old inbox",
    ]
