"""
FILE: nextup/core/repository.py
PURPOSE: SQLite implementation of the Task Record Store
EXPORTS:
  - SqliteUnitOfWork (one transaction on one connection)
  - SqliteTaskStore (TaskStore adapter)
  - get_store(db_path) -> SqliteTaskStore
  - SCHEMA_SQL: table and index definitions
DEPENDENCIES:
  - sqlite3, contextlib, logging, pathlib (stdlib)
  - nextup.config (DB_PATH default)
  - nextup.core.models, nextup.core.store, nextup.core.cancellation
NOTES:
  - Database stored at ~/.nextup/nextup.db unless NEXTUP_DB / NEXTUP_HOME is set
  - Auto-creates directory and initializes schema on first use
  - Connections run in autocommit mode; transactions are explicit
    (BEGIN IMMEDIATE for writes, BEGIN for read snapshots)
  - Returns domain objects (Task, TaskView, ...), never raw rows
  - system_list can never hold 'upcoming' (CHECK constraint); legacy rows are
    moved to the top of inbox by _migrate_legacy_upcoming()
"""

import contextlib
import logging
import sqlite3
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union

from .. import config
from ..utils import iso_timestamp, utcnow
from .cancellation import CancelToken, check
from .constants import LIST_INBOX, STATUS_OPEN, VIEW_UPCOMING
from .models import Label, LabelRef, Project, ProjectSummary, Task, TaskView
from .store import ORDER_COMPLETED_DESC, ORDER_DUE, ORDER_MANUAL, TaskQuery

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id TEXT NOT NULL,
    name TEXT NOT NULL CHECK(name <> ''),
    created_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ix_projects_owner_name ON projects(owner_id, lower(name));

CREATE TABLE IF NOT EXISTS labels (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id TEXT NOT NULL,
    name TEXT NOT NULL CHECK(name <> ''),
    color TEXT,
    created_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ix_labels_owner_name ON labels(owner_id, lower(name));

CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id TEXT NOT NULL,
    project_id INTEGER REFERENCES projects(id) ON DELETE SET NULL,
    name TEXT NOT NULL CHECK(name <> ''),
    description TEXT,
    due_date TEXT,
    priority INTEGER CHECK(priority IS NULL OR priority BETWEEN 1 AND 4),
    status TEXT NOT NULL DEFAULT 'open' CHECK(status IN ('open', 'done')),
    system_list TEXT NOT NULL DEFAULT 'inbox' CHECK(system_list IN ('inbox', 'next', 'someday')),
    sort_order INTEGER NOT NULL DEFAULT 0,
    is_archived INTEGER NOT NULL DEFAULT 0 CHECK(is_archived IN (0, 1)),
    completed_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK ((status = 'done') = (completed_at IS NOT NULL)),
    CHECK ((status = 'done') = (is_archived = 1))
);
CREATE INDEX IF NOT EXISTS ix_tasks_owner ON tasks(owner_id);
CREATE INDEX IF NOT EXISTS ix_tasks_owner_list_open ON tasks(owner_id, system_list, sort_order)
    WHERE is_archived = 0 AND status = 'open';
CREATE INDEX IF NOT EXISTS ix_tasks_project ON tasks(project_id);
CREATE INDEX IF NOT EXISTS ix_tasks_due_open ON tasks(due_date)
    WHERE is_archived = 0 AND status = 'open';

CREATE TABLE IF NOT EXISTS task_labels (
    task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    label_id INTEGER NOT NULL REFERENCES labels(id) ON DELETE CASCADE,
    PRIMARY KEY (task_id, label_id)
);
CREATE INDEX IF NOT EXISTS ix_task_labels_label ON task_labels(label_id);
"""

_ORDER_BY = {
    ORDER_MANUAL: "t.sort_order ASC, t.id ASC",
    ORDER_COMPLETED_DESC: "t.completed_at DESC, t.id DESC",
    ORDER_DUE: "t.due_date ASC, t.priority IS NULL ASC, t.priority ASC, t.id ASC",
}

# Columns that update_task_fields() may write
_UPDATABLE_FIELDS = ("name", "description", "due_date", "priority", "project_id", "system_list", "sort_order")


class SqliteUnitOfWork:
    """
    One SQLite transaction.

    Created by SqliteTaskStore.unit_of_work() / snapshot(); never directly.
    The cancel token is checked before every statement and before COMMIT.
    """

    def __init__(self, conn: sqlite3.Connection, cancel: Optional[CancelToken], readonly: bool):
        self.conn = conn
        self.cancel = cancel
        self.readonly = readonly

    def execute(self, sql: str, params: Union[tuple, list] = ()) -> sqlite3.Cursor:
        check(self.cancel)
        return self.conn.execute(sql, params)

    def executemany(self, sql: str, seq: list) -> sqlite3.Cursor:
        check(self.cancel)
        return self.conn.executemany(sql, seq)


class SqliteTaskStore:
    """
    SQLite Task Record Store.

    Thread-safety:
    - each unit of work opens its own SQLite connection
    """

    def __init__(self, db_path: Union[str, Path]):
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()
        logger.debug("SqliteTaskStore ready db=%s", self._db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        """
        Open a connection in autocommit mode.

        Enables row_factory for dict-like row access and foreign key constraints
        (required for ON DELETE CASCADE/SET NULL).
        """
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_database(self) -> None:
        """Create tables and indexes if missing. Safe to call multiple times."""
        conn = self._get_conn()
        try:
            conn.executescript(SCHEMA_SQL)
            self._migrate_legacy_upcoming(conn)
        finally:
            conn.close()

    @staticmethod
    def _migrate_legacy_upcoming(conn: sqlite3.Connection) -> None:
        """
        Move rows still filed under the retired 'upcoming' list into inbox.

        Only databases created before the CHECK constraint existed can hold such
        rows. Each migrated row goes to the top of the owner's inbox.
        """
        rows = conn.execute(
            "SELECT id, owner_id FROM tasks WHERE system_list = ? ORDER BY sort_order, id",
            (VIEW_UPCOMING,),
        ).fetchall()
        if not rows:
            return

        now = iso_timestamp(utcnow())
        conn.execute("BEGIN IMMEDIATE")
        try:
            for row in reversed(rows):
                (current_min,) = conn.execute(
                    "SELECT MIN(sort_order) FROM tasks WHERE owner_id = ? AND system_list = ?",
                    (row["owner_id"], LIST_INBOX),
                ).fetchone()
                top = 0 if current_min is None else current_min - 1
                conn.execute(
                    "UPDATE tasks SET system_list = ?, sort_order = ?, updated_at = ? WHERE id = ?",
                    (LIST_INBOX, top, now, row["id"]),
                )
            conn.execute("COMMIT")
        except sqlite3.Error:
            conn.execute("ROLLBACK")
            raise
        logger.info("Migrated %d legacy 'upcoming' task(s) to inbox", len(rows))

    @contextlib.contextmanager
    def _transaction(self, cancel: Optional[CancelToken], readonly: bool) -> Iterator[SqliteUnitOfWork]:
        check(cancel)
        conn = self._get_conn()
        uow = SqliteUnitOfWork(conn, cancel, readonly)
        try:
            conn.execute("BEGIN" if readonly else "BEGIN IMMEDIATE")
            yield uow
            if readonly:
                conn.execute("ROLLBACK")
            else:
                # Last chance to honor cancellation: nothing is visible until COMMIT
                check(cancel)
                conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    # ---- transactions ----

    def unit_of_work(self, cancel: Optional[CancelToken] = None):
        """
        Open a write transaction.

        Usage:
            with store.unit_of_work(cancel) as uow:
                store.set_sort_orders(uow, {...}, now)

        Commits on clean exit; rolls back on any exception, including
        OperationCancelledError raised when the token fires before COMMIT.
        """
        return self._transaction(cancel, readonly=False)

    def snapshot(self, cancel: Optional[CancelToken] = None):
        """Open a read-only transaction: every query inside sees the same committed state."""
        return self._transaction(cancel, readonly=True)

    # ---- reads ----

    def get_task(self, uow: SqliteUnitOfWork, owner_id: str, task_id: int) -> Optional[Task]:
        """
        Fetch single task by ID, scoped to its owner.

        Returns:
            Task object if found and owned by owner_id, None otherwise
        """
        row = uow.execute(
            "SELECT * FROM tasks WHERE id = ? AND owner_id = ?", (task_id, owner_id)
        ).fetchone()
        return Task.from_row(row) if row else None

    def get_tasks_by_ids(self, uow: SqliteUnitOfWork, task_ids: List[int]) -> Dict[int, Task]:
        """
        Fetch tasks by ID regardless of owner.

        Used by batch validation, which must tell "missing" apart from "foreign".
        """
        if not task_ids:
            return {}
        placeholders = ",".join("?" for _ in task_ids)
        rows = uow.execute(
            f"SELECT * FROM tasks WHERE id IN ({placeholders})", tuple(task_ids)
        ).fetchall()
        return {row["id"]: Task.from_row(row) for row in rows}

    def get_task_view(self, uow: SqliteUnitOfWork, owner_id: str, task_id: int) -> Optional[TaskView]:
        row = uow.execute(
            """
            SELECT t.*, p.name AS project_name
            FROM tasks t LEFT JOIN projects p ON p.id = t.project_id
            WHERE t.id = ? AND t.owner_id = ?
            """,
            (task_id, owner_id),
        ).fetchone()
        if not row:
            return None
        return self._hydrate(uow, [row])[0]

    def query_task_views(self, uow: SqliteUnitOfWork, query: TaskQuery) -> List[TaskView]:
        """
        Run a TaskQuery and return fully populated views (project name and labels).

        The ordering is applied in SQL so the partial indexes serve the common
        open-task views.
        """
        where, params = self._where(query)
        try:
            order_by = _ORDER_BY[query.order]
        except KeyError:
            raise ValueError(f"Unknown query order '{query.order}'")
        sql = (
            "SELECT t.*, p.name AS project_name "
            "FROM tasks t LEFT JOIN projects p ON p.id = t.project_id "
            f"WHERE {where} ORDER BY {order_by}"
        )
        logger.debug("query_task_views %s", query)
        rows = uow.execute(sql, params).fetchall()
        return self._hydrate(uow, rows)

    @staticmethod
    def _where(query: TaskQuery) -> Tuple[str, list]:
        clauses = ["t.owner_id = ?"]
        params: list = [query.owner_id]

        if query.system_list is not None:
            clauses.append("t.system_list = ?")
            params.append(query.system_list)

        if query.project_id is not None:
            clauses.append("t.project_id = ?")
            params.append(query.project_id)

        if query.label_id is not None:
            clauses.append(
                "EXISTS (SELECT 1 FROM task_labels tl WHERE tl.task_id = t.id AND tl.label_id = ?)"
            )
            params.append(query.label_id)

        if query.status is not None:
            clauses.append("t.status = ?")
            params.append(query.status)

        if query.archived is not None:
            clauses.append("t.is_archived = ?")
            params.append(1 if query.archived else 0)

        if query.due_on_or_before is not None:
            clauses.append("t.due_date IS NOT NULL AND t.due_date <= ?")
            params.append(query.due_on_or_before)

        return " AND ".join(clauses), params

    def _hydrate(self, uow: SqliteUnitOfWork, rows: List[sqlite3.Row]) -> List[TaskView]:
        """Turn task rows (with project_name) into TaskViews, loading labels in one query."""
        if not rows:
            return []
        task_ids = [row["id"] for row in rows]
        labels: Dict[int, List[LabelRef]] = {task_id: [] for task_id in task_ids}
        placeholders = ",".join("?" for _ in task_ids)
        label_rows = uow.execute(
            f"""
            SELECT tl.task_id, l.id, l.name, l.color
            FROM task_labels tl JOIN labels l ON l.id = tl.label_id
            WHERE tl.task_id IN ({placeholders})
            ORDER BY lower(l.name)
            """,
            tuple(task_ids),
        ).fetchall()
        for lr in label_rows:
            labels[lr["task_id"]].append(LabelRef(id=lr["id"], name=lr["name"], color=lr["color"]))

        return [
            TaskView.from_task(Task.from_row(row), project_name=row["project_name"], labels=labels[row["id"]])
            for row in rows
        ]

    # ---- ordering ----

    def min_sort_order(self, uow: SqliteUnitOfWork, owner_id: str, system_list: str) -> Optional[int]:
        """Smallest sort_order of any row (open or archived) in the (owner, list) pair."""
        (value,) = uow.execute(
            "SELECT MIN(sort_order) FROM tasks WHERE owner_id = ? AND system_list = ?",
            (owner_id, system_list),
        ).fetchone()
        return value

    def sort_sequence(self, uow: SqliteUnitOfWork, owner_id: str, system_list: str) -> List[Tuple[int, int]]:
        """(id, sort_order) pairs of the (owner, list) pair in manual order."""
        rows = uow.execute(
            "SELECT id, sort_order FROM tasks WHERE owner_id = ? AND system_list = ? "
            "ORDER BY sort_order ASC, id ASC",
            (owner_id, system_list),
        ).fetchall()
        return [(row["id"], row["sort_order"]) for row in rows]

    def set_sort_orders(self, uow: SqliteUnitOfWork, assignments: Mapping[int, int], updated_at: str) -> None:
        """Write many sort_order values; only rows whose value changes are touched."""
        if uow.readonly:
            raise RuntimeError("set_sort_orders requires a write unit of work")
        uow.executemany(
            "UPDATE tasks SET sort_order = ?, updated_at = ? WHERE id = ? AND sort_order <> ?",
            [(order, updated_at, task_id, order) for task_id, order in assignments.items()],
        )

    # ---- task writes ----

    def insert_task(
        self,
        uow: SqliteUnitOfWork,
        *,
        owner_id: str,
        name: str,
        system_list: str,
        sort_order: int,
        created_at: str,
        description: Optional[str] = None,
        due_date: Optional[str] = None,
        priority: Optional[int] = None,
        project_id: Optional[int] = None,
    ) -> int:
        """
        Insert a new open, non-archived task.

        Returns:
            ID of the new row
        """
        cursor = uow.execute(
            """
            INSERT INTO tasks (
                owner_id, project_id, name, description, due_date, priority,
                status, system_list, sort_order, is_archived, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
            """,
            (
                owner_id,
                project_id,
                name,
                description,
                due_date,
                priority,
                STATUS_OPEN,
                system_list,
                sort_order,
                created_at,
                created_at,
            ),
        )
        if cursor.lastrowid is None:
            raise RuntimeError("SQLite did not return lastrowid for tasks insert")
        return int(cursor.lastrowid)

    def set_lifecycle(
        self,
        uow: SqliteUnitOfWork,
        task_id: int,
        *,
        status: str,
        is_archived: bool,
        completed_at: Optional[str],
        updated_at: str,
        sort_order: Optional[int] = None,
    ) -> None:
        """Write the lifecycle columns together (the CHECK constraints demand it)."""
        if sort_order is None:
            uow.execute(
                "UPDATE tasks SET status = ?, is_archived = ?, completed_at = ?, updated_at = ? WHERE id = ?",
                (status, 1 if is_archived else 0, completed_at, updated_at, task_id),
            )
        else:
            uow.execute(
                "UPDATE tasks SET status = ?, is_archived = ?, completed_at = ?, updated_at = ?, "
                "sort_order = ? WHERE id = ?",
                (status, 1 if is_archived else 0, completed_at, updated_at, sort_order, task_id),
            )

    def update_task_fields(
        self, uow: SqliteUnitOfWork, task_id: int, fields: Mapping[str, object], updated_at: str
    ) -> None:
        """
        Update plain task fields.

        Raises:
            ValueError: If a field is not updatable here (lifecycle columns go
                through set_lifecycle)
        """
        unknown = set(fields) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")
        if not fields:
            return
        columns = list(fields)
        assignments = ", ".join(f"{column} = ?" for column in columns)
        params = [fields[column] for column in columns] + [updated_at, task_id]
        uow.execute(f"UPDATE tasks SET {assignments}, updated_at = ? WHERE id = ?", params)

    def delete_task(self, uow: SqliteUnitOfWork, task_id: int) -> None:
        """
        Delete task permanently.

        Label links are removed first, then the task row.
        """
        uow.execute("DELETE FROM task_labels WHERE task_id = ?", (task_id,))
        uow.execute("DELETE FROM tasks WHERE id = ?", (task_id,))

    # ---- projects ----

    def create_project(self, uow: SqliteUnitOfWork, owner_id: str, name: str, created_at: str) -> Project:
        """
        Create a new project.

        Raises:
            sqlite3.IntegrityError: If the owner already has a project with this name
        """
        cursor = uow.execute(
            "INSERT INTO projects (owner_id, name, created_at) VALUES (?, ?, ?)",
            (owner_id, name, created_at),
        )
        return Project(id=int(cursor.lastrowid), owner_id=owner_id, name=name, created_at=created_at)

    def get_project(self, uow: SqliteUnitOfWork, owner_id: str, project_id: int) -> Optional[Project]:
        row = uow.execute(
            "SELECT * FROM projects WHERE id = ? AND owner_id = ?", (project_id, owner_id)
        ).fetchone()
        return Project.from_row(row) if row else None

    def list_projects(self, uow: SqliteUnitOfWork, owner_id: str) -> List[Project]:
        rows = uow.execute(
            "SELECT * FROM projects WHERE owner_id = ? ORDER BY lower(name)", (owner_id,)
        ).fetchall()
        return [Project.from_row(row) for row in rows]

    def list_project_summaries(self, uow: SqliteUnitOfWork, owner_id: str) -> List[ProjectSummary]:
        """Projects with their task counts; a completed task is done and archived."""
        rows = uow.execute(
            """
            SELECT p.*,
                   COUNT(t.id) AS total_task_count,
                   SUM(CASE WHEN t.status = 'done' AND t.is_archived = 1 THEN 1 ELSE 0 END)
                       AS completed_task_count
            FROM projects p LEFT JOIN tasks t ON t.project_id = p.id
            WHERE p.owner_id = ?
            GROUP BY p.id
            ORDER BY lower(p.name)
            """,
            (owner_id,),
        ).fetchall()
        return [ProjectSummary.from_row(row) for row in rows]

    def rename_project(self, uow: SqliteUnitOfWork, project_id: int, name: str) -> None:
        uow.execute("UPDATE projects SET name = ? WHERE id = ?", (name, project_id))

    def delete_project(self, uow: SqliteUnitOfWork, project_id: int) -> int:
        """
        Delete a project. Its tasks are kept with project_id set to NULL
        (ON DELETE SET NULL).

        Returns:
            Number of tasks that lost their project
        """
        (orphaned,) = uow.execute(
            "SELECT COUNT(*) FROM tasks WHERE project_id = ?", (project_id,)
        ).fetchone()
        uow.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        return orphaned

    # ---- labels ----

    def create_label(
        self, uow: SqliteUnitOfWork, owner_id: str, name: str, color: Optional[str], created_at: str
    ) -> Label:
        """
        Create a new label.

        Raises:
            sqlite3.IntegrityError: If the owner already has a label with this name
                (case-insensitive)
        """
        cursor = uow.execute(
            "INSERT INTO labels (owner_id, name, color, created_at) VALUES (?, ?, ?, ?)",
            (owner_id, name, color, created_at),
        )
        return Label(id=int(cursor.lastrowid), owner_id=owner_id, name=name, color=color, created_at=created_at)

    def get_label(self, uow: SqliteUnitOfWork, owner_id: str, label_id: int) -> Optional[Label]:
        row = uow.execute(
            "SELECT * FROM labels WHERE id = ? AND owner_id = ?", (label_id, owner_id)
        ).fetchone()
        return Label.from_row(row) if row else None

    def find_label_by_name(self, uow: SqliteUnitOfWork, owner_id: str, name: str) -> Optional[Label]:
        row = uow.execute(
            "SELECT * FROM labels WHERE owner_id = ? AND lower(name) = lower(?)", (owner_id, name)
        ).fetchone()
        return Label.from_row(row) if row else None

    def list_labels(self, uow: SqliteUnitOfWork, owner_id: str) -> List[Label]:
        rows = uow.execute(
            "SELECT * FROM labels WHERE owner_id = ? ORDER BY lower(name)", (owner_id,)
        ).fetchall()
        return [Label.from_row(row) for row in rows]

    def update_label(self, uow: SqliteUnitOfWork, label_id: int, name: str, color: Optional[str]) -> None:
        uow.execute("UPDATE labels SET name = ?, color = ? WHERE id = ?", (name, color, label_id))

    def delete_label(self, uow: SqliteUnitOfWork, label_id: int) -> None:
        """Delete a label; its task links go with it (ON DELETE CASCADE)."""
        uow.execute("DELETE FROM labels WHERE id = ?", (label_id,))

    def attach_label(self, uow: SqliteUnitOfWork, task_id: int, label_id: int) -> None:
        uow.execute(
            "INSERT OR IGNORE INTO task_labels (task_id, label_id) VALUES (?, ?)", (task_id, label_id)
        )

    def detach_label(self, uow: SqliteUnitOfWork, task_id: int, label_id: int) -> None:
        uow.execute("DELETE FROM task_labels WHERE task_id = ? AND label_id = ?", (task_id, label_id))


def get_store(db_path: Optional[Union[str, Path]] = None) -> SqliteTaskStore:
    """
    Open the SQLite store.

    Args:
        db_path: Database file (defaults to config.DB_PATH, read at call time)
    """
    return SqliteTaskStore(db_path if db_path is not None else config.DB_PATH)
