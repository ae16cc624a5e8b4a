"""Task persistence: store contract plus a SQLite reference implementation."""

import sqlite3
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import structlog

from db import transaction
from shared_types import Category, Priority, RecurrenceInterval

from .models import Recurrence, Task, as_utc, utcnow

logger = structlog.get_logger()

# Fields callers may change through update(); id, owner and created_at are fixed
UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "notes",
        "due",
        "completed",
        "archived",
        "priority",
        "category",
        "subcategory",
        "recurrence",
        "source",
    }
)


class TaskNotFoundError(LookupError):
    """No task with the given id."""

    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class TaskStore(ABC):
    """Owns Task entities. Ids are assigned here, never by the engine."""

    @abstractmethod
    def create(self, task: Task) -> str: ...

    @abstractmethod
    def update(self, task_id: str, **fields) -> Task:
        """Apply a partial update and return the stored task.

        Raises:
            TaskNotFoundError: no such task
        """
        ...

    @abstractmethod
    def delete(self, task_id: str) -> None:
        """Raises TaskNotFoundError if the task does not exist."""
        ...

    @abstractmethod
    def get(self, task_id: str) -> Task:
        """Raises TaskNotFoundError if the task does not exist."""
        ...

    @abstractmethod
    def list(self, owner_id: str) -> list[Task]:
        """All tasks of one owner, newest first."""
        ...

    def snapshots(self, owner_id: str, poll_interval: float = 1.0) -> Iterator[tuple[Task, ...]]:
        """Yield the owner's full collection each time it changes.

        The first snapshot is yielded immediately. Each call returns a fresh
        generator, so a consumer can restart by calling again. Snapshots are
        tuples of frozen tasks and are safe to hand to the views as-is.
        """
        last = None
        while True:
            tasks = tuple(self.list(owner_id))
            if tasks != last:
                last = tasks
                yield tasks
            else:
                time.sleep(poll_interval)

    @staticmethod
    def _check_fields(fields: dict) -> None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update task fields: {', '.join(sorted(unknown))}")


class SQLiteTaskStore(TaskStore):
    """SQLite-backed store. One connection per operation, WAL mode."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with transaction(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    notes TEXT,
                    due TEXT,
                    completed INTEGER NOT NULL DEFAULT 0,
                    archived INTEGER NOT NULL DEFAULT 0,
                    priority TEXT NOT NULL DEFAULT 'none',
                    category TEXT,
                    subcategory TEXT,
                    is_recurring INTEGER NOT NULL DEFAULT 0,
                    recurrence_interval TEXT,
                    source TEXT NOT NULL DEFAULT 'app',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tasks_owner
                ON tasks(owner_id, created_at)
            """)

    def create(self, task: Task) -> str:
        task_id = uuid.uuid4().hex[:16]
        stored = replace(task, id=task_id, updated_at=utcnow())
        row = self._to_row(stored)
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        with transaction(self.db_path) as conn:
            conn.execute(f"INSERT INTO tasks ({columns}) VALUES ({placeholders})", tuple(row.values()))
        logger.debug("task_stored", task_id=task_id, owner_id=task.owner_id)
        return task_id

    def update(self, task_id: str, **fields) -> Task:
        self._check_fields(fields)
        current = self.get(task_id)
        updated = replace(current, **fields, updated_at=utcnow())
        row = self._to_row(updated)
        row.pop("id")
        assignments = ", ".join(f"{col} = ?" for col in row)
        with transaction(self.db_path) as conn:
            cur = conn.execute(
                f"UPDATE tasks SET {assignments} WHERE id = ?",
                (*row.values(), task_id),
            )
            if cur.rowcount == 0:
                # Deleted between the read and the write
                raise TaskNotFoundError(task_id)
        return updated

    def delete(self, task_id: str) -> None:
        with transaction(self.db_path) as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            if cur.rowcount == 0:
                raise TaskNotFoundError(task_id)

    def get(self, task_id: str) -> Task:
        with transaction(self.db_path, row_factory=True) as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if not row:
            raise TaskNotFoundError(task_id)
        return self._row_to_task(row)

    def list(self, owner_id: str) -> list[Task]:
        with transaction(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE owner_id = ? ORDER BY created_at DESC, rowid DESC",
                (owner_id,),
            ).fetchall()
        return [self._row_to_task(r) for r in rows]

    @staticmethod
    def _to_row(task: Task) -> dict:
        recurrence = task.recurrence
        return {
            "id": task.id,
            "owner_id": task.owner_id,
            "title": task.title,
            "notes": task.notes,
            "due": task.due.isoformat() if task.due else None,
            "completed": int(task.completed),
            "archived": int(task.archived),
            "priority": task.priority.value,
            "category": task.category.value if task.category else None,
            "subcategory": task.subcategory,
            "is_recurring": int(bool(recurrence and recurrence.enabled)),
            "recurrence_interval": recurrence.interval.value
            if recurrence and recurrence.interval
            else None,
            "source": str(task.source),
            "created_at": task.created_at.isoformat(),
            "updated_at": as_utc(task.updated_at or utcnow()).isoformat(),
        }

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        recurrence = None
        if row["recurrence_interval"] or row["is_recurring"]:
            interval = row["recurrence_interval"]
            recurrence = Recurrence(
                enabled=bool(row["is_recurring"]) and interval is not None,
                interval=RecurrenceInterval(interval) if interval else None,
            )
        return Task(
            id=row["id"],
            owner_id=row["owner_id"],
            title=row["title"],
            notes=row["notes"],
            due=datetime.fromisoformat(row["due"]) if row["due"] else None,
            completed=bool(row["completed"]),
            archived=bool(row["archived"]),
            priority=Priority(row["priority"]),
            category=Category(row["category"]) if row["category"] else None,
            subcategory=row["subcategory"],
            recurrence=recurrence,
            source=row["source"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
