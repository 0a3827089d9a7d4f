"""
tasks/store.py -- SQLAlchemy-backed persistence layer for task records.

Uses SQLAlchemy Core (not ORM) so the dataclass in tasks/models.py remains
the authoritative domain representation. Swapping SQLite for MySQL or
PostgreSQL is a TASKS_DB_URL change, not a rewrite.

Pattern: Repository + Data Mapper. TaskStore is the repository; _row_to_task
is the mapper. Route handlers never touch SQL directly.

Ownership: every read and write that targets a single task filters on both
id AND user_id. A task owned by someone else is indistinguishable from a
task that does not exist -- callers report both as 404.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TaskStore()                                 # SQLite default
    store = TaskStore("mysql+pymysql://u:pw@host/db")   # MySQL
    task = store.create_task(Task(user_id=1, title="Write report"))
    tasks = store.list_tasks(user_id=1)
    store.update_task(task.id, user_id=1, status="done")
    store.delete_task(task.id, user_id=1)
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.config import get_settings
from tasks.models import DEFAULT_STATUS, Task

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("status", String(50), nullable=False, server_default=DEFAULT_STATUS),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("ix_tasks_user_id", "user_id"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TaskStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().tasks_db_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_task(self, task: Task) -> Task:
        """Insert a task and return it with id and timestamps filled in.

        Status always starts at "pending" regardless of task.status.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _tasks.insert().values(
                    user_id=task.user_id,
                    title=task.title,
                    description=task.description or "",
                    status=DEFAULT_STATUS,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            task_id = result.inserted_primary_key[0]
        return Task(
            id=task_id,
            user_id=task.user_id,
            title=task.title,
            description=task.description or "",
            status=DEFAULT_STATUS,
            created_at=now,
            updated_at=now,
        )

    def list_tasks(self, user_id: int) -> list[Task]:
        """Return every task owned by user_id, newest first.

        id is the tiebreaker for tasks created within the same timestamp.
        """
        with self.engine.connect() as conn:
            rows = conn.execute(
                _tasks.select()
                .where(_tasks.c.user_id == user_id)
                .order_by(_tasks.c.created_at.desc(), _tasks.c.id.desc())
            ).fetchall()
        return [_row_to_task(r) for r in rows]

    def get_task(self, task_id: int, user_id: int) -> Optional[Task]:
        """Return the task if it exists AND belongs to user_id, else None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _tasks.select().where((_tasks.c.id == task_id) & (_tasks.c.user_id == user_id))
            ).fetchone()
        return _row_to_task(row) if row is not None else None

    def update_task(
        self,
        task_id: int,
        user_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Optional[Task]:
        """Apply a partial update and return the updated task.

        None or empty-string fields keep their stored value. updated_at is
        always bumped. Returns None when the task does not exist or is owned
        by a different user -- nothing is written in that case.
        """
        values: dict = {"updated_at": _now_iso()}
        if title:
            values["title"] = title
        if description:
            values["description"] = description
        if status:
            values["status"] = status
        with self.engine.connect() as conn:
            result = conn.execute(
                _tasks.update().where((_tasks.c.id == task_id) & (_tasks.c.user_id == user_id)).values(**values)
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_task(task_id, user_id)

    def delete_task(self, task_id: int, user_id: int) -> bool:
        """Delete a task owned by user_id. Returns False if not found or wrong owner."""
        with self.engine.connect() as conn:
            result = conn.execute(_tasks.delete().where((_tasks.c.id == task_id) & (_tasks.c.user_id == user_id)))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description or "",
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
