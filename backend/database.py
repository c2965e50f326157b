import logging
import os
import sqlite3
import subprocess
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from errors import StoreFailure
from models import Task

logger = logging.getLogger(__name__)

DATABASE_PATH = os.getenv("TASKS_DATABASE_PATH", "tasks.db")

# Columns update_task_db is allowed to write
UPDATABLE_FIELDS = {
    "title",
    "description",
    "status",
    "priority",
    "due_date",
    "parent_id",
    "ai_suggestion",
    "roadmap",
}


@contextmanager
def get_db():
    """Context manager for database connections.
    Any sqlite error raised while the connection is open surfaces as StoreFailure.
    """
    try:
        conn = sqlite3.connect(DATABASE_PATH)
    except sqlite3.Error as e:
        logger.exception("Could not open database at %s", DATABASE_PATH)
        raise StoreFailure(str(e)) from e
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    except sqlite3.Error as e:
        logger.exception("Database operation failed")
        raise StoreFailure(str(e)) from e
    finally:
        conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    env = dict(os.environ, TASKS_DATABASE_PATH=os.path.abspath(DATABASE_PATH))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        env=env,
        check=True
    )


def _now() -> str:
    return datetime.now().isoformat()


def _row_to_task(row) -> Task:
    """Convert a database row to a Task model."""
    return Task(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        status=row["status"],
        priority=row["priority"],
        due_date=row["due_date"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        parent_id=row["parent_id"],
        ai_suggestion=row["ai_suggestion"],
        roadmap=row["roadmap"],
    )


def get_all_tasks() -> list[Task]:
    """All tasks, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks ORDER BY created_at DESC, rowid DESC"
        ).fetchall()
        return [_row_to_task(row) for row in rows]


def get_open_tasks() -> list[Task]:
    """Tasks whose status is not DONE, oldest first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks WHERE status != 'DONE' ORDER BY created_at, rowid"
        ).fetchall()
        return [_row_to_task(row) for row in rows]


def get_task_db(task_id: str) -> Optional[Task]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row:
            return _row_to_task(row)
    return None


def count_tasks() -> int:
    with get_db() as conn:
        return conn.execute("SELECT COUNT(*) FROM tasks").fetchone()[0]


def create_task_db(
    task_id: str,
    title: str,
    description: Optional[str] = None,
    status: str = "TODO",
    priority: str = "MEDIUM",
    due_date: Optional[str] = None,
    parent_id: Optional[str] = None,
    ai_suggestion: Optional[str] = None,
    roadmap: Optional[str] = None
) -> Task:
    """Create a task. created_at and updated_at are set here.
    due_date is an ISO format datetime string or None.
    """
    created_at = _now()
    with get_db() as conn:
        conn.execute(
            """INSERT INTO tasks
               (id, title, description, status, priority, due_date, created_at, updated_at, parent_id, ai_suggestion, roadmap)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (task_id, title, description, status, priority, due_date, created_at, created_at, parent_id, ai_suggestion, roadmap)
        )
        conn.commit()

    return Task(
        id=task_id,
        title=title,
        description=description,
        status=status,
        priority=priority,
        due_date=due_date,
        created_at=created_at,
        updated_at=created_at,
        parent_id=parent_id,
        ai_suggestion=ai_suggestion,
        roadmap=roadmap,
    )


def update_task_db(task_id: str, **updates) -> Optional[Task]:
    """
    Update a task with any fields provided.
    Only writes fields that differ from current values; updated_at is bumped
    when anything changed.

    Args:
        task_id: Task ID to update
        **updates: Column names and values (see UPDATABLE_FIELDS)

    Returns None if the task does not exist.
    """
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if not row:
            return None

        changes = {}
        for field, new_value in updates.items():
            if field not in UPDATABLE_FIELDS:
                continue
            if row[field] != new_value:
                changes[field] = new_value

        if changes:
            changes["updated_at"] = _now()
            set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
            values = list(changes.values()) + [task_id]
            conn.execute(f"UPDATE tasks SET {set_clause} WHERE id = ?", values)
            conn.commit()

        # Re-fetch to get current state
        updated_row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(updated_row)


def delete_task_db(task_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        conn.commit()
        return cursor.rowcount > 0
