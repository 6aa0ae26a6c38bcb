"""SQLite storage layer for task execution history.

Two tables:
- tasks:      one row per task file that has completed (upserted by name)
- task_logs:  one row per execution attempt, with captured output/errors

Rows are keyed by the task's filename; nothing here deletes records.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from core.models.tasks import TYPE_ONCE, ExecutionLog, ExecutionRecord, ExecutionType

logger = logging.getLogger(__name__)

DB_FILENAME = "db.sqlite"


class Store:
    """Execution history backed by SQLite.

    Implements the ExecutionHistory protocol. The database lives at
    <home>/db.sqlite (~/.taskrunner/db.sqlite by default).
    """

    def __init__(self, home: Path) -> None:
        self._home = home
        self._db_path = home / DB_FILENAME
        self._db: sqlite3.Connection | None = None
        self._init_sqlite()

    # ------------------------------------------------------------------
    # SQLite
    # ------------------------------------------------------------------

    def _init_sqlite(self) -> None:
        """Initialize SQLite database and create tables if needed."""
        self._home.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(str(self._db_path))
        self._db.row_factory = sqlite3.Row
        self._db.execute("PRAGMA journal_mode=WAL")

        self._db.executescript("""
            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                tag TEXT,
                description TEXT,
                priority INTEGER NOT NULL DEFAULT 0,
                type TEXT NOT NULL DEFAULT 'once' CHECK (type IN ('once', 'always')),
                executed_at TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_tasks_tag
                ON tasks(tag);

            CREATE TABLE IF NOT EXISTS task_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                task_name TEXT NOT NULL,
                tag TEXT,
                type TEXT NOT NULL DEFAULT 'once' CHECK (type IN ('once', 'always')),
                status TEXT NOT NULL CHECK (status IN ('started', 'completed', 'failed')),
                output TEXT,
                error TEXT,
                execution_time INTEGER,
                started_at TEXT,
                completed_at TEXT,
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_task_logs_name_status
                ON task_logs(task_name, status);
            CREATE INDEX IF NOT EXISTS idx_task_logs_created_status
                ON task_logs(created_at, status);
        """)
        self._db.commit()
        logger.debug("SQLite initialized at %s", self._db_path)

    @property
    def db(self) -> sqlite3.Connection:
        if self._db is None:
            raise RuntimeError("Store not initialized")
        return self._db

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Close the SQLite connection."""
        if self._db:
            self._db.close()
            self._db = None

    # ------------------------------------------------------------------
    # Execution records
    # ------------------------------------------------------------------

    def has_executed(self, name: str) -> bool:
        """Check if a task has been executed."""
        row = self.db.execute("SELECT 1 FROM tasks WHERE name = ?", (name,)).fetchone()
        return row is not None

    def mark_executed(
        self,
        name: str,
        *,
        tag: str | None = None,
        description: str | None = None,
        priority: int = 0,
        type: ExecutionType = TYPE_ONCE,
        executed_at: datetime | None = None,
    ) -> ExecutionRecord:
        """Insert or update the execution record for a task."""
        now = _utcnow()
        executed_at = executed_at or now
        self.db.execute(
            """INSERT INTO tasks
               (name, tag, description, priority, type, executed_at, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(name) DO UPDATE SET
                   tag = excluded.tag,
                   description = excluded.description,
                   priority = excluded.priority,
                   type = excluded.type,
                   executed_at = excluded.executed_at,
                   updated_at = excluded.updated_at""",
            (
                name,
                tag,
                description,
                priority,
                type,
                _to_iso(executed_at),
                now.isoformat(),
                now.isoformat(),
            ),
        )
        self.db.commit()

        record = self.get_record(name)
        if record is None:
            raise RuntimeError(f"Execution record for {name} was not written")
        return record

    def get_record(self, name: str) -> ExecutionRecord | None:
        row = self.db.execute("SELECT * FROM tasks WHERE name = ?", (name,)).fetchone()
        return self._row_to_record(row) if row else None

    def last_executed_at(self, name: str) -> datetime | None:
        """When the task last completed, or None if it never has."""
        record = self.get_record(name)
        return record.executed_at if record else None

    def list_records(
        self,
        tag: str | None = None,
        type: ExecutionType | None = None,
    ) -> list[ExecutionRecord]:
        """List execution records, optionally filtered by tag and/or type."""
        conditions = []
        params: list = []

        if tag is not None:
            conditions.append("tag = ?")
            params.append(tag)
        if type is not None:
            conditions.append("type = ?")
            params.append(type)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = self.db.execute(
            f"SELECT * FROM tasks {where} ORDER BY name ASC",
            params,
        ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def _row_to_record(self, row: sqlite3.Row) -> ExecutionRecord:
        return ExecutionRecord(
            name=row["name"],
            tag=row["tag"],
            description=row["description"],
            priority=row["priority"],
            type=row["type"],
            executed_at=datetime.fromisoformat(row["executed_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # ------------------------------------------------------------------
    # Execution logs
    # ------------------------------------------------------------------

    def log_start(
        self,
        name: str,
        *,
        tag: str | None = None,
        type: ExecutionType = TYPE_ONCE,
    ) -> int:
        """Open a log entry for an execution attempt and return its id."""
        now = _utcnow().isoformat()
        cursor = self.db.execute(
            """INSERT INTO task_logs (task_name, tag, type, status, started_at, created_at)
               VALUES (?, ?, ?, 'started', ?, ?)""",
            (name, tag, type, now, now),
        )
        self.db.commit()
        return int(cursor.lastrowid)

    def log_completed(self, log_id: int, output: str | None = None) -> None:
        """Mark a log entry as completed."""
        self._finish_log(log_id, status="completed", output=output)

    def log_failed(self, log_id: int, error: str) -> None:
        """Mark a log entry as failed."""
        self._finish_log(log_id, status="failed", error=error)

    def _finish_log(
        self,
        log_id: int,
        status: str,
        output: str | None = None,
        error: str | None = None,
    ) -> None:
        row = self.db.execute(
            "SELECT started_at FROM task_logs WHERE id = ?", (log_id,)
        ).fetchone()
        if row is None:
            logger.warning("Unknown task log id %s", log_id)
            return

        completed_at = _utcnow()
        execution_time = None
        if row["started_at"]:
            started_at = datetime.fromisoformat(row["started_at"])
            execution_time = int((completed_at - started_at).total_seconds() * 1000)

        self.db.execute(
            """UPDATE task_logs
               SET status = ?, output = ?, error = ?, completed_at = ?, execution_time = ?
               WHERE id = ?""",
            (status, output, error, completed_at.isoformat(), execution_time, log_id),
        )
        self.db.commit()

    def recent_logs(self, name: str, limit: int = 10) -> list[ExecutionLog]:
        """Most recent log entries for a task, newest first."""
        rows = self.db.execute(
            """SELECT * FROM task_logs WHERE task_name = ?
               ORDER BY created_at DESC, id DESC LIMIT ?""",
            (name, limit),
        ).fetchall()
        return [self._row_to_log(r) for r in rows]

    def failed_logs(self, limit: int = 50) -> list[ExecutionLog]:
        """Most recent failed log entries across all tasks, newest first."""
        rows = self.db.execute(
            """SELECT * FROM task_logs WHERE status = 'failed'
               ORDER BY created_at DESC, id DESC LIMIT ?""",
            (limit,),
        ).fetchall()
        return [self._row_to_log(r) for r in rows]

    def all_logs(self, limit: int = 50) -> list[ExecutionLog]:
        rows = self.db.execute(
            "SELECT * FROM task_logs ORDER BY created_at DESC, id DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [self._row_to_log(r) for r in rows]

    def _row_to_log(self, row: sqlite3.Row) -> ExecutionLog:
        return ExecutionLog(
            id=row["id"],
            task_name=row["task_name"],
            tag=row["tag"],
            type=row["type"],
            status=row["status"],
            output=row["output"],
            error=row["error"],
            execution_time=row["execution_time"],
            started_at=_parse(row["started_at"]),
            completed_at=_parse(row["completed_at"]),
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
