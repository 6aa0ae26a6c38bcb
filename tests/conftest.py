"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from core.data.store import Store
from core.models.tasks import ExecutionRecord

TASK_SOURCE = '''from core.task import Task


class JournalTask(Task):
    tag = {tag!r}
    type = {type!r}
    schedule = {schedule!r}

    def handle(self) -> None:
        with open({journal!r}, "a") as f:
            f.write({name!r} + "\\n")


task = JournalTask
'''


@pytest.fixture()
def pool(tmp_path: Path) -> Path:
    path = tmp_path / "tasks"
    path.mkdir()
    return path


@pytest.fixture()
def journal(tmp_path: Path) -> Path:
    """File every journal task appends its filename to when it runs."""
    return tmp_path / "journal.txt"


@pytest.fixture()
def journal_lines(journal: Path):
    def _read() -> list[str]:
        if not journal.exists():
            return []
        return journal.read_text().splitlines()
    return _read


@pytest.fixture()
def write_task(journal: Path):
    """Write a task file that records its own execution in the journal."""
    def _write(
        directory: Path,
        filename: str,
        tag: str | None = None,
        type: str = "once",
        schedule: str | None = None,
    ) -> Path:
        path = directory / filename
        path.write_text(TASK_SOURCE.format(
            tag=tag,
            type=type,
            schedule=schedule,
            journal=str(journal),
            name=filename,
        ))
        return path
    return _write


@pytest.fixture()
def store(tmp_path: Path):
    s = Store(tmp_path / "home")
    yield s
    s.close()


class MemoryHistory:
    """In-memory ExecutionHistory used where SQLite is beside the point."""

    def __init__(self) -> None:
        self.records: dict[str, ExecutionRecord] = {}
        self.logs: dict[int, dict] = {}

    def has_executed(self, name: str) -> bool:
        return name in self.records

    def mark_executed(self, name, *, tag=None, description=None, priority=0, type="once", executed_at=None):
        record = ExecutionRecord(
            name=name,
            tag=tag,
            description=description,
            priority=priority,
            type=type,
            executed_at=executed_at or datetime.now(),
        )
        self.records[name] = record
        return record

    def last_executed_at(self, name: str) -> datetime | None:
        record = self.records.get(name)
        return record.executed_at if record else None

    def log_start(self, name, *, tag=None, type="once") -> int:
        log_id = len(self.logs) + 1
        self.logs[log_id] = {"name": name, "status": "started"}
        return log_id

    def log_completed(self, log_id, output=None) -> None:
        self.logs[log_id].update(status="completed", output=output)

    def log_failed(self, log_id, error) -> None:
        self.logs[log_id].update(status="failed", error=error)


@pytest.fixture()
def history() -> MemoryHistory:
    return MemoryHistory()
