"""Task models -- execution history records, execution logs, and run summaries."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, computed_field

ExecutionType = Literal["once", "always"]

TYPE_ONCE: ExecutionType = "once"
TYPE_ALWAYS: ExecutionType = "always"
EXECUTION_TYPES: tuple[str, ...] = (TYPE_ONCE, TYPE_ALWAYS)


class ExecutionRecord(BaseModel):
    """A task that has completed at least once.

    Keyed by the task's source filename: renaming a task file starts a
    fresh history for it.
    """

    name: str
    tag: str | None = None
    description: str | None = None
    priority: int = 0
    type: ExecutionType = TYPE_ONCE
    executed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ExecutionLog(BaseModel):
    """One execution attempt of a task, with captured output."""

    id: int
    task_name: str
    tag: str | None = None
    type: ExecutionType = TYPE_ONCE
    status: Literal["started", "completed", "failed"] = "started"
    output: str | None = None
    error: str | None = None
    execution_time: int | None = None  # milliseconds
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def execution_time_seconds(self) -> float | None:
        return self.execution_time / 1000 if self.execution_time is not None else None


class RunError(BaseModel):
    """A task file that failed to load or raised while executing."""

    file: str
    message: str
    line: int | None = None


class RunSummary(BaseModel):
    """Result of a single TaskRunner.run() / run_by_name() call."""

    executed_files: list[str] = Field(default_factory=list)
    skipped_files: list[str] = Field(default_factory=list)
    errors: list[RunError] = Field(default_factory=list)

    @computed_field
    @property
    def executed_count(self) -> int:
        return len(self.executed_files)

    @computed_field
    @property
    def skipped_count(self) -> int:
        return len(self.skipped_files)

    @computed_field
    @property
    def error_count(self) -> int:
        return len(self.errors)

    @computed_field
    @property
    def success(self) -> bool:
        return not self.errors
