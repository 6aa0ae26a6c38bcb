"""Core protocols -- the extension points the execution engine depends on.

The engine imports these protocols. Stores and loaders implement them.
The engine NEVER imports concrete implementations.

All protocols use Python's structural subtyping (typing.Protocol):
if your class has the right methods, it implements the protocol.
No inheritance required.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from core.models.tasks import ExecutionRecord, ExecutionType


# ---------------------------------------------------------------------------
# 1. ExecutionHistory -- "task X was executed at time T"
# ---------------------------------------------------------------------------

@runtime_checkable
class ExecutionHistory(Protocol):
    """Records which task files have completed and when.

    Records are keyed by the task's filename.
    Default implementation: Store (SQLite).
    """

    def has_executed(self, name: str) -> bool:
        """Return True if the named task has completed at least once."""
        ...

    def mark_executed(
        self,
        name: str,
        *,
        tag: str | None = None,
        description: str | None = None,
        priority: int = 0,
        type: ExecutionType = "once",
        executed_at: datetime | None = None,
    ) -> ExecutionRecord:
        """Insert or update the execution record for `name`.

        `executed_at` defaults to the current time.
        """
        ...

    def last_executed_at(self, name: str) -> datetime | None:
        """Return when the named task last completed, or None."""
        ...

    def log_start(
        self,
        name: str,
        *,
        tag: str | None = None,
        type: ExecutionType = "once",
    ) -> int:
        """Open an execution log entry and return its id."""
        ...

    def log_completed(self, log_id: int, output: str | None = None) -> None:
        """Close a log entry as completed."""
        ...

    def log_failed(self, log_id: int, error: str) -> None:
        """Close a log entry as failed."""
        ...


# ---------------------------------------------------------------------------
# 2. TaskLoader -- turn a task file into a task object
# ---------------------------------------------------------------------------

@runtime_checkable
class TaskLoader(Protocol):
    """Loads the object a task file provides.

    Must raise TaskLoadError when the file cannot be loaded, and must be
    safe to call repeatedly on the same path. The returned value is
    validated by the engine; anything without a callable `handle` is
    ignored.

    Default implementation: ModuleTaskLoader.
    """

    def load(self, path: Path) -> Any:
        """Load and return the task object defined by `path`."""
        ...
