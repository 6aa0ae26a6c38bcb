"""Task runner -- discovers task files and executes the eligible ones.

For every invocation:
1. Collects task files from all pools, sorted by filename
2. Loads each file into a task object
3. Skips it if history says a 'once' task already ran, if the task's own
   should_run() vetoes it, or if it does not match the tag filter
4. Runs before() -> handle() -> after()
5. Records the execution and adds the file to the run summary

Files are processed one at a time. A failing file is recorded in the
summary and never stops the files after it.
"""

from __future__ import annotations

import contextlib
import io
import logging
import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from core.errors import TaskLoadError, TaskNotFoundError
from core.loader import ModuleTaskLoader
from core.models.tasks import RunError, RunSummary
from core.protocols import ExecutionHistory, TaskLoader
from core.task import Task, as_task
from scheduler.pool import TaskPool

logger = logging.getLogger(__name__)


class TaskRunner:
    """Synchronous execution engine for task pools.

    Usage:
        runner = TaskRunner(pools=["tasks/"], history=Store(home))
        summary = runner.run(tag="install")
        summary = runner.force().run_by_name("2024_11_01_120000_seed")

    A runner keeps the state of its last run; use separate instances for
    independent concurrent callers.
    """

    def __init__(
        self,
        pools: TaskPool | Sequence[str | Path],
        history: ExecutionHistory,
        loader: TaskLoader | None = None,
        *,
        timezone: str = "UTC",
        capture_output: bool = True,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._pool = pools if isinstance(pools, TaskPool) else TaskPool(pools)
        self._history = history
        self._loader = loader or ModuleTaskLoader()
        self._timezone = timezone
        self._capture_output = capture_output
        self._clock = clock or _utcnow

        self._track_executions = True
        self._force = False

        self._executed: list[Path] = []
        self._skipped: list[Path] = []
        self._errors: list[RunError] = []

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def track_executions(self, track: bool = True) -> TaskRunner:
        """Enable or disable execution tracking.

        When disabled, history is neither consulted nor updated.
        """
        self._track_executions = track
        return self

    def force(self, force: bool = True) -> TaskRunner:
        """Re-run 'once' tasks that already executed.

        Does not bypass should_run() or the tag filter.
        """
        self._force = force
        return self

    @property
    def pools(self) -> list[Path]:
        return self._pool.paths

    @property
    def pool(self) -> TaskPool:
        return self._pool

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, tag: str | None = None) -> RunSummary:
        """Run all tasks from the configured pools.

        Args:
            tag: Only execute tasks whose tag equals this value.
        """
        self._reset()

        files = self._pool.collect()
        if not files:
            logger.info("No task files found in the configured pools")
            return self.summary()

        now = self._clock()
        logger.info(
            "Starting task execution: %d file(s), tag=%s, force=%s",
            len(files), tag, self._force,
        )

        for path in files:
            self._execute_task(path, tag=tag, now=now)

        summary = self.summary()
        self._log_summary(summary)
        return summary

    def run_by_name(self, name: str) -> RunSummary:
        """Run a single task by filename (extension optional).

        Raises TaskNotFoundError if no pool contains the file.
        """
        self._reset()

        path = self._pool.find(name)
        if path is None:
            raise TaskNotFoundError(name)

        logger.info("Running specific task: %s", path.name)
        self._execute_task(path, now=self._clock())

        summary = self.summary()
        self._log_summary(summary)
        return summary

    def task_exists(self, name: str) -> bool:
        return self._pool.find(name) is not None

    def _execute_task(self, path: Path, tag: str | None = None, now: datetime | None = None) -> None:
        """Take one task file through load -> checks -> hooks -> record."""
        name = path.name
        log_id: int | None = None

        try:
            if not path.is_file() or not os.access(path, os.R_OK):
                raise TaskLoadError(f"File is not readable: {path}")

            task = as_task(self._loader.load(path))
            if task is None:
                logger.warning("Invalid task object in file: %s", path)
                return

            if self._track_executions and not self._force and self._should_skip_for_history(name, task):
                self._skipped.append(path)
                return

            last_run = self._history.last_executed_at(name) if self._track_executions else None
            task.bind(name, last_run_at=last_run, now=now, timezone=self._timezone)

            if not task.should_run():
                logger.debug("Skipping task due to should_run() condition: %s", name)
                self._skipped.append(path)
                return

            if tag is not None and task.get_tag() != tag:
                logger.debug(
                    "Skipping task due to tag filter: %s (required=%s, task=%s)",
                    name, tag, task.get_tag() or "none",
                )
                self._skipped.append(path)
                return

            if self._track_executions:
                log_id = self._log_start(name, task)

            logger.info("Executing task: %s (tag=%s, type=%s)", name, task.get_tag() or "none", task.get_type())
            output = self._invoke(task, name)

            if log_id is not None:
                self._log_finish(log_id, output=output)

            if self._track_executions:
                self._track_execution(name, task, now)

            self._executed.append(path)
            logger.info("Successfully executed task: %s", name)

        except Exception as exc:
            error = RunError(file=str(path), message=str(exc), line=_error_line(exc, path))
            if log_id is not None:
                self._log_finish(log_id, error=f"{error.message} at line {error.line}")
            self._errors.append(error)
            logger.error("Failed to execute task %s: %s (line %s)", name, error.message, error.line)

    def _invoke(self, task: Task, name: str) -> str | None:
        """Run before -> handle -> after, capturing stdout if enabled."""
        if not self._capture_output:
            self._run_hooks(task, name)
            return None

        buffer = io.StringIO()
        with contextlib.redirect_stdout(buffer):
            self._run_hooks(task, name)
        output = buffer.getvalue()
        if output:
            logger.debug("Output from %s:\n%s", name, output.rstrip())
        return output

    def _run_hooks(self, task: Task, name: str) -> None:
        logger.debug("Executing before hook: %s", name)
        task.before()
        task.handle()
        logger.debug("Executing after hook: %s", name)
        task.after()

    def _should_skip_for_history(self, name: str, task: Task) -> bool:
        """Skip 'once' tasks that already have an execution record."""
        if not self._history.has_executed(name):
            return False

        if task.is_type_always():
            logger.debug("Re-executing 'always' task: %s", name)
            return False

        logger.debug("Skipping 'once' task that was already executed: %s", name)
        return True

    def _track_execution(self, name: str, task: Task, now: datetime | None) -> None:
        """Record a successful execution; failures here never fail the task."""
        try:
            self._history.mark_executed(
                name,
                tag=task.get_tag(),
                description=task.get_description(),
                priority=task.get_priority(),
                type=task.get_type(),
                executed_at=now,
            )
            logger.debug("Tracked execution for task: %s (type=%s)", name, task.get_type())
        except Exception as exc:
            logger.warning("Failed to track task execution: %s (%s)", name, exc)

    def _log_start(self, name: str, task: Task) -> int | None:
        try:
            return self._history.log_start(name, tag=task.get_tag(), type=task.get_type())
        except Exception as exc:
            logger.warning("Failed to open execution log for %s (%s)", name, exc)
            return None

    def _log_finish(self, log_id: int, output: str | None = None, error: str | None = None) -> None:
        try:
            if error is None:
                self._history.log_completed(log_id, output)
            else:
                self._history.log_failed(log_id, error)
        except Exception as exc:
            logger.warning("Failed to close execution log %s (%s)", log_id, exc)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._executed = []
        self._skipped = []
        self._errors = []

    def summary(self) -> RunSummary:
        """Summary of the last run()/run_by_name() call."""
        return RunSummary(
            executed_files=[p.name for p in self._executed],
            skipped_files=[p.name for p in self._skipped],
            errors=list(self._errors),
        )

    @property
    def executed_files(self) -> list[Path]:
        return list(self._executed)

    @property
    def skipped_files(self) -> list[Path]:
        return list(self._skipped)

    @property
    def errors(self) -> list[RunError]:
        return list(self._errors)

    def was_successful(self) -> bool:
        return not self._errors

    def _log_summary(self, summary: RunSummary) -> None:
        logger.info(
            "Task execution completed: executed=%d skipped=%d errors=%d",
            summary.executed_count, summary.skipped_count, summary.error_count,
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _error_line(exc: BaseException, path: Path) -> int | None:
    """Line in the task file where the error was raised, if known."""
    if isinstance(exc, SyntaxError) and exc.lineno:
        return exc.lineno
    if isinstance(exc.__cause__, SyntaxError) and exc.__cause__.lineno:
        return exc.__cause__.lineno
    if isinstance(exc, TaskLoadError) and exc.__cause__ is None:
        return None

    source = exc.__cause__ if exc.__cause__ is not None else exc
    frames = traceback.extract_tb(source.__traceback__)
    if not frames:
        return None

    target = str(path.resolve())
    for frame in reversed(frames):
        try:
            if str(Path(frame.filename).resolve()) == target:
                return frame.lineno
        except OSError:
            continue
    return frames[-1].lineno
