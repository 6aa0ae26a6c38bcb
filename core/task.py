"""Task contract -- the unit of work the runner executes.

A task file defines a module-level `task`, either a Task subclass, an
instance of one, or any object with a callable `handle` method:

    from core.task import Task

    class SeedCategories(Task):
        tag = "install"
        description = "Create the default categories"

        def handle(self) -> None:
            ...

    task = SeedCategories

Two variants share one interface: Task (the full contract) and
CallableTask (wraps a bare object exposing `handle`, with defaults for
everything else). as_task() maps a loaded value onto one of them.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from core.models.tasks import EXECUTION_TYPES, TYPE_ALWAYS, TYPE_ONCE, ExecutionType
from scheduler.schedulable import Schedulable

logger = logging.getLogger(__name__)


class Task(Schedulable, ABC):
    """Base class for tasks.

    Subclasses implement handle() and may override before(), after()
    and should_run().
    """

    # Free-form label used by the tag filter
    tag: str | None = None

    # Lower numbers are meant to run first; ordering is by filename, so
    # this is recorded but not used for execution order.
    priority: int = 0

    description: str | None = None

    # 'once' tasks are skipped after their first completion; 'always' tasks are not
    type: ExecutionType = TYPE_ONCE

    @abstractmethod
    def handle(self) -> None:
        """Execute the task logic."""

    def before(self) -> None:
        """Hook that runs before handle()."""

    def after(self) -> None:
        """Hook that runs after handle()."""

    def should_run(self) -> bool:
        """Determine if the task should be executed.

        Override to add conditional execution logic. By default only the
        schedule is consulted.
        """
        return self.should_run_by_schedule()

    def get_tag(self) -> str | None:
        return self.tag

    def set_tag(self, tag: str | None) -> Task:
        self.tag = tag
        return self

    def get_priority(self) -> int:
        return self.priority

    def set_priority(self, priority: int) -> Task:
        self.priority = priority
        return self

    def get_description(self) -> str | None:
        return self.description

    def get_type(self) -> ExecutionType:
        """The execution type; an unrecognised value is treated as 'once'."""
        if self.type not in EXECUTION_TYPES:
            logger.warning(
                "Unknown task type %r on %s, treating as '%s'",
                self.type, type(self).__name__, TYPE_ONCE,
            )
            self.type = TYPE_ONCE
        return self.type

    def set_type(self, type: str) -> Task:
        if type not in EXECUTION_TYPES:
            raise ValueError("Invalid task type. Must be 'once' or 'always'.")
        self.type = type  # type: ignore[assignment]
        return self

    def is_type_once(self) -> bool:
        return self.get_type() == TYPE_ONCE

    def is_type_always(self) -> bool:
        return self.get_type() == TYPE_ALWAYS

    def to_dict(self) -> dict[str, Any]:
        """Task metadata as a plain dict."""
        return {
            "class": type(self).__name__,
            "tag": self.tag,
            "priority": self.priority,
            "description": self.description,
            "type": self.get_type(),
            "schedule": self.get_schedule(),
        }


class CallableTask(Task):
    """Adapter for objects that only guarantee a callable `handle`.

    Optional attributes are read once here; missing ones take the Task
    defaults (no tag, priority 0, type 'once', no hooks).
    """

    def __init__(self, target: Any) -> None:
        self._target = target
        self._handle: Callable[[], Any] = target.handle
        self._before = _optional_method(target, "before")
        self._after = _optional_method(target, "after")
        self._should_run = _optional_method(target, "should_run")

        self.tag = getattr(target, "tag", None)
        self.description = getattr(target, "description", None)
        self.schedule = getattr(target, "schedule", None)
        self.timezone = getattr(target, "timezone", None)

        priority = getattr(target, "priority", 0)
        self.priority = priority if isinstance(priority, int) else 0

        task_type = getattr(target, "type", TYPE_ONCE)
        if task_type not in EXECUTION_TYPES:
            logger.warning(
                "Unknown task type %r on %s, treating as '%s'",
                task_type, type(target).__name__, TYPE_ONCE,
            )
            task_type = TYPE_ONCE
        self.type = task_type

    @property
    def target(self) -> Any:
        return self._target

    def handle(self) -> None:
        self._handle()

    def before(self) -> None:
        if self._before is not None:
            self._before()

    def after(self) -> None:
        if self._after is not None:
            self._after()

    def should_run(self) -> bool:
        if self._should_run is not None:
            return bool(self._should_run())
        return self.should_run_by_schedule()

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["class"] = type(self._target).__name__
        return data

    def __repr__(self) -> str:
        return f"CallableTask({self._target!r})"


def as_task(value: Any) -> Task | None:
    """Map a loaded value onto the Task interface.

    Returns None when the value does not expose a callable `handle`.
    """
    if isinstance(value, Task):
        return value
    if value is None or inspect.isclass(value):
        return None
    if callable(getattr(value, "handle", None)):
        return CallableTask(value)
    return None


def _optional_method(target: Any, name: str) -> Callable[[], Any] | None:
    method = getattr(target, name, None)
    return method if callable(method) else None
