"""Exceptions raised across the task runner.

Only ConfigurationError and TaskNotFoundError escape TaskRunner; load and
execution failures are recorded in the RunSummary instead.
"""

from __future__ import annotations


class RunnerError(Exception):
    """Base class for task runner errors."""


class ConfigurationError(RunnerError, ValueError):
    """Invalid pool list or configuration file."""


class TaskNotFoundError(RunnerError, LookupError):
    """No configured pool contains the requested task file."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Task file not found: {name}")
        self.name = name


class TaskLoadError(RunnerError):
    """A task file could not be imported or turned into a task object."""
