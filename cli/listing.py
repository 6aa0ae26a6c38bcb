"""Task listing -- collects task metadata for the `list` command."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from core.protocols import ExecutionHistory, TaskLoader
from core.task import Task, as_task
from scheduler.pool import TaskPool

logger = logging.getLogger(__name__)

HEADERS = ["File", "Name", "Pool", "Tag", "Type", "Priority", "Status", "Schedule", "Description"]

_TIMESTAMP_PREFIX = re.compile(r"^\d{4}_\d{2}_\d{2}_\d{6}_")


@dataclass
class TaskEntry:
    """A discovered task and its history state."""

    file: str
    name: str
    pool: Path
    task: Task
    executed: bool

    @property
    def status(self) -> str:
        return "executed" if self.executed else "pending"


def collect_tasks(pool: TaskPool, loader: TaskLoader, history: ExecutionHistory) -> list[TaskEntry]:
    """Load every task in the pools, skipping files that fail to load."""
    entries: list[TaskEntry] = []

    for path in pool.collect():
        try:
            task = as_task(loader.load(path))
        except Exception as exc:
            logger.debug("Skipping %s: %s", path.name, exc)
            continue
        if task is None:
            continue

        entries.append(TaskEntry(
            file=path.name,
            name=extract_name_from_file(path.name, pool.extension),
            pool=path.parent,
            task=task,
            executed=history.has_executed(path.name),
        ))

    return entries


def apply_filters(
    entries: list[TaskEntry],
    tag: str | None = None,
    type: str | None = None,
    status: str | None = None,
) -> list[TaskEntry]:
    """Filter by tag (exact), type (case-insensitive) and status (executed/pending)."""
    if tag:
        entries = [e for e in entries if e.task.get_tag() == tag]
    if type:
        entries = [e for e in entries if e.task.get_type().lower() == type.lower()]
    if status in ("executed", "pending"):
        entries = [e for e in entries if e.status == status]
    return entries


def extract_name_from_file(filename: str, extension: str = ".py") -> str:
    """2024_11_01_120000_create_categories.py -> 'Create Categories'."""
    name = filename[: -len(extension)] if filename.endswith(extension) else filename
    name = _TIMESTAMP_PREFIX.sub("", name)
    words = name.replace("_", " ").split(" ")
    return " ".join(w[:1].upper() + w[1:] for w in words)


def build_rows(entries: list[TaskEntry], base: Path | None = None) -> list[list[str]]:
    base = base or Path.cwd()
    rows = []
    for entry in entries:
        task = entry.task

        pool = str(entry.pool).replace(str(base) + os.sep, "")
        if len(pool) > 25:
            pool = "..." + pool[-22:]

        description = task.get_description() or "-"
        if len(description) > 25:
            description = description[:22] + "..."

        rows.append([
            entry.file,
            entry.name,
            pool,
            task.get_tag() or "-",
            task.get_type(),
            str(task.get_priority()),
            "✓ Executed" if entry.executed else "○ Pending",
            task.get_schedule() or "-",
            description,
        ])
    return rows


def format_table(headers: list[str], rows: list[list[str]]) -> str:
    """Render rows as a plain-text table with a header rule."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(cells: list[str]) -> str:
        return "  " + "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(cells)).rstrip()

    rule = "  " + "  ".join("-" * w for w in widths)
    return "\n".join([line(headers), rule, *(line(r) for r in rows)])
