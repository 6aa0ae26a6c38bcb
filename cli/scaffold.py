"""Task file scaffolding -- generates timestamped task modules for `make`."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

from core.models.tasks import EXECUTION_TYPES, TYPE_ONCE

TEMPLATE = '''"""{docstring}"""

from core.task import Task


class {class_name}(Task):
    tag = {tag!r}
    priority = {priority}
    description = {description!r}
    type = {type!r}
    schedule = {schedule!r}

    def handle(self) -> None:
        # Task logic goes here
        pass


task = {class_name}
'''


def snake_case(name: str) -> str:
    """'Create Categories' / 'createCategories' -> 'create_categories'."""
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name.strip())
    name = re.sub(r"[^0-9A-Za-z]+", "_", name)
    return name.strip("_").lower()


def class_name(name: str) -> str:
    """'create categories' -> 'CreateCategories'."""
    parts = [p for p in snake_case(name).split("_") if p]
    result = "".join(p[:1].upper() + p[1:] for p in parts) or "NewTask"
    if result[0].isdigit():
        result = f"Task{result}"
    return result


def generate_filename(name: str, now: datetime | None = None, extension: str = ".py") -> str:
    """Timestamp-prefixed filename so new tasks sort after existing ones."""
    now = now or datetime.now()
    slug = snake_case(name)
    if not slug:
        raise ValueError("Task name must contain at least one letter or digit")
    return f"{now.strftime('%Y_%m_%d_%H%M%S')}_{slug}{extension}"


def generate_task_source(
    name: str,
    tag: str | None = None,
    description: str | None = None,
    priority: int = 0,
    type: str = TYPE_ONCE,
    schedule: str | None = None,
) -> str:
    """Render the Python source of a new task file."""
    if type not in EXECUTION_TYPES:
        raise ValueError("Invalid task type. Must be 'once' or 'always'.")

    description = description or name
    return TEMPLATE.format(
        docstring=description.replace("\\", "/").replace('"', "'"),
        class_name=class_name(name),
        tag=tag or None,
        priority=int(priority),
        description=description,
        type=type,
        schedule=schedule or None,
    )


def write_task_file(
    pool: Path,
    name: str,
    now: datetime | None = None,
    **options,
) -> Path:
    """Create the task file in `pool`. Raises FileExistsError if it exists."""
    pool.mkdir(parents=True, exist_ok=True)
    path = pool / generate_filename(name, now)
    if path.exists():
        raise FileExistsError(f"Task file already exists: {path}")
    path.write_text(generate_task_source(name, **options))
    return path
