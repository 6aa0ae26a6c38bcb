from __future__ import annotations

import sys
from pathlib import Path

import pytest

from core.errors import TaskLoadError
from core.loader import ModuleTaskLoader
from core.task import Task


def test_load_instantiates_task_class(pool: Path, write_task) -> None:
    path = write_task(pool, "2024_11_01_120000_seed.py", tag="install")

    task = ModuleTaskLoader().load(path)

    assert isinstance(task, Task)
    assert task.get_tag() == "install"


def test_load_same_file_twice_does_not_clash(pool: Path, write_task) -> None:
    path = write_task(pool, "seed.py")
    modules_before = set(sys.modules)

    first = ModuleTaskLoader().load(path)
    second = ModuleTaskLoader().load(path)

    assert first is not second
    assert type(first) is not type(second)
    assert set(sys.modules) == modules_before


def test_load_returns_instance_as_is(pool: Path) -> None:
    path = pool / "instance.py"
    path.write_text(
        "class Job:\n"
        "    def handle(self):\n"
        "        pass\n"
        "\n"
        "task = Job()\n"
    )

    task = ModuleTaskLoader().load(path)
    assert type(task).__name__ == "Job"


def test_load_missing_attribute_returns_none(pool: Path) -> None:
    path = pool / "empty.py"
    path.write_text("VALUE = 1\n")

    assert ModuleTaskLoader().load(path) is None


def test_load_custom_attribute(pool: Path) -> None:
    path = pool / "custom.py"
    path.write_text(
        "class Job:\n"
        "    def handle(self):\n"
        "        pass\n"
        "\n"
        "job = Job\n"
    )

    assert ModuleTaskLoader(attribute="job").load(path) is not None
    assert ModuleTaskLoader().load(path) is None


def test_load_syntax_error_raises_task_load_error(pool: Path) -> None:
    path = pool / "broken.py"
    path.write_text("def broken(:\n")

    with pytest.raises(TaskLoadError, match="Failed to load task file: broken.py") as info:
        ModuleTaskLoader().load(path)
    assert isinstance(info.value.__cause__, SyntaxError)


def test_load_module_level_exception(pool: Path) -> None:
    path = pool / "raises.py"
    path.write_text("raise RuntimeError('import time failure')\n")

    with pytest.raises(TaskLoadError, match="import time failure"):
        ModuleTaskLoader().load(path)


def test_load_constructor_failure(pool: Path) -> None:
    path = pool / "ctor.py"
    path.write_text(
        "class Job:\n"
        "    def __init__(self):\n"
        "        raise ValueError('bad init')\n"
        "    def handle(self):\n"
        "        pass\n"
        "\n"
        "task = Job\n"
    )

    with pytest.raises(TaskLoadError, match="bad init"):
        ModuleTaskLoader().load(path)


def test_load_dataclass_with_postponed_annotations(pool: Path) -> None:
    path = pool / "dataclass_task.py"
    path.write_text(
        "from __future__ import annotations\n"
        "\n"
        "from dataclasses import dataclass, field\n"
        "\n"
        "\n"
        "@dataclass\n"
        "class Settings:\n"
        "    retries: int = 3\n"
        "    names: list[str] = field(default_factory=list)\n"
        "\n"
        "\n"
        "class Job:\n"
        "    def handle(self):\n"
        "        return Settings().retries\n"
        "\n"
        "\n"
        "task = Job()\n"
    )
    modules_before = set(sys.modules)

    task = ModuleTaskLoader().load(path)

    assert task.handle() == 3
    assert set(sys.modules) == modules_before


def test_failed_load_leaves_no_module_behind(pool: Path) -> None:
    path = pool / "raises.py"
    path.write_text("raise RuntimeError('import time failure')\n")
    modules_before = set(sys.modules)

    with pytest.raises(TaskLoadError):
        ModuleTaskLoader().load(path)
    assert set(sys.modules) == modules_before
