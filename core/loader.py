"""Task loader -- imports a task file and returns the task it defines.

Each task file is executed as a fresh module under a unique name and its
module-level `task` attribute is returned (instantiated first if it is
a class). The module is removed from sys.modules afterwards, so loading the same
file twice, or two files defining the same class name, cannot clash.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from typing import Any
from uuid import uuid4

from core.errors import TaskLoadError

logger = logging.getLogger(__name__)

DEFAULT_ATTRIBUTE = "task"


class ModuleTaskLoader:
    """Loads tasks from Python source files.

    Implements the TaskLoader protocol.
    """

    def __init__(self, attribute: str = DEFAULT_ATTRIBUTE) -> None:
        self._attribute = attribute

    @property
    def attribute(self) -> str:
        return self._attribute

    def load(self, path: Path) -> Any:
        """Import `path` and return its task object (None if it defines none)."""
        path = Path(path)
        # Build a unique module name: 2024_11_01_seed.py -> _task_2024_11_01_seed_<hex>
        module_name = f"_task_{_identifier(path.stem)}_{uuid4().hex[:8]}"

        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise TaskLoadError(f"Failed to load task file: {path.name}. Error: not an importable module")

        module = importlib.util.module_from_spec(spec)
        # Registered only while the module body and task constructor run, so
        # dataclasses and get_type_hints can resolve the module by name.
        sys.modules[module_name] = module
        try:
            try:
                spec.loader.exec_module(module)
            except Exception as exc:
                raise TaskLoadError(f"Failed to load task file: {path.name}. Error: {exc}") from exc

            value = getattr(module, self._attribute, None)
            if value is None:
                logger.debug("No '%s' attribute in %s", self._attribute, path)
                return None

            if inspect.isclass(value):
                try:
                    value = value()
                except Exception as exc:
                    raise TaskLoadError(
                        f"Failed to load task file: {path.name}. Error: {exc}"
                    ) from exc

            return value
        finally:
            sys.modules.pop(module_name, None)


def _identifier(stem: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in stem)
