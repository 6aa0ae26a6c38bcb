"""Task registry -- explicit table of task factories keyed by task name.

An alternative to importing task files: tasks are registered in code and
the pool directories only decide which names are present and in which
order. The registry key is the task file's stem (filename without
extension), so history stays keyed by filename either way.
"""

from __future__ import annotations

import inspect
import logging
from pathlib import Path
from typing import Any, Callable

from core.errors import TaskLoadError

logger = logging.getLogger(__name__)


class TaskRegistry:
    """Central registry of task instances and zero-argument factories.

    Usage:
        registry = TaskRegistry()
        registry.register("2024_11_01_120000_seed", SeedTask)

        @registry.task("2024_11_02_090000_cleanup")
        class Cleanup(Task):
            def handle(self) -> None: ...

        registry.create("2024_11_01_120000_seed")  # -> SeedTask()
    """

    def __init__(self) -> None:
        self._factories: dict[str, Any] = {}

    def register(self, name: str, factory: Any) -> None:
        """Register a task class, factory or instance under a name."""
        name = _stem(name)
        if name in self._factories:
            logger.warning("Overwriting existing task '%s'", name)

        self._factories[name] = factory
        logger.debug("Registered task: %s", name)

    def task(self, name: str) -> Callable[[Any], Any]:
        """Decorator form of register()."""
        def decorator(factory: Any) -> Any:
            self.register(name, factory)
            return factory
        return decorator

    def get(self, name: str) -> Any:
        """Get the registered factory for a name.

        Raises KeyError if not found.
        """
        name = _stem(name)
        if name not in self._factories:
            raise KeyError(
                f"No task named '{name}'. "
                f"Available: {list(self._factories.keys())}"
            )
        return self._factories[name]

    def create(self, name: str) -> Any:
        """Return a task object for a name, calling the factory if needed."""
        factory = self.get(name)
        if inspect.isclass(factory) or (callable(factory) and not hasattr(factory, "handle")):
            return factory()
        return factory

    def has(self, name: str) -> bool:
        return _stem(name) in self._factories

    def names(self) -> list[str]:
        return list(self._factories.keys())


class RegistryTaskLoader:
    """Resolves task files against a TaskRegistry.

    Implements the TaskLoader protocol.
    """

    def __init__(self, registry: TaskRegistry) -> None:
        self._registry = registry

    def load(self, path: Path) -> Any:
        path = Path(path)
        if not self._registry.has(path.stem):
            raise TaskLoadError(f"Failed to load task file: {path.name}. Error: not registered")
        try:
            return self._registry.create(path.stem)
        except Exception as exc:
            raise TaskLoadError(f"Failed to load task file: {path.name}. Error: {exc}") from exc


def _stem(name: str) -> str:
    return Path(name).stem if name.endswith(".py") else name
