"""Task pools -- the directories task files are discovered in.

Each pool is scanned non-recursively for files with the task extension.
Files from all pools run in one combined order: sorted by filename, so
timestamp-prefixed names (2024_11_01_120000_seed.py) run chronologically
regardless of which pool they live in.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Sequence

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

TASK_EXTENSION = ".py"


class TaskPool:
    """An ordered, read-only set of task directories."""

    def __init__(self, paths: Sequence[str | Path], extension: str = TASK_EXTENSION) -> None:
        self._paths = self._validate(paths)
        self._extension = extension

    @staticmethod
    def _validate(paths: Sequence[str | Path]) -> tuple[Path, ...]:
        if isinstance(paths, (str, bytes, os.PathLike)) or not isinstance(paths, Sequence):
            raise ConfigurationError("Task pools must be a list of paths.")
        if not paths:
            raise ConfigurationError("Task pools cannot be empty.")

        validated = []
        for path in paths:
            if not isinstance(path, (str, os.PathLike)) or not str(path).strip():
                raise ConfigurationError("All task pool paths must be strings or paths.")

            resolved = Path(path).expanduser()
            if not resolved.is_dir():
                logger.warning("Task pool path does not exist: %s", resolved)
            validated.append(resolved)

        return tuple(validated)

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    @property
    def extension(self) -> str:
        return self._extension

    def collect(self) -> list[Path]:
        """All task files across pools, de-duplicated and sorted by filename."""
        files: list[Path] = []
        seen: set[Path] = set()

        for path in self._paths:
            try:
                if not path.is_dir():
                    logger.warning("Skipping non-existent path: %s", path)
                    continue

                found = [
                    f for f in path.glob(f"*{self._extension}")
                    if f.is_file() and not f.name.startswith(".")
                ]
            except OSError as exc:
                logger.error("Error reading task pool path: %s (%s)", path, exc)
                continue

            logger.debug("Found %d task files in: %s", len(found), path)
            for f in found:
                key = f.resolve()
                if key in seen:
                    continue
                seen.add(key)
                files.append(f)

        return sort_by_name(files)

    def find(self, name: str) -> Path | None:
        """Find a task file by name across pools, in pool order.

        The extension is optional: "2024_11_01_seed" and "2024_11_01_seed.py"
        resolve to the same file.
        """
        filename = self.normalize_name(name)
        if not filename or Path(filename).name != filename:
            return None

        for path in self._paths:
            if not path.is_dir():
                continue
            candidate = path / filename
            if candidate.is_file():
                return candidate

        return None

    def normalize_name(self, name: str) -> str:
        name = name.strip()
        if name.endswith(self._extension):
            name = name[: -len(self._extension)]
        return f"{name}{self._extension}" if name else ""


def sort_by_name(files: list[Path]) -> list[Path]:
    """Sort by basename using plain code point comparison (locale-independent)."""
    ordered = sorted(files, key=lambda p: p.name)
    if ordered:
        logger.debug("Sorted tasks by filename: first=%s last=%s", ordered[0].name, ordered[-1].name)
    return ordered
