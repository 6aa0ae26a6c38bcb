from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import ConfigurationError
from scheduler.pool import TaskPool, sort_by_name


def test_empty_pool_list_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="cannot be empty"):
        TaskPool([])


@pytest.mark.parametrize("paths", ["tasks/", Path("tasks"), None, 3])
def test_pool_must_be_a_list(paths) -> None:
    with pytest.raises(ConfigurationError, match="must be a list"):
        TaskPool(paths)


@pytest.mark.parametrize("entry", [None, 3, ""])
def test_pool_entries_must_be_paths(entry, tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="strings or paths"):
        TaskPool([str(tmp_path), entry])


def test_configuration_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        TaskPool([])


def test_missing_pool_is_not_fatal(tmp_path: Path, caplog) -> None:
    pool = TaskPool([tmp_path / "missing"])

    assert pool.collect() == []
    assert "does not exist" in caplog.text


def test_collect_is_flat_and_filters_extension(pool: Path) -> None:
    (pool / "a.py").write_text("")
    (pool / "notes.txt").write_text("")
    (pool / ".hidden.py").write_text("")
    (pool / "nested").mkdir()
    (pool / "nested" / "deep.py").write_text("")

    assert [p.name for p in TaskPool([pool]).collect()] == ["a.py"]


def test_collect_sorts_across_pools_by_filename(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (first / "c.py").write_text("")
    (first / "a.py").write_text("")
    (second / "b.py").write_text("")

    files = TaskPool([first, second]).collect()

    assert [p.name for p in files] == ["a.py", "b.py", "c.py"]
    assert files[1].parent == second


def test_collect_dedups_repeated_pool(pool: Path) -> None:
    (pool / "a.py").write_text("")

    files = TaskPool([pool, str(pool), pool / ".." / pool.name]).collect()

    assert [p.name for p in files] == ["a.py"]


def test_sort_is_codepoint_order() -> None:
    files = [Path("b.py"), Path("B.py"), Path("a.py"), Path("_x.py")]
    assert [p.name for p in sort_by_name(files)] == ["B.py", "_x.py", "a.py", "b.py"]


def test_find_is_extension_insensitive(pool: Path) -> None:
    (pool / "2024_11_01_120000_seed.py").write_text("")
    task_pool = TaskPool([pool])

    assert task_pool.find("2024_11_01_120000_seed") == pool / "2024_11_01_120000_seed.py"
    assert task_pool.find("2024_11_01_120000_seed.py") == pool / "2024_11_01_120000_seed.py"
    assert task_pool.find("missing") is None
    assert task_pool.find("") is None


def test_find_uses_first_pool_in_order(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (first / "seed.py").write_text("")
    (second / "seed.py").write_text("")

    assert TaskPool([first, second]).find("seed") == first / "seed.py"


def test_find_rejects_paths(pool: Path) -> None:
    (pool / "seed.py").write_text("")
    assert TaskPool([pool]).find("../tasks/seed") is None
