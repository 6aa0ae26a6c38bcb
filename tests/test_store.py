from __future__ import annotations

from datetime import datetime, timezone

from core.data.store import Store
from core.protocols import ExecutionHistory


def test_store_implements_execution_history(store: Store) -> None:
    assert isinstance(store, ExecutionHistory)


def test_store_creates_database_in_home(tmp_path) -> None:
    s = Store(tmp_path / "new-home")
    try:
        assert s.db_path == tmp_path / "new-home" / "db.sqlite"
        assert s.db_path.exists()
    finally:
        s.close()


def test_mark_executed_and_has_executed(store: Store) -> None:
    assert store.has_executed("seed.py") is False

    record = store.mark_executed("seed.py", tag="install", description="Seed", priority=2, type="once")

    assert store.has_executed("seed.py") is True
    assert record.name == "seed.py"
    assert record.tag == "install"
    assert record.priority == 2
    assert record.type == "once"


def test_mark_executed_upserts(store: Store) -> None:
    first = datetime(2024, 11, 1, 9, 0, tzinfo=timezone.utc)
    second = datetime(2024, 11, 2, 9, 0, tzinfo=timezone.utc)

    store.mark_executed("job.py", tag="a", type="always", executed_at=first)
    store.mark_executed("job.py", tag="b", type="always", executed_at=second)

    records = store.list_records()
    assert len(records) == 1
    assert records[0].tag == "b"
    assert store.last_executed_at("job.py") == second


def test_naive_executed_at_is_stored_as_utc(store: Store) -> None:
    store.mark_executed("job.py", executed_at=datetime(2024, 11, 1, 9, 0))

    assert store.last_executed_at("job.py") == datetime(2024, 11, 1, 9, 0, tzinfo=timezone.utc)


def test_last_executed_at_unknown_task(store: Store) -> None:
    assert store.last_executed_at("missing.py") is None
    assert store.get_record("missing.py") is None


def test_list_records_filters(store: Store) -> None:
    store.mark_executed("a.py", tag="install", type="once")
    store.mark_executed("b.py", tag="install", type="always")
    store.mark_executed("c.py", tag=None, type="always")

    assert [r.name for r in store.list_records(tag="install")] == ["a.py", "b.py"]
    assert [r.name for r in store.list_records(type="always")] == ["b.py", "c.py"]
    assert [r.name for r in store.list_records(tag="install", type="always")] == ["b.py"]


def test_execution_logs(store: Store) -> None:
    ok = store.log_start("a.py", tag="install", type="once")
    store.log_completed(ok, output="hello\n")
    failed = store.log_start("b.py")
    store.log_failed(failed, "boom at line 3")

    [latest] = store.recent_logs("a.py")
    assert latest.status == "completed"
    assert latest.output == "hello\n"
    assert latest.tag == "install"
    assert latest.execution_time is not None
    assert latest.execution_time_seconds == latest.execution_time / 1000
    assert latest.completed_at is not None

    [failure] = store.failed_logs()
    assert failure.task_name == "b.py"
    assert failure.error == "boom at line 3"

    assert [log.task_name for log in store.all_logs()] == ["b.py", "a.py"]


def test_unknown_log_id_is_ignored(store: Store, caplog) -> None:
    store.log_completed(999)
    assert "Unknown task log id" in caplog.text


def test_close_is_idempotent(tmp_path) -> None:
    s = Store(tmp_path / "home")
    s.close()
    s.close()
