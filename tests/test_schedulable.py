from __future__ import annotations

from datetime import datetime, timezone

from core.task import Task


class Noop(Task):
    def handle(self) -> None:
        pass


def _at(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_unscheduled_task_is_always_due() -> None:
    task = Noop()
    task.bind("noop.py", now=_at(2024, 11, 1, 3, 17))

    assert task.is_due() is True
    assert task.should_run() is True
    assert task.next_run_time() is None


def test_schedule_due_only_at_matching_minute() -> None:
    task = Noop().daily_at("03:30")

    task.bind("noop.py", now=_at(2024, 11, 1, 3, 30))
    assert task.should_run() is True

    task.bind("noop.py", now=_at(2024, 11, 1, 3, 31))
    assert task.should_run() is False


def test_schedule_skips_when_already_run_in_period() -> None:
    task = Noop().cron("30 3 * * *")
    now = _at(2024, 11, 1, 3, 30, 40)

    task.bind("noop.py", last_run_at=_at(2024, 11, 1, 3, 30, 5), now=now)
    assert task.should_run() is False

    task.bind("noop.py", last_run_at=_at(2024, 10, 31, 3, 30), now=now)
    assert task.should_run() is True


def test_naive_last_run_is_treated_as_utc() -> None:
    task = Noop().hourly()
    task.bind("noop.py", last_run_at=datetime(2024, 11, 1, 3, 0), now=_at(2024, 11, 1, 3, 0, 30))

    assert task.should_run() is False


def test_bound_context_accessors() -> None:
    task = Noop()
    last = _at(2024, 10, 1)
    task.bind("2024_11_01_120000_seed.py", last_run_at=last, now=_at(2024, 11, 1))

    assert task.get_task_name() == "2024_11_01_120000_seed.py"
    assert task.get_last_run_time() == last
    assert task.current_time() == _at(2024, 11, 1)


def test_schedule_evaluated_in_bound_timezone() -> None:
    task = Noop().daily_at("09:00")
    task.bind("noop.py", now=_at(2024, 11, 1, 9, 0), timezone="Not/AZone")

    # An unknown zone falls back to UTC
    assert task.is_due() is True


def test_next_and_previous_run_time() -> None:
    task = Noop().daily_at("09:00")
    task.bind("noop.py", now=_at(2024, 11, 1, 12, 0))

    assert task.next_run_time() == _at(2024, 11, 2, 9, 0)
    assert task.previous_run_time() == _at(2024, 11, 1, 9, 0)


def test_builders() -> None:
    assert Noop().every_minute().get_schedule() == "* * * * *"
    assert Noop().every_minutes(5).get_schedule() == "*/5 * * * *"
    assert Noop().hourly().get_schedule() == "0 * * * *"
    assert Noop().every_hours(6).get_schedule() == "0 */6 * * *"
    assert Noop().daily().get_schedule() == "0 0 * * *"
    assert Noop().daily_at("07:05").get_schedule() == "5 7 * * *"
    assert Noop().weekly().get_schedule() == "0 0 * * 0"
    assert Noop().weekly_on(3).get_schedule() == "0 0 * * 3"
    assert Noop().monthly().get_schedule() == "0 0 1 * *"
    assert Noop().monthly_on(15).get_schedule() == "0 0 15 * *"


def test_class_level_schedule() -> None:
    class Nightly(Task):
        schedule = "0 2 * * *"

        def handle(self) -> None:
            pass

    task = Nightly()
    task.bind("nightly.py", now=_at(2024, 11, 1, 2, 0))
    assert task.should_run() is True
