from __future__ import annotations

import pytest

from core.task import CallableTask, Task, as_task


class Seed(Task):
    tag = "install"
    priority = 5
    description = "Seed data"

    def handle(self) -> None:
        pass


class Duck:
    """Not a Task subclass; only has handle()."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def handle(self) -> None:
        self.calls.append("handle")


def test_task_defaults() -> None:
    class Bare(Task):
        def handle(self) -> None:
            pass

    task = Bare()
    assert task.get_tag() is None
    assert task.get_priority() == 0
    assert task.get_description() is None
    assert task.get_type() == "once"
    assert task.is_type_once() is True
    assert task.should_run() is True


def test_task_is_abstract() -> None:
    with pytest.raises(TypeError):
        Task()  # type: ignore[abstract]


def test_setters_are_chainable() -> None:
    task = Seed().set_tag("demo").set_priority(1).set_type("always")

    assert task.get_tag() == "demo"
    assert task.get_priority() == 1
    assert task.is_type_always() is True


def test_set_type_rejects_unknown_value() -> None:
    with pytest.raises(ValueError, match="Must be 'once' or 'always'"):
        Seed().set_type("sometimes")


def test_to_dict() -> None:
    data = Seed().hourly().to_dict()

    assert data == {
        "class": "Seed",
        "tag": "install",
        "priority": 5,
        "description": "Seed data",
        "type": "once",
        "schedule": "0 * * * *",
    }


def test_callable_task_wraps_duck_with_defaults() -> None:
    duck = Duck()
    task = as_task(duck)

    assert isinstance(task, CallableTask)
    assert task.target is duck
    assert task.get_tag() is None
    assert task.get_priority() == 0
    assert task.get_type() == "once"

    task.before()
    task.handle()
    task.after()
    assert duck.calls == ["handle"]


def test_callable_task_reads_optional_attributes_and_hooks() -> None:
    calls: list[str] = []

    class Full:
        tag = "nightly"
        priority = 3
        type = "always"
        description = "Full duck"

        def before(self) -> None:
            calls.append("before")

        def handle(self) -> None:
            calls.append("handle")

        def after(self) -> None:
            calls.append("after")

        def should_run(self) -> bool:
            return False

    task = as_task(Full())
    assert task.get_tag() == "nightly"
    assert task.get_priority() == 3
    assert task.is_type_always() is True
    assert task.should_run() is False

    task.before()
    task.handle()
    task.after()
    assert calls == ["before", "handle", "after"]


def test_callable_task_unknown_type_defaults_to_once() -> None:
    class Odd:
        type = "weekly"

        def handle(self) -> None:
            pass

    assert as_task(Odd()).get_type() == "once"


def test_callable_task_honors_schedule_attribute() -> None:
    class Scheduled:
        schedule = "0 0 1 1 *"

        def handle(self) -> None:
            pass

    assert as_task(Scheduled()).get_schedule() == "0 0 1 1 *"


def test_as_task_returns_task_instances_unchanged() -> None:
    task = Seed()
    assert as_task(task) is task


@pytest.mark.parametrize("value", [None, 42, "handle", object(), Seed])
def test_as_task_rejects_values_without_handle(value: object) -> None:
    assert as_task(value) is None


def test_as_task_rejects_non_callable_handle() -> None:
    class NotCallable:
        handle = "nope"

    assert as_task(NotCallable()) is None


def test_task_subclass_unknown_type_defaults_to_once(caplog) -> None:
    class Shouty(Task):
        type = "ONCE"  # type: ignore[assignment]

        def handle(self) -> None:
            pass

    task = Shouty()

    assert task.get_type() == "once"
    assert task.is_type_once() is True
    assert task.to_dict()["type"] == "once"
    assert "Unknown task type 'ONCE'" in caplog.text
