"""Interactive task scaffolding -- the `make` command.

Uses questionary for arrow-key selection and text input, then writes a
timestamp-prefixed task file into one of the configured pools.
"""

from __future__ import annotations

import sys
from pathlib import Path

import questionary

from cli.banner import print_banner
from cli.scaffold import write_task_file
from core.models.tasks import EXECUTION_TYPES, TYPE_ONCE
from scheduler.cron import is_valid

# Questionary style
STYLE = questionary.Style([
    ("qmark", "fg:cyan bold"),
    ("question", "fg:white bold"),
    ("answer", "fg:green"),
    ("pointer", "fg:cyan bold"),
    ("highlighted", "fg:cyan bold"),
    ("selected", "fg:green"),
    ("instruction", "fg:gray italic"),
])


def run_make(pools: list[Path], home_dir: Path) -> Path:
    """Prompt for the task details and create the file.

    With no pools configured the file goes to <home>/tasks.
    """
    print_banner()
    print("  Create a new task\n")

    name = _ask(questionary.text(
        "Task name:",
        validate=lambda v: bool(v.strip()) or "Name is required",
        style=STYLE,
    ))

    pool = _choose_pool(pools, home_dir)

    tag = _ask(questionary.text("Tag (optional):", default="", style=STYLE)).strip()
    description = _ask(questionary.text("Description:", default=name, style=STYLE)).strip()

    type = _ask(questionary.select(
        "Execution type:",
        choices=list(EXECUTION_TYPES),
        default=TYPE_ONCE,
        style=STYLE,
    ))

    priority = _ask(questionary.text(
        "Priority:",
        default="0",
        validate=_validate_int,
        style=STYLE,
    ))

    schedule = _ask(questionary.text(
        "Cron schedule (optional, e.g. '0 * * * *'):",
        default="",
        validate=lambda v: not v.strip() or is_valid(v.strip()) or "Invalid cron expression",
        style=STYLE,
    )).strip()

    try:
        path = write_task_file(
            pool,
            name,
            tag=tag or None,
            description=description or None,
            priority=int(priority),
            type=type,
            schedule=schedule or None,
        )
    except FileExistsError as exc:
        print(f"  {exc}")
        sys.exit(1)

    print()
    print(f"  Created: {path}")
    print()
    return path


def _choose_pool(pools: list[Path], home_dir: Path) -> Path:
    if not pools:
        return home_dir / "tasks"
    if len(pools) == 1:
        return pools[0]

    choice = _ask(questionary.select(
        "Which pool should the task go in?",
        choices=[str(p) for p in pools],
        style=STYLE,
    ))
    return Path(choice)


def _validate_int(value: str) -> bool | str:
    try:
        int(value)
    except ValueError:
        return "Priority must be an integer"
    return True


def _ask(question: questionary.Question):
    answer = question.ask()
    if answer is None:
        _abort()
    return answer


def _abort() -> None:
    """User pressed Ctrl+C or cancelled."""
    print("\n  Cancelled.\n")
    sys.exit(0)
