"""Schedulable mixin -- cron-based eligibility for tasks.

A task with no schedule is always due. A scheduled task runs when the
cron expression matches the evaluation instant and it has not already
completed in the current schedule period.

Examples:
    class Cleanup(Task):
        schedule = "0 * * * *"        # hourly, as a class attribute

    task = Cleanup().daily_at("03:30")  # or via the builder helpers
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from scheduler.cron import cron_matches, has_run_in_period, next_occurrence, previous_occurrence

logger = logging.getLogger(__name__)


class Schedulable:
    """Schedule state and helpers shared by all tasks.

    The engine calls bind() before evaluating eligibility so the schedule
    checks see the task's filename, its last completion time, and the
    single "now" of the current invocation.
    """

    # The cron expression for scheduling, e.g. '0 0 * * *' (daily at midnight)
    schedule: str | None = None

    # IANA zone the schedule is evaluated in; falls back to the bound zone
    timezone: str | None = None

    _bound_name: str | None = None
    _bound_last_run: datetime | None = None
    _bound_now: datetime | None = None
    _bound_timezone: str | None = None

    def bind(
        self,
        name: str,
        last_run_at: datetime | None = None,
        now: datetime | None = None,
        timezone: str | None = None,
    ) -> None:
        """Attach the run context used by the schedule checks."""
        self._bound_name = name
        self._bound_last_run = last_run_at
        self._bound_now = now
        self._bound_timezone = timezone

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    def should_run_by_schedule(self) -> bool:
        """Check if the task should run based on its schedule."""
        if not self.schedule:
            return True

        last_run = self.get_last_run_time()
        if last_run is None:
            return self.is_due()

        return self.is_due() and not self.has_run_in_current_period(last_run)

    def is_due(self) -> bool:
        """Check if the current time matches the cron schedule."""
        if not self.schedule:
            return True
        return cron_matches(self.schedule, self.current_time())

    def has_run_in_current_period(self, last_run: datetime) -> bool:
        """Check if the task already completed in the current schedule period."""
        if not self.schedule:
            return False
        zone = self._zone()
        return has_run_in_period(self.schedule, _as_aware(last_run).astimezone(zone), self.current_time())

    def next_run_time(self) -> datetime | None:
        """Next instant the schedule matches, or None if unscheduled or invalid."""
        if not self.schedule:
            return None
        return next_occurrence(self.schedule, self.current_time())

    def previous_run_time(self) -> datetime | None:
        """Most recent instant the schedule matched, or None."""
        if not self.schedule:
            return None
        return previous_occurrence(self.schedule, self.current_time())

    def get_last_run_time(self) -> datetime | None:
        return self._bound_last_run

    def get_task_name(self) -> str | None:
        """The filename this task was loaded from, once bound."""
        return self._bound_name

    def current_time(self) -> datetime:
        """The evaluation instant, in the schedule's timezone."""
        now = self._bound_now or datetime.now(timezone.utc)
        return _as_aware(now).astimezone(self._zone())

    def _zone(self) -> ZoneInfo:
        name = self.timezone or self._bound_timezone or "UTC"
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Invalid timezone %r, falling back to UTC", name)
            return ZoneInfo("UTC")

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def cron(self, expression: str):
        """Set the schedule using a cron expression."""
        self.schedule = expression
        return self

    def every_minute(self):
        self.schedule = "* * * * *"
        return self

    def every_minutes(self, minutes: int):
        self.schedule = f"*/{minutes} * * * *"
        return self

    def hourly(self):
        self.schedule = "0 * * * *"
        return self

    def every_hours(self, hours: int):
        self.schedule = f"0 */{hours} * * *"
        return self

    def daily(self):
        self.schedule = "0 0 * * *"
        return self

    def daily_at(self, time: str):
        """Run daily at a specific time (HH:MM)."""
        hour, minute = time.split(":", 1)
        self.schedule = f"{int(minute)} {int(hour)} * * *"
        return self

    def weekly(self):
        """Run weekly on Sunday at midnight."""
        self.schedule = "0 0 * * 0"
        return self

    def weekly_on(self, day: int):
        """Run weekly on a specific day (0 = Sunday, 6 = Saturday)."""
        self.schedule = f"0 0 * * {day}"
        return self

    def monthly(self):
        self.schedule = "0 0 1 * *"
        return self

    def monthly_on(self, day: int):
        self.schedule = f"0 0 {day} * *"
        return self

    def get_schedule(self) -> str | None:
        return self.schedule


def _as_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
