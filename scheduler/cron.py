"""Minimal cron expression evaluator. No external dependencies.

Supports standard 5-field cron: minute hour day_of_month month day_of_week

Examples:
    "0 16 * * 1-5"   -> weekdays at 4pm
    "0 9 * * 0"      -> Sundays at 9am
    "*/5 * * * *"     -> every 5 minutes
    "0 9,17 * * *"    -> 9am and 5pm daily

A malformed expression is never due: the public helpers log it and return
False/None instead of raising.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)

# (name, min, max) in expression order
FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day", 1, 31),
    ("month", 1, 12),
    ("day_of_week", 0, 6),
)

# Long enough to reach the next Feb 29 across a skipped leap year (2100).
SEARCH_HORIZON = timedelta(days=366 * 8)


def split_expression(expression: str) -> list[str]:
    """Split an expression into its 5 fields.

    Raises ValueError on a wrong field count.
    """
    parts = expression.strip().split()
    if len(parts) != 5:
        raise ValueError(f"Invalid cron expression (need 5 fields): {expression!r}")
    return parts


def cron_matches(expression: str, dt: datetime) -> bool:
    """Check if a datetime matches a cron expression.

    Args:
        expression: 5-field cron string (minute hour dom month dow)
        dt: datetime to check against

    Returns:
        True if the datetime matches all cron fields, False otherwise
        (including when the expression is malformed).
    """
    try:
        return _matches(split_expression(expression), dt)
    except ValueError as exc:
        logger.warning("Ignoring malformed cron expression %r: %s", expression, exc)
        return False


def is_valid(expression: str) -> bool:
    """Return True if every field parses and lies within its bounds."""
    try:
        parts = split_expression(expression)
        for part, (_, min_val, max_val) in zip(parts, FIELDS):
            matches_field(part, min_val, min_val, max_val)
    except ValueError:
        return False
    return True


def matches_field(field: str, value: int, min_val: int, max_val: int) -> bool:
    """Check if a single cron field matches a value.

    Supports: *, */N, N, N-M, N,M,O (list items may be ranges).
    Raises ValueError if the field cannot be parsed or a value lies outside
    [min_val, max_val].
    """
    # Wildcard
    if field == "*":
        return True

    # Step: */N
    if field.startswith("*/"):
        try:
            step = int(field[2:])
        except ValueError:
            raise ValueError(f"Invalid cron step: {field!r}")
        if step <= 0:
            raise ValueError(f"Invalid cron step: {field!r}")
        return value % step == 0

    # List: N,M,O (may contain ranges)
    if "," in field:
        results = [matches_field(part.strip(), value, min_val, max_val) for part in field.split(",")]
        return any(results)

    # Range: N-M
    if "-" in field:
        try:
            start, end = (int(part) for part in field.split("-", 1))
        except ValueError:
            raise ValueError(f"Invalid cron range: {field!r}")
        if not min_val <= start <= end <= max_val:
            raise ValueError(f"Cron range out of bounds {min_val}-{max_val}: {field!r}")
        return start <= value <= end

    # Exact value
    try:
        exact = int(field)
    except ValueError:
        raise ValueError(f"Invalid cron field: {field!r}")
    if not min_val <= exact <= max_val:
        raise ValueError(f"Cron value out of bounds {min_val}-{max_val}: {field!r}")
    return value == exact


def previous_occurrence(expression: str, start: datetime) -> datetime | None:
    """Most recent minute strictly before `start` that matches the expression.

    Returns None for a malformed expression or when nothing matches within
    the search horizon.
    """
    return _search(expression, start, forward=False)


def next_occurrence(expression: str, start: datetime) -> datetime | None:
    """First minute strictly after `start` that matches the expression.

    Returns None for a malformed expression or when nothing matches within
    the search horizon.
    """
    return _search(expression, start, forward=True)


def has_run_in_period(expression: str, last_run: datetime, now: datetime) -> bool:
    """Check whether `last_run` falls in the same schedule period as `now`.

    The first field (minute, hour, day, month, day of week) that is not `*`
    sets the granularity. An all-wildcard or malformed expression has no
    period, so this returns False.
    """
    parts = expression.strip().split()
    if len(parts) != 5:
        return False

    minute, hour, day, month, day_of_week = parts

    if minute != "*":
        return _same_minute(last_run, now)
    if hour != "*":
        return _same_hour(last_run, now)
    if day != "*":
        return _same_day(last_run, now)
    if month != "*":
        return (last_run.year, last_run.month) == (now.year, now.month)
    if day_of_week != "*":
        return _same_day(last_run, now)
    return False


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _matches(parts: list[str], dt: datetime) -> bool:
    minute, hour, day, month, day_of_week = parts
    return (
        matches_field(minute, dt.minute, 0, 59)
        and matches_field(hour, dt.hour, 0, 23)
        and _day_matches(day, month, day_of_week, dt)
    )


def _day_matches(day: str, month: str, day_of_week: str, dt: datetime) -> bool:
    return (
        matches_field(day, dt.day, 1, 31)
        and matches_field(month, dt.month, 1, 12)
        and matches_field(day_of_week, dt.isoweekday() % 7, 0, 6)  # 0=Sun, 6=Sat
    )


def _search(expression: str, start: datetime, forward: bool) -> datetime | None:
    try:
        parts = split_expression(expression)
        # Validate every field up front so a bad field is reported even if
        # an earlier field never matches.
        for part, (_, min_val, max_val) in zip(parts, FIELDS):
            matches_field(part, min_val, min_val, max_val)
    except ValueError as exc:
        logger.warning("Ignoring malformed cron expression %r: %s", expression, exc)
        return None

    minute, hour, day, month, day_of_week = parts
    step = timedelta(minutes=1) if forward else -timedelta(minutes=1)
    candidate = start.replace(second=0, microsecond=0)
    if forward or candidate == start:
        candidate += step
    limit = start + SEARCH_HORIZON if forward else start - SEARCH_HORIZON

    while (candidate <= limit) if forward else (candidate >= limit):
        if not _day_matches(day, month, day_of_week, candidate):
            # Jump to the first (or last) minute of the adjacent day.
            if forward:
                candidate = candidate.replace(hour=0, minute=0) + timedelta(days=1)
            else:
                candidate = candidate.replace(hour=23, minute=59) - timedelta(days=1)
            continue
        if not matches_field(hour, candidate.hour, 0, 23):
            if forward:
                candidate = candidate.replace(minute=0) + timedelta(hours=1)
            else:
                candidate = candidate.replace(minute=59) - timedelta(hours=1)
            continue
        if matches_field(minute, candidate.minute, 0, 59):
            return candidate
        candidate += step

    return None


def _same_minute(a: datetime, b: datetime) -> bool:
    return _same_hour(a, b) and a.minute == b.minute


def _same_hour(a: datetime, b: datetime) -> bool:
    return _same_day(a, b) and a.hour == b.hour


def _same_day(a: datetime, b: datetime) -> bool:
    return a.date() == b.date()
