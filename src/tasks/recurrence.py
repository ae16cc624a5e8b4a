"""Successor generation for recurring tasks."""

import calendar
from dataclasses import replace
from datetime import datetime, timedelta, timezone, tzinfo

from shared_types import RecurrenceInterval

from .models import Task, as_utc


class RecurrenceError(Exception):
    """Base recurrence failure."""


class InvalidIntervalError(RecurrenceError):
    """Interval is not daily, weekly or monthly."""


class MissingDueDateError(RecurrenceError):
    """Recurring task has no due date to advance from."""


def parse_interval(value) -> RecurrenceInterval:
    try:
        return RecurrenceInterval(value)
    except ValueError:
        raise InvalidIntervalError(
            f"Invalid recurrence interval: {value!r}. Use: daily, weekly, monthly"
        ) from None


def _add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def advance(due: datetime, interval, tz: tzinfo | None = None) -> datetime:
    """Add one calendar unit to ``due`` as observed in ``tz``.

    The arithmetic is done on local wall-clock time, so a task due at 09:00
    local stays at 09:00 across a DST change. Returns UTC.
    """
    interval = parse_interval(interval)
    local = as_utc(due).astimezone(tz or timezone.utc)
    wall = local.replace(tzinfo=None)

    if interval == RecurrenceInterval.DAILY:
        wall = wall + timedelta(days=1)
    elif interval == RecurrenceInterval.WEEKLY:
        wall = wall + timedelta(weeks=1)
    else:
        wall = _add_months(wall, 1)

    return wall.replace(tzinfo=tz or timezone.utc).astimezone(timezone.utc)


def next_occurrence(
    task: Task,
    interval,
    now: datetime,
    tz: tzinfo | None = None,
) -> Task:
    """Build the successor of a completed recurring task.

    The successor has no id (the store assigns one), a fresh created_at and
    is not completed. Every other field is carried over.

    Raises:
        InvalidIntervalError: interval is not daily/weekly/monthly
        MissingDueDateError: task has no due date
    """
    interval = parse_interval(interval)
    if task.due is None:
        raise MissingDueDateError(f"Recurring task {task.id or task.title!r} has no due date")

    return replace(
        task,
        id=None,
        due=advance(task.due, interval, tz),
        completed=False,
        archived=False,
        created_at=as_utc(now),
        updated_at=None,
    )
