"""Urgency scoring and derived task views.

Everything here is a pure function of (tasks, now). Nothing is cached and
input sequences are never mutated, so each call reflects the current clock.
"""

from collections.abc import Iterable
from datetime import datetime

from shared_types import Category, Priority

from .models import Task, TaskGroup, as_utc

BASE_SCORE = 1000.0
OVERDUE_OFFSET = 500.0

# (upper bound in hours, subtraction) for tasks that are not yet due
_DUE_BANDS = (
    (24.0, 400.0),
    (72.0, 300.0),
    (168.0, 200.0),
)


def hours_until_due(task: Task, now: datetime) -> float | None:
    if task.due is None:
        return None
    return (task.due - as_utc(now)).total_seconds() / 3600


def urgency_score(task: Task, now: datetime) -> float:
    """Lower score = more urgent."""
    score = BASE_SCORE
    score -= (3 - task.priority.rank) * 100

    hours = hours_until_due(task, now)
    if hours is None:
        return score

    if hours < 0:
        # Unbounded: the longer overdue, the more urgent
        return score - (OVERDUE_OFFSET + abs(hours))

    for upper, offset in _DUE_BANDS:
        if hours < upper:
            return score - offset
    return score


def is_open(task: Task) -> bool:
    return not task.completed and not task.archived


def is_overdue(task: Task, now: datetime) -> bool:
    hours = hours_until_due(task, now)
    return hours is not None and is_open(task) and hours < 0


def is_due_soon(task: Task, now: datetime) -> bool:
    hours = hours_until_due(task, now)
    return hours is not None and is_open(task) and 0 < hours <= 24


def _urgency_key(now: datetime):
    def key(task: Task):
        return (urgency_score(task, now), task.created_at)

    return key


def sort_by_urgency(tasks: Iterable[Task], now: datetime) -> list[Task]:
    return sorted(tasks, key=_urgency_key(now))


def active(tasks: Iterable[Task], now: datetime) -> list[Task]:
    """Open tasks (not completed, not archived), most urgent first."""
    return sort_by_urgency((t for t in tasks if is_open(t)), now)


def overdue(tasks: Iterable[Task], now: datetime) -> list[Task]:
    return [t for t in active(tasks, now) if is_overdue(t, now)]


def due_soon(tasks: Iterable[Task], now: datetime) -> list[Task]:
    return [t for t in active(tasks, now) if is_due_soon(t, now)]


def completed(tasks: Iterable[Task]) -> list[Task]:
    return [t for t in tasks if t.completed and not t.archived]


def archived(tasks: Iterable[Task]) -> list[Task]:
    return [t for t in tasks if t.archived]


def with_priority(tasks: Iterable[Task], priority: Priority, now: datetime) -> list[Task]:
    return [t for t in active(tasks, now) if t.priority == priority]


def in_category(tasks: Iterable[Task], category: Category, now: datetime) -> list[Task]:
    return [t for t in active(tasks, now) if t.effective_category == category]


def grouped_by_category(tasks: Iterable[Task], now: datetime) -> list[TaskGroup]:
    """Partition active tasks by (category, subcategory).

    School groups come first, the rest alphabetically by display name.
    """
    groups: dict[tuple[Category, str | None], TaskGroup] = {}
    for task in active(tasks, now):
        sub = task.subcategory or None
        key = (task.effective_category, sub)
        if key not in groups:
            groups[key] = TaskGroup(category=key[0], subcategory=sub)
        # active() is already urgency-sorted, so appending keeps group order
        groups[key].tasks.append(task)

    return sorted(
        groups.values(),
        key=lambda g: (g.category != Category.SCHOOL, g.display_name),
    )
