"""Data models for the task engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from shared_types import Category, Priority, RecurrenceInterval, TaskSource


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Recurrence:
    enabled: bool
    interval: RecurrenceInterval | None = None

    def __post_init__(self):
        if self.enabled and self.interval is None:
            raise ValueError("Recurring tasks need an interval")
        if self.interval is not None and not isinstance(self.interval, RecurrenceInterval):
            object.__setattr__(self, "interval", RecurrenceInterval(self.interval))


@dataclass(frozen=True)
class Task:
    """A user-owned unit of work.

    Frozen: engine views treat every snapshot as immutable input. Use
    ``dataclasses.replace`` to derive a changed copy.
    """

    owner_id: str
    title: str
    id: str | None = None
    notes: str | None = None
    due: datetime | None = None
    completed: bool = False
    archived: bool = False
    priority: Priority = Priority.NONE
    category: Category | None = None
    subcategory: str | None = None
    recurrence: Recurrence | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    source: str = TaskSource.APP

    def __post_init__(self):
        if not self.title or not self.title.strip():
            raise ValueError("Task title must not be empty")
        if self.due is not None:
            object.__setattr__(self, "due", as_utc(self.due))
        object.__setattr__(self, "created_at", as_utc(self.created_at))
        if not isinstance(self.priority, Priority):
            object.__setattr__(self, "priority", Priority(self.priority or Priority.NONE))
        if self.category is not None and not isinstance(self.category, Category):
            object.__setattr__(self, "category", Category(self.category))

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence and self.recurrence.enabled)

    @property
    def effective_category(self) -> Category:
        return self.category or Category.OTHER


@dataclass
class TaskGroup:
    """Active tasks sharing a (category, subcategory) key, most urgent first."""

    category: Category
    subcategory: str | None
    tasks: list[Task] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.category.value}-{self.subcategory or ''}"

    @property
    def display_name(self) -> str:
        if self.subcategory:
            return f"{self.category.display_name} - {self.subcategory}"
        return self.category.display_name


@dataclass
class CompletionResult:
    """Outcome of completing a task."""

    task: Task
    successor: Task | None = None
    recurrence_error: str | None = None


_ORDINAL_SUFFIX = {1: "st", 21: "st", 31: "st", 2: "nd", 22: "nd", 3: "rd", 23: "rd"}


def format_due_absolute(due: datetime, tz=None) -> str:
    """Render like '3:00pm Tuesday Dec 4th' in the given zone (UTC by default)."""
    local = due.astimezone(tz or timezone.utc)
    hour = local.hour % 12 or 12
    time_str = f"{hour}:{local.minute:02d}{'am' if local.hour < 12 else 'pm'}"
    suffix = _ORDINAL_SUFFIX.get(local.day, "th")
    return f"{time_str} {local.strftime('%A %b')} {local.day}{suffix}"


def format_due_relative(due: datetime, now: datetime) -> str:
    """Render like 'in 3 hr' or '2 days ago'."""
    seconds = (as_utc(due) - as_utc(now)).total_seconds()
    past = seconds < 0
    seconds = abs(seconds)

    if seconds < 60:
        amount, unit = int(seconds), "sec"
    elif seconds < 3600:
        amount, unit = int(seconds // 60), "min"
    elif seconds < 86400:
        amount, unit = int(seconds // 3600), "hr"
    elif seconds < 7 * 86400:
        amount, unit = int(seconds // 86400), "day"
    else:
        amount, unit = int(seconds // (7 * 86400)), "wk"

    if unit in ("day", "wk") and amount != 1:
        unit += "s"
    return f"{amount} {unit} ago" if past else f"in {amount} {unit}"
