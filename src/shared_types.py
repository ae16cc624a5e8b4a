"""Shared enums and types for nudge."""

from enum import StrEnum


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @property
    def rank(self) -> int:
        """0 = most urgent."""
        return _PRIORITY_RANK[self]

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    def __lt__(self, other):
        if isinstance(other, Priority):
            return self.rank < other.rank
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, Priority):
            return self.rank <= other.rank
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, Priority):
            return self.rank > other.rank
        return NotImplemented

    def __ge__(self, other):
        if isinstance(other, Priority):
            return self.rank >= other.rank
        return NotImplemented


_PRIORITY_RANK = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
    Priority.NONE: 3,
}


class Category(StrEnum):
    SCHOOL = "school"
    WORK = "work"
    PERSONAL = "personal"
    HEALTH = "health"
    FINANCE = "finance"
    SOCIAL = "social"
    ERRANDS = "errands"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class RecurrenceInterval(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class NotificationLevel(StrEnum):
    """Interruption level hint passed to the notification scheduler."""

    TIME_SENSITIVE = "time_sensitive"
    ACTIVE = "active"
    PASSIVE = "passive"


class TaskSource(StrEnum):
    APP = "app"
    ASSISTANT = "assistant"
    CLI = "cli"
