"""Task engine: model, urgency views, recurrence, notifications, persistence."""

from .models import CompletionResult, Recurrence, Task, TaskGroup
from .notifications import (
    InMemoryNotificationScheduler,
    LoggingNotificationScheduler,
    NotificationScheduler,
    NullNotificationScheduler,
)
from .recurrence import InvalidIntervalError, MissingDueDateError, RecurrenceError, next_occurrence
from .service import TaskService
from .store import SQLiteTaskStore, TaskNotFoundError, TaskStore
from .urgency import urgency_score

__all__ = [
    "Task",
    "TaskGroup",
    "Recurrence",
    "CompletionResult",
    "TaskService",
    "TaskStore",
    "SQLiteTaskStore",
    "TaskNotFoundError",
    "NotificationScheduler",
    "NullNotificationScheduler",
    "LoggingNotificationScheduler",
    "InMemoryNotificationScheduler",
    "RecurrenceError",
    "InvalidIntervalError",
    "MissingDueDateError",
    "next_occurrence",
    "urgency_score",
]
