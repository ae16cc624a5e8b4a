"""Notification scheduler adapters.

The engine only ever talks to the ``NotificationScheduler`` interface. Actual
delivery (push, local alerts) lives outside this package.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

import structlog

from shared_types import NotificationLevel, Priority

logger = structlog.get_logger()


def level_for_priority(priority: Priority | None) -> NotificationLevel:
    if priority == Priority.HIGH:
        return NotificationLevel.TIME_SENSITIVE
    if priority == Priority.MEDIUM:
        return NotificationLevel.ACTIVE
    return NotificationLevel.PASSIVE


@dataclass(frozen=True)
class ScheduledAlert:
    task_id: str
    title: str
    body: str | None
    fire_at: datetime
    priority_hint: NotificationLevel


class NotificationScheduler(ABC):
    """Arranges and cancels future alerts for task ids."""

    @abstractmethod
    def schedule(
        self,
        task_id: str,
        title: str,
        body: str | None,
        fire_at: datetime,
        priority_hint: NotificationLevel,
    ) -> None: ...

    @abstractmethod
    def cancel(self, task_id: str) -> None:
        """Cancel any pending alert for task_id. No-op if none is pending."""
        ...


class NullNotificationScheduler(NotificationScheduler):
    """Notifications disabled."""

    def schedule(self, task_id, title, body, fire_at, priority_hint) -> None:
        pass

    def cancel(self, task_id) -> None:
        pass


class LoggingNotificationScheduler(NotificationScheduler):
    """Records alerts in the structured log instead of delivering them."""

    def schedule(self, task_id, title, body, fire_at, priority_hint) -> None:
        logger.info(
            "notification_scheduled",
            task_id=task_id,
            title=title,
            fire_at=fire_at.isoformat(),
            level=str(priority_hint),
        )

    def cancel(self, task_id) -> None:
        logger.debug("notification_cancelled", task_id=task_id)


class InMemoryNotificationScheduler(NotificationScheduler):
    """Keeps at most one pending alert per task id."""

    def __init__(self):
        self.pending: dict[str, ScheduledAlert] = {}

    def schedule(self, task_id, title, body, fire_at, priority_hint) -> None:
        self.pending[task_id] = ScheduledAlert(
            task_id=task_id,
            title=title,
            body=body,
            fire_at=fire_at,
            priority_hint=priority_hint,
        )

    def cancel(self, task_id) -> None:
        self.pending.pop(task_id, None)
