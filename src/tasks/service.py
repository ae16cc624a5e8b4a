"""Task engine: lifecycle operations and their notification side effects."""

from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime, timezone, tzinfo

import structlog

from shared_types import Category, Priority, RecurrenceInterval, TaskSource

from . import urgency
from .models import CompletionResult, Recurrence, Task, TaskGroup, as_utc, utcnow
from .notifications import NotificationScheduler, NullNotificationScheduler, level_for_priority
from .recurrence import RecurrenceError, next_occurrence
from .store import TaskNotFoundError, TaskStore

logger = structlog.get_logger()

# Edits to these fields change what a pending alert says or when it fires
_ALERT_FIELDS = frozenset({"title", "notes", "due", "priority"})


class TaskService:
    """Per-owner task engine.

    All collaborators are bound at construction. ``clock`` returns the current
    UTC time and is the only place "now" comes from unless a caller passes one.
    """

    def __init__(
        self,
        store: TaskStore,
        owner_id: str,
        notifier: NotificationScheduler | None = None,
        clock: Callable[[], datetime] = utcnow,
        tz: tzinfo | None = None,
    ):
        self.store = store
        self.owner_id = owner_id
        self.notifier = notifier or NullNotificationScheduler()
        self.clock = clock
        self.tz = tz or timezone.utc

    # --- Reads ---

    def list_tasks(self) -> list[Task]:
        return self.store.list(self.owner_id)

    def get_task(self, task_id: str) -> Task | None:
        try:
            task = self.store.get(task_id)
        except TaskNotFoundError:
            return None
        if task.owner_id != self.owner_id:
            return None
        return task

    def _now(self, now: datetime | None) -> datetime:
        return as_utc(now) if now else self.clock()

    def active(self, now: datetime | None = None) -> list[Task]:
        return urgency.active(self.list_tasks(), self._now(now))

    def overdue(self, now: datetime | None = None) -> list[Task]:
        return urgency.overdue(self.list_tasks(), self._now(now))

    def due_soon(self, now: datetime | None = None) -> list[Task]:
        return urgency.due_soon(self.list_tasks(), self._now(now))

    def completed(self) -> list[Task]:
        return urgency.completed(self.list_tasks())

    def archived(self) -> list[Task]:
        return urgency.archived(self.list_tasks())

    def grouped(self, now: datetime | None = None) -> list[TaskGroup]:
        return urgency.grouped_by_category(self.list_tasks(), self._now(now))

    def with_priority(self, priority: Priority, now: datetime | None = None) -> list[Task]:
        return urgency.with_priority(self.list_tasks(), priority, self._now(now))

    def in_category(self, category: Category, now: datetime | None = None) -> list[Task]:
        return urgency.in_category(self.list_tasks(), category, self._now(now))

    # --- Writes ---

    def create_task(
        self,
        title: str,
        notes: str | None = None,
        due: datetime | None = None,
        is_recurring: bool = False,
        recurrence_interval: RecurrenceInterval | str | None = None,
        priority: Priority | str | None = None,
        category: Category | str | None = None,
        subcategory: str | None = None,
        source: str = TaskSource.APP,
    ) -> Task:
        recurrence = None
        if is_recurring or recurrence_interval:
            recurrence = Recurrence(
                enabled=is_recurring,
                interval=RecurrenceInterval(recurrence_interval) if recurrence_interval else None,
            )

        task = Task(
            owner_id=self.owner_id,
            title=title.strip(),
            notes=notes,
            due=due,
            priority=Priority(priority) if priority else Priority.NONE,
            category=Category(category) if category else None,
            subcategory=subcategory or None,
            recurrence=recurrence,
            created_at=self.clock(),
            source=source,
        )
        task_id = self.store.create(task)
        task = replace(task, id=task_id)
        logger.info("task_created", task_id=task_id, has_due=task.due is not None, source=str(source))

        self._reschedule(task)
        return task

    def update_task(self, task_id: str, **fields) -> Task | None:
        """Partial edit. Reschedules the alert when its content or time changed."""
        if not self._owns(task_id):
            return None
        try:
            task = self.store.update(task_id, **fields)
        except TaskNotFoundError:
            logger.info("task_not_found", task_id=task_id, op="update")
            return None

        if _ALERT_FIELDS & set(fields):
            self._reschedule(task)
        return task

    def complete_task(self, task_id: str) -> CompletionResult | None:
        current = self.get_task(task_id)
        if current is None:
            logger.info("task_not_found", task_id=task_id, owner_id=self.owner_id)
            return None
        if current.completed:
            # Already done; its successor (if any) was created the first time
            logger.info("task_already_completed", task_id=task_id)
            return CompletionResult(task=current)
        try:
            task = self.store.update(task_id, completed=True)
        except TaskNotFoundError:
            logger.info("task_not_found", task_id=task_id, op="complete")
            return None

        self.notifier.cancel(task_id)
        logger.info("task_completed", task_id=task_id, recurring=task.is_recurring)

        result = CompletionResult(task=task)
        if task.is_recurring:
            try:
                successor = next_occurrence(task, task.recurrence.interval, self.clock(), self.tz)
            except RecurrenceError as e:
                logger.warning("recurrence_failed", task_id=task_id, error=str(e))
                result.recurrence_error = str(e)
                return result

            successor_id = self.store.create(successor)
            result.successor = replace(successor, id=successor_id)
            logger.info(
                "recurrence_created",
                task_id=task_id,
                successor_id=successor_id,
                due=result.successor.due.isoformat(),
            )
            self._reschedule(result.successor)
        return result

    def uncomplete_task(self, task_id: str) -> Task | None:
        if not self._owns(task_id):
            return None
        try:
            task = self.store.update(task_id, completed=False)
        except TaskNotFoundError:
            logger.info("task_not_found", task_id=task_id, op="uncomplete")
            return None
        self._reschedule(task)
        return task

    def archive_task(self, task_id: str) -> Task | None:
        if not self._owns(task_id):
            return None
        try:
            task = self.store.update(task_id, archived=True)
        except TaskNotFoundError:
            logger.info("task_not_found", task_id=task_id, op="archive")
            return None
        self.notifier.cancel(task_id)
        return task

    def unarchive_task(self, task_id: str) -> Task | None:
        if not self._owns(task_id):
            return None
        try:
            task = self.store.update(task_id, archived=False)
        except TaskNotFoundError:
            logger.info("task_not_found", task_id=task_id, op="unarchive")
            return None
        self._reschedule(task)
        return task

    def delete_task(self, task_id: str) -> bool:
        if not self._owns(task_id):
            return False
        # Cancel regardless: a concurrent delete may already have removed the row
        self.notifier.cancel(task_id)
        try:
            self.store.delete(task_id)
        except TaskNotFoundError:
            logger.info("task_not_found", task_id=task_id, op="delete")
            return False
        logger.info("task_deleted", task_id=task_id)
        return True

    # --- Bulk ---

    def delete_tasks(self, task_ids: Iterable[str]) -> int:
        return sum(1 for task_id in list(task_ids) if self.delete_task(task_id))

    def archive_tasks(self, task_ids: Iterable[str]) -> int:
        return sum(1 for task_id in list(task_ids) if self.archive_task(task_id))

    def archive_all_completed(self) -> int:
        return self.archive_tasks(t.id for t in self.completed())

    def delete_all_archived(self) -> int:
        return self.delete_tasks(t.id for t in self.archived())

    # --- Internals ---

    def _owns(self, task_id: str) -> bool:
        if self.get_task(task_id) is None:
            logger.info("task_not_found", task_id=task_id, owner_id=self.owner_id)
            return False
        return True

    def _reschedule(self, task: Task) -> None:
        """Cancel-then-schedule. Only open tasks with a future due get an alert."""
        self.notifier.cancel(task.id)
        if task.due is None or not urgency.is_open(task):
            return
        if task.due <= self.clock():
            return
        self.notifier.schedule(
            task.id,
            task.title,
            task.notes,
            task.due,
            level_for_priority(task.priority),
        )
