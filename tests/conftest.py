"""Shared test fixtures for Nudge."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

FIXED_NOW = datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock; call it to read the time."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    from tasks.store import SQLiteTaskStore

    return SQLiteTaskStore(tmp_path / "tasks.db")


@pytest.fixture
def notifier():
    from tasks.notifications import InMemoryNotificationScheduler

    return InMemoryNotificationScheduler()


@pytest.fixture
def service(store, notifier, clock):
    from tasks.service import TaskService

    return TaskService(store, "owner-1", notifier=notifier, clock=clock)


@pytest.fixture
def make_task():
    """Build an unsaved Task with sensible defaults."""
    from tasks.models import Task

    def _make(title="Task", **kwargs):
        kwargs.setdefault("owner_id", "owner-1")
        kwargs.setdefault("created_at", FIXED_NOW)
        return Task(title=title, **kwargs)

    return _make
