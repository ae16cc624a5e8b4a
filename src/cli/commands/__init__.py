"""CLI command modules."""

from .assistant import ask, chat
from .tasks import tasks

__all__ = [
    "ask",
    "chat",
    "tasks",
]
