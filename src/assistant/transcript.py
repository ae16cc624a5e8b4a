"""Conversation history and per-request transcript assembly."""

from dataclasses import dataclass, field
from datetime import datetime

from tasks.models import utcnow

DEFAULT_HISTORY_WINDOW = 20
_ROLES = ("system", "user", "assistant", "tool")


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str
    timestamp: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if self.role not in _ROLES:
            raise ValueError(f"Unknown message role: {self.role}")

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


def build_transcript(
    history: list[ChatMessage] | None,
    user_message: str,
    window: int = DEFAULT_HISTORY_WINDOW,
) -> list[dict]:
    """Last ``window`` history entries followed by the new user message.

    Older entries are dropped, not summarized. System entries in history are
    skipped; the system prompt travels separately.
    """
    entries = [m for m in (history or []) if m.role != "system"]
    recent = entries[-window:] if window > 0 else []
    messages = [m.to_dict() for m in recent]
    messages.append({"role": "user", "content": user_message})
    return messages


class ConversationHistory:
    """Visible user/assistant exchanges of a chat session."""

    def __init__(self, messages: list[ChatMessage] | None = None):
        self.messages: list[ChatMessage] = list(messages or [])

    def add_exchange(self, user_message: str, answer: str):
        self.messages.append(ChatMessage(role="user", content=user_message))
        self.messages.append(ChatMessage(role="assistant", content=answer))

    def clear(self):
        self.messages.clear()

    def __len__(self) -> int:
        return len(self.messages)
