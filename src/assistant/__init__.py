"""Assistant turn processing: tool catalog, dispatch, and the model loop."""

from .dispatch import ToolDispatcher
from .orchestrator import AssistantOrchestrator, TurnResult, TurnStatus
from .prompts import UserProfile, build_system_prompt
from .tools import ToolArgumentError, ToolRegistry
from .transcript import ChatMessage, ConversationHistory, build_transcript

__all__ = [
    "AssistantOrchestrator",
    "TurnResult",
    "TurnStatus",
    "ToolDispatcher",
    "ToolRegistry",
    "ToolArgumentError",
    "ChatMessage",
    "ConversationHistory",
    "build_transcript",
    "UserProfile",
    "build_system_prompt",
]
