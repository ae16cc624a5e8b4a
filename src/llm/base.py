"""Language-model backend abstraction for tool calling."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger()


class LLMError(Exception):
    """Base LLM error. Any subclass ends the current assistant turn."""


class LLMRateLimitError(LLMError):
    """Rate limit hit."""


class LLMAuthError(LLMError):
    """Authentication failure."""


class LLMTimeoutError(LLMError):
    """Backend did not answer within the allowed time."""


@dataclass
class ToolDefinition:
    """Tool definition sent to the backend on every request."""

    name: str
    description: str
    input_schema: dict  # JSON Schema

    @property
    def required(self) -> list[str]:
        return list(self.input_schema.get("required", []))


@dataclass
class ToolCall:
    """A tool call requested by the backend. Consumed exactly once."""

    id: str
    name: str
    arguments: dict


@dataclass
class ToolResult:
    """Textual result of executing a tool call."""

    tool_call_id: str
    name: str
    content: str
    is_error: bool = False


@dataclass
class GenerateResponse:
    """Backend reply: final text, tool calls, or both."""

    content: str | None
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: str = "stop"  # "stop" | "tool_calls" | "max_tokens"


def parse_tool_arguments(raw, tool_name: str = "") -> dict:
    """Decode tool-call arguments into a dict.

    Malformed JSON or a non-object payload becomes an empty mapping, so each
    required field is reported missing by validation instead of the whole call
    failing to parse.
    """
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("tool_arguments_unparseable", tool=tool_name)
        return {}
    if not isinstance(decoded, dict):
        logger.warning("tool_arguments_not_object", tool=tool_name)
        return {}
    return decoded


class LLMProvider(ABC):
    """Abstract backend: given (transcript, tools) return text or tool calls."""

    provider_name: str = "base"

    @abstractmethod
    def generate_with_tools(
        self,
        messages: list[dict],
        tools: list[ToolDefinition],
        system: str | None = None,
        max_tokens: int = 2000,
        tool_choice: str = "auto",
    ) -> GenerateResponse:
        """Generate a response with tool-calling support.

        Args:
            messages: Transcript in generic form. Besides plain
                {"role", "content"} entries it may hold
                {"role": "assistant", "tool_calls": [...]} and
                {"role": "tool", "tool_call_id", "name", "content"}.
            tools: Available tool definitions
            system: Optional system prompt
            max_tokens: Max response tokens
            tool_choice: "auto", "required" or "none"

        Returns:
            GenerateResponse with content and/or tool_calls

        Raises:
            LLMError: transport, auth, rate limit or malformed response
        """
        ...

    def generate(
        self, messages: list[dict], system: str | None = None, max_tokens: int = 2000
    ) -> str:
        """Plain text completion without tools."""
        response = self.generate_with_tools(
            messages, tools=[], system=system, max_tokens=max_tokens, tool_choice="none"
        )
        return response.content or ""
