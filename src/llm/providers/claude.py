"""Claude (Anthropic) messages provider."""

from ..base import (
    GenerateResponse,
    LLMAuthError,
    LLMError,
    LLMProvider,
    LLMRateLimitError,
    LLMTimeoutError,
    ToolCall,
    ToolDefinition,
    parse_tool_arguments,
)


def to_anthropic_messages(messages: list[dict]) -> list[dict]:
    """Convert generic transcript entries to Anthropic content blocks.

    - {"role": "assistant", "tool_calls": [...]} → assistant with tool_use blocks
    - consecutive {"role": "tool", ...} → one user message of tool_result blocks
    """
    api_messages = []
    i = 0
    while i < len(messages):
        msg = messages[i]
        role = msg.get("role")

        if role == "assistant" and msg.get("tool_calls"):
            content = []
            if msg.get("content"):
                content.append({"type": "text", "text": msg["content"]})
            for tc in msg["tool_calls"]:
                content.append(
                    {"type": "tool_use", "id": tc["id"], "name": tc["name"], "input": tc["arguments"]}
                )
            api_messages.append({"role": "assistant", "content": content})

        elif role == "tool":
            results = []
            while i < len(messages) and messages[i].get("role") == "tool":
                tr = messages[i]
                block = {
                    "type": "tool_result",
                    "tool_use_id": tr["tool_call_id"],
                    "content": tr["content"],
                }
                if tr.get("is_error"):
                    block["is_error"] = True
                results.append(block)
                i += 1
            api_messages.append({"role": "user", "content": results})
            continue

        else:
            api_messages.append({"role": role, "content": msg.get("content", "")})

        i += 1

    return api_messages


class ClaudeProvider(LLMProvider):
    """Anthropic Claude provider."""

    provider_name = "claude"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client=None,
    ):
        self.model = model or "claude-sonnet-4-20250514"

        if client:
            self.client = client
            return

        try:
            from anthropic import Anthropic
        except ImportError:
            raise LLMError("anthropic package not installed. Run: pip install 'nudge-assistant[claude]'")

        kwargs = {"api_key": api_key}
        if timeout:
            kwargs["timeout"] = timeout
        self.client = Anthropic(**kwargs)

    def _handle_error(self, e: Exception):
        try:
            from anthropic import APIError, APITimeoutError, AuthenticationError, RateLimitError
        except ImportError:
            raise LLMError(f"Claude error: {e}") from e

        if isinstance(e, AuthenticationError):
            raise LLMAuthError(f"Claude auth failed: {e}") from e
        if isinstance(e, RateLimitError):
            raise LLMRateLimitError(f"Claude rate limit: {e}") from e
        if isinstance(e, APITimeoutError):
            raise LLMTimeoutError(f"Claude request timed out: {e}") from e
        if isinstance(e, APIError):
            raise LLMError(f"Claude API error: {e}") from e
        raise LLMError(f"Claude error: {e}") from e

    def generate_with_tools(
        self,
        messages: list[dict],
        tools: list[ToolDefinition],
        system: str | None = None,
        max_tokens: int = 2000,
        tool_choice: str = "auto",
    ) -> GenerateResponse:
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": to_anthropic_messages(messages),
        }
        if system:
            kwargs["system"] = system
        if tools and tool_choice != "none":
            kwargs["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.input_schema}
                for t in tools
            ]
            kwargs["tool_choice"] = {"type": "any"} if tool_choice == "required" else {"type": "auto"}

        try:
            response = self.client.messages.create(**kwargs)
        except Exception as e:
            self._handle_error(e)

        try:
            return self._parse_response(response)
        except (AttributeError, TypeError, KeyError, IndexError) as e:
            raise LLMError(f"Malformed Claude response: {e}") from e

    @staticmethod
    def _parse_response(response) -> GenerateResponse:
        text_parts = []
        tool_calls = []
        for block in response.content or []:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(
                        id=block.id,
                        name=block.name,
                        arguments=parse_tool_arguments(block.input, block.name),
                    )
                )

        if response.stop_reason == "tool_use":
            finish = "tool_calls"
        elif response.stop_reason == "max_tokens":
            finish = "max_tokens"
        else:
            finish = "stop"

        return GenerateResponse(
            content="\n".join(text_parts) if text_parts else None,
            tool_calls=tool_calls,
            finish_reason=finish,
        )
