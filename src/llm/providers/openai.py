"""OpenAI chat-completions provider."""

import json

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

# Lazy exception references, set when the package is available
_openai_exceptions = None


def _get_openai_exceptions():
    global _openai_exceptions
    if _openai_exceptions is None:
        try:
            from openai import APIError, APITimeoutError, AuthenticationError, RateLimitError

            _openai_exceptions = (AuthenticationError, RateLimitError, APITimeoutError, APIError)
        except ImportError:
            _openai_exceptions = ()
    return _openai_exceptions


def _handle_openai_error(e: Exception):
    exc = _get_openai_exceptions()
    if exc:
        AuthErr, RateErr, TimeoutErr, ApiErr = exc
        if isinstance(e, AuthErr):
            raise LLMAuthError(f"OpenAI auth failed: {e}") from e
        if isinstance(e, RateErr):
            raise LLMRateLimitError(f"OpenAI rate limit: {e}") from e
        if isinstance(e, TimeoutErr):
            raise LLMTimeoutError(f"OpenAI request timed out: {e}") from e
        if isinstance(e, ApiErr):
            raise LLMError(f"OpenAI API error: {e}") from e
    raise LLMError(f"OpenAI error: {e}") from e


def to_openai_messages(messages: list[dict], system: str | None = None) -> list[dict]:
    """Convert generic transcript entries to chat-completions messages."""
    api_messages = []
    if system:
        api_messages.append({"role": "system", "content": system})

    for msg in messages:
        role = msg.get("role")

        if role == "assistant" and msg.get("tool_calls"):
            api_messages.append(
                {
                    "role": "assistant",
                    "content": msg.get("content") or "",
                    "tool_calls": [
                        {
                            "id": tc["id"],
                            "type": "function",
                            "function": {
                                "name": tc["name"],
                                "arguments": json.dumps(tc["arguments"]),
                            },
                        }
                        for tc in msg["tool_calls"]
                    ],
                }
            )
        elif role == "tool":
            api_messages.append(
                {
                    "role": "tool",
                    "tool_call_id": msg["tool_call_id"],
                    "content": msg["content"],
                }
            )
        else:
            api_messages.append({"role": role, "content": msg.get("content", "")})

    return api_messages


class OpenAIProvider(LLMProvider):
    """OpenAI GPT provider."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client=None,
    ):
        self.model = model or "gpt-4o"

        if client:
            self.client = client
            return

        try:
            from openai import OpenAI
        except ImportError:
            raise LLMError("openai package not installed. Run: pip install 'nudge-assistant[openai]'")

        kwargs = {"api_key": api_key}
        if timeout:
            kwargs["timeout"] = timeout
        self.client = OpenAI(**kwargs)

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
            "messages": to_openai_messages(messages, system),
        }
        if tools:
            kwargs["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": t.name,
                        "description": t.description,
                        "parameters": t.input_schema,
                    },
                }
                for t in tools
            ]
            kwargs["tool_choice"] = (
                tool_choice if tool_choice in ("auto", "required", "none") else "auto"
            )

        try:
            response = self.client.chat.completions.create(**kwargs)
        except Exception as e:
            _handle_openai_error(e)

        if not getattr(response, "choices", None):
            raise LLMError("OpenAI returned no choices")

        try:
            return self._parse_choice(response.choices[0])
        except (AttributeError, TypeError, KeyError, IndexError) as e:
            raise LLMError(f"Malformed OpenAI response: {e}") from e

    @staticmethod
    def _parse_choice(choice) -> GenerateResponse:
        message = choice.message

        tool_calls = [
            ToolCall(
                id=tc.id,
                name=tc.function.name,
                arguments=parse_tool_arguments(tc.function.arguments, tc.function.name),
            )
            for tc in (message.tool_calls or [])
        ]

        if choice.finish_reason == "tool_calls":
            finish = "tool_calls"
        elif choice.finish_reason == "length":
            finish = "max_tokens"
        else:
            finish = "stop"

        return GenerateResponse(content=message.content, tool_calls=tool_calls, finish_reason=finish)
