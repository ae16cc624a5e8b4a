"""Multi-provider LLM abstraction layer."""

from .base import (
    GenerateResponse,
    LLMAuthError,
    LLMError,
    LLMProvider,
    LLMRateLimitError,
    LLMTimeoutError,
    ToolCall,
    ToolDefinition,
    ToolResult,
    parse_tool_arguments,
)
from .factory import create_llm_provider, create_llm_provider_from_config

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "create_llm_provider_from_config",
    "LLMError",
    "LLMRateLimitError",
    "LLMAuthError",
    "LLMTimeoutError",
    "ToolDefinition",
    "ToolCall",
    "ToolResult",
    "GenerateResponse",
    "parse_tool_arguments",
]
