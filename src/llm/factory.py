"""Backend selection for the assistant loop.

The provider name resolves in this order: an explicit name, then
``NUDGE_LLM_PROVIDER``, then the prefix of an explicit key, then whichever
vendor key is set in the environment (OpenAI first).
"""

import os
from dataclasses import dataclass

import structlog

from .base import LLMError, LLMProvider

logger = structlog.get_logger()

PROVIDER_ENV_VAR = "NUDGE_LLM_PROVIDER"


@dataclass(frozen=True)
class Backend:
    name: str
    env_key: str
    key_prefix: str


BACKENDS = {
    "openai": Backend("openai", "OPENAI_API_KEY", "sk-"),
    "claude": Backend("claude", "ANTHROPIC_API_KEY", "sk-ant-"),
}

# Longest prefix first: Anthropic keys also start with "sk-"
_BY_PREFIX = sorted(BACKENDS.values(), key=lambda b: len(b.key_prefix), reverse=True)


def provider_for_key(api_key: str) -> str | None:
    """Infer the backend from a key prefix."""
    for backend in _BY_PREFIX:
        if api_key.startswith(backend.key_prefix):
            return backend.name
    return None


def resolve_provider(provider: str | None = None, api_key: str | None = None) -> tuple[str, str]:
    """Return ``(name, source)`` where source says which rule picked it."""
    if provider and provider != "auto":
        name, source = provider, "explicit"
    elif os.getenv(PROVIDER_ENV_VAR):
        name, source = os.environ[PROVIDER_ENV_VAR].strip().lower(), "env"
    elif api_key and provider_for_key(api_key):
        return provider_for_key(api_key), "key"
    else:
        for backend in BACKENDS.values():
            if os.getenv(backend.env_key):
                return backend.name, backend.env_key
        keys = ", ".join(b.env_key for b in BACKENDS.values())
        raise LLMError(f"No LLM API key found. Set one of: {keys}")

    if name not in BACKENDS:
        raise LLMError(f"Unknown provider: {name}. Use: {', '.join(BACKENDS)}")
    return name, source


def _provider_class(name: str) -> type[LLMProvider]:
    if name == "claude":
        from .providers.claude import ClaudeProvider

        return ClaudeProvider
    from .providers.openai import OpenAIProvider

    return OpenAIProvider


def create_llm_provider(
    provider: str | None = None,
    api_key: str | None = None,
    model: str | None = None,
    timeout: float | None = None,
    client=None,
) -> LLMProvider:
    """Build the backend the assistant talks to.

    Args:
        provider: "claude", "openai", "auto", or None (resolve as described above)
        api_key: Explicit API key; falls back to the backend's env var
        model: Model name (None = backend default)
        timeout: Per-request timeout in seconds passed to the SDK client
        client: Pre-built SDK client for tests

    Raises:
        LLMError: unknown provider, no key anywhere, or a key that belongs
            to a different backend than the one selected
    """
    name, source = resolve_provider(provider, api_key)
    backend = BACKENDS[name]

    if api_key:
        owner = provider_for_key(api_key)
        if owner and owner != name:
            raise LLMError(f"API key looks like a {owner} key but provider is {name}")
    elif not client:
        api_key = os.getenv(backend.env_key)

    instance = _provider_class(name)(api_key=api_key, model=model, timeout=timeout, client=client)
    logger.info("llm_provider_selected", provider=name, source=source, model=instance.model)
    return instance


def create_llm_provider_from_config(llm_config, timeout: float | None = None, client=None) -> LLMProvider:
    """Build the backend from the ``llm`` config section."""
    return create_llm_provider(
        provider=llm_config.provider,
        api_key=llm_config.api_key,
        model=llm_config.model,
        timeout=timeout,
        client=client,
    )
