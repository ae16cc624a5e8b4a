"""Shared CLI utilities."""

import sys
from pathlib import Path

import structlog
from rich.console import Console

console = Console()
logger = structlog.get_logger()


def get_components(skip_assistant: bool = False, config_path: Path | None = None):
    """Initialize all components from config.

    Args:
        skip_assistant: If True, skip LLM init (for commands that only touch tasks)
        config_path: Explicit config file (default: standard locations)
    """
    from cli.config import load_config_model
    from tasks import LoggingNotificationScheduler, NullNotificationScheduler, SQLiteTaskStore, TaskService

    config = load_config_model(config_path)
    tz = config.user.tz

    store = SQLiteTaskStore(config.paths.tasks_db)
    notifier = (
        LoggingNotificationScheduler() if config.notifications.enabled else NullNotificationScheduler()
    )
    service = TaskService(store, config.user.owner_id, notifier=notifier, tz=tz)

    orchestrator = None
    if not skip_assistant:
        from llm import LLMError

        try:
            orchestrator = build_orchestrator(config, service)
        except LLMError as e:
            console.print(f"[red]Config error:[/] {e}")
            sys.exit(1)

    return {
        "config": config,
        "tz": tz,
        "store": store,
        "tasks": service,
        "assistant": orchestrator,
    }


def build_collaborators(config) -> dict:
    """Search, calendar, contacts and messaging per config; disabled variants otherwise."""
    from cli.retry import retry_from_config
    from integrations import (
        Contact,
        DisabledCalendar,
        DisabledContacts,
        DisabledMessaging,
        DisabledSearch,
        InMemoryContactDirectory,
        PerplexitySearchClient,
        SQLiteOutboxGateway,
    )
    from integrations.google_calendar import GoogleCalendarProvider

    retry_decorator = retry_from_config(config.retry)

    search = DisabledSearch()
    if config.search.enabled and config.search.api_key:
        search = PerplexitySearchClient(
            api_key=config.search.api_key,
            model=config.search.model,
            max_citations=config.search.max_citations,
            timeout=config.search.timeout,
            retry_decorator=retry_decorator,
        )

    calendar = DisabledCalendar()
    if config.calendar.provider == "google" and config.calendar.access_token:
        calendar = GoogleCalendarProvider(
            access_token=config.calendar.access_token,
            time_zone=config.user.timezone,
            timeout=config.calendar.timeout,
            retry_decorator=retry_decorator,
        )

    contacts = DisabledContacts()
    messaging = DisabledMessaging()
    if config.messaging.enabled:
        contacts = InMemoryContactDirectory(
            [Contact(name=c.name, phone=c.phone, email=c.email) for c in config.messaging.contacts]
        )
        messaging = SQLiteOutboxGateway(config.paths.outbox_db)

    return {"search": search, "calendar": calendar, "contacts": contacts, "messaging": messaging}


def read_memory_context(path: Path | None) -> str:
    if not path or not path.exists():
        return ""
    try:
        return path.read_text()
    except OSError as e:
        logger.warning("memory_context_unreadable", path=str(path), error=str(e))
        return ""


def build_orchestrator(config, service):
    """Wire the assistant loop for one owner."""
    from assistant import AssistantOrchestrator, ToolDispatcher, UserProfile, build_system_prompt
    from llm import create_llm_provider_from_config

    llm = create_llm_provider_from_config(config.llm, timeout=config.assistant.model_timeout)
    dispatcher = ToolDispatcher(
        service,
        tz=config.user.tz,
        max_result_chars=config.assistant.tool_result_max_chars,
        **build_collaborators(config),
    )

    user = config.user
    profile = UserProfile(
        display_name=user.display_name,
        nickname=user.nickname,
        personality=user.personality,
        verbosity=user.verbosity,
        communication_style=user.communication_style,
        email_sign_off=user.email_sign_off,
        email_signature=user.email_signature,
        occupation=user.occupation,
        important_facts=list(user.important_facts),
    )

    def system_prompt() -> str:
        return build_system_prompt(
            profile,
            assistant_name=config.assistant.name,
            memory_context=read_memory_context(config.paths.memory_file),
            now=service.clock(),
            tz=user.tz,
        )

    return AssistantOrchestrator(
        llm,
        dispatcher,
        system_prompt=system_prompt,
        max_iterations=config.assistant.max_iterations,
        history_window=config.assistant.history_window,
        model_timeout=config.assistant.model_timeout,
        tool_timeout=config.assistant.tool_timeout,
        max_tokens=config.assistant.max_tokens,
    )
