"""Pydantic configuration models for Nudge."""

import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LLM_PROVIDERS = {"auto", "claude", "openai"}
VALID_PERSONALITIES = {"friendly", "professional", "concise", "enthusiastic"}
VALID_VERBOSITY = {"brief", "balanced", "detailed"}


def _expand_env(value: Optional[str]) -> Optional[str]:
    """Resolve a "${VAR}" placeholder from the environment."""
    if value and value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "auto"
    model: Optional[str] = None  # None = use provider default
    api_key: Optional[str] = None

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in VALID_LLM_PROVIDERS:
            raise ValueError(f"Invalid LLM provider: {v}. Must be one of {VALID_LLM_PROVIDERS}")
        return v


class AssistantConfig(BaseModel):
    """Turn loop limits."""

    name: str = "Nudge"
    max_iterations: int = Field(default=5, ge=1, le=20)
    history_window: int = Field(default=20, ge=0)
    model_timeout: float = 60.0
    tool_timeout: float = 30.0
    tool_result_max_chars: int = 4000
    max_tokens: int = 2000


class PathsConfig(BaseModel):
    """File paths configuration."""

    tasks_db: Path = Path("~/.nudge/tasks.db")
    log_file: Path = Path("~/.nudge/nudge.log")
    outbox_db: Path = Path("~/.nudge/outbox.db")
    memory_file: Optional[Path] = None

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.tasks_db = self.tasks_db.expanduser()
        self.log_file = self.log_file.expanduser()
        self.outbox_db = self.outbox_db.expanduser()
        if self.memory_file:
            self.memory_file = self.memory_file.expanduser()
        return self


class UserConfig(BaseModel):
    """Who the assistant works for."""

    owner_id: str = "local"
    display_name: str = ""
    nickname: str = ""
    timezone: str = "UTC"
    personality: str = "friendly"
    verbosity: str = "balanced"
    communication_style: str = ""
    email_sign_off: str = ""
    email_signature: str = ""
    occupation: str = ""
    important_facts: list[str] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {v}") from None
        return v

    @field_validator("personality")
    @classmethod
    def validate_personality(cls, v: str) -> str:
        if v not in VALID_PERSONALITIES:
            raise ValueError(f"Invalid personality: {v}. Must be one of {VALID_PERSONALITIES}")
        return v

    @field_validator("verbosity")
    @classmethod
    def validate_verbosity(cls, v: str) -> str:
        if v not in VALID_VERBOSITY:
            raise ValueError(f"Invalid verbosity: {v}. Must be one of {VALID_VERBOSITY}")
        return v

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class SearchConfig(BaseModel):
    """Web search (Perplexity)."""

    enabled: bool = True
    api_key: Optional[str] = "${PERPLEXITY_API_KEY}"
    model: str = "sonar"
    max_citations: int = 5
    timeout: float = 30.0


class CalendarConfig(BaseModel):
    """Calendar provider."""

    provider: Optional[str] = None  # None | "google"
    access_token: Optional[str] = None
    timeout: float = 20.0

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: Optional[str]) -> Optional[str]:
        if v not in (None, "google"):
            raise ValueError(f"Invalid calendar provider: {v}")
        return v


class ContactConfig(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None


class MessagingConfig(BaseModel):
    """Outgoing SMS/email hand-off."""

    enabled: bool = False
    contacts: list[ContactConfig] = Field(default_factory=list)


class NotificationsConfig(BaseModel):
    """Due-date alerts."""

    enabled: bool = True


class RetryConfig(BaseModel):
    """Retry/backoff configuration for HTTP collaborators."""

    max_attempts: int = 2
    min_wait: float = 0.5
    max_wait: float = 2.0


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    json_mode: bool = False
    to_file: bool = False  # also write JSON lines to paths.log_file

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class NudgeConfig(BaseModel):
    """Main configuration model."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    user: UserConfig = Field(default_factory=UserConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    messaging: MessagingConfig = Field(default_factory=MessagingConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in secrets."""
        self.llm.api_key = _expand_env(self.llm.api_key)
        self.search.api_key = _expand_env(self.search.api_key)
        self.calendar.access_token = _expand_env(self.calendar.access_token)
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "NudgeConfig":
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
