"""Tool catalog exposed to the language model.

Each tool pairs a JSON-schema ``ToolDefinition`` (sent verbatim to the
backend) with a pydantic model that validates its arguments at the dispatch
boundary. Nothing here executes a tool; see ``assistant.dispatch``.
"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, model_validator

from llm.base import ToolDefinition
from shared_types import RecurrenceInterval
from tasks.models import as_utc


def parse_iso8601(value):
    """Accept ISO-8601 strings only; normalize to UTC (naive = UTC)."""
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str):
        raise ValueError("expected an ISO 8601 date string")
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(f"not a valid ISO 8601 date: {value!r}") from None
    return as_utc(parsed)


IsoDateTime = Annotated[datetime, BeforeValidator(parse_iso8601)]


class ToolArgs(BaseModel):
    # Unknown fields are dropped, not rejected
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class SendSmsArgs(ToolArgs):
    recipient_name: str = Field(min_length=1)
    message: str = Field(min_length=1)


class SendEmailArgs(ToolArgs):
    subject: str
    body: str
    recipient_name: Optional[str] = None
    recipient_email: Optional[str] = None


class SearchWebArgs(ToolArgs):
    query: str = Field(min_length=1)


class CreateReminderArgs(ToolArgs):
    title: str = Field(min_length=1)
    notes: Optional[str] = None
    due_date: Optional[IsoDateTime] = None
    is_recurring: bool = False
    recurrence_interval: Optional[RecurrenceInterval] = None

    @model_validator(mode="after")
    def check_recurrence(self):
        if self.is_recurring and self.recurrence_interval is None:
            raise ValueError("recurrence_interval is required when is_recurring is true")
        return self


class CreateCalendarEventArgs(ToolArgs):
    title: str = Field(min_length=1)
    start_date: IsoDateTime
    end_date: Optional[IsoDateTime] = None
    location: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_order(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date is before start_date")
        return self


class GetCalendarEventsArgs(ToolArgs):
    search_query: Optional[str] = None
    days_ahead: int = Field(default=7, ge=1, le=365)


class UpdateCalendarEventArgs(ToolArgs):
    event_id: str = Field(min_length=1)
    title: Optional[str] = None
    start_date: Optional[IsoDateTime] = None
    end_date: Optional[IsoDateTime] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class DeleteCalendarEventArgs(ToolArgs):
    event_id: str = Field(min_length=1)


class GetContactsArgs(ToolArgs):
    search_name: Optional[str] = None


def _schema(properties: dict, required: list[str]) -> dict:
    return {"type": "object", "properties": properties, "required": required}


_TOOLS: list[tuple[ToolDefinition, type[ToolArgs]]] = [
    (
        ToolDefinition(
            name="send_sms",
            description=(
                "Send a text message (SMS) to one of the user's contacts. "
                "Use this when the user wants to text someone."
            ),
            input_schema=_schema(
                {
                    "recipient_name": {
                        "type": "string",
                        "description": "The name of the contact to send the message to (e.g., 'Mom', 'John Smith')",
                    },
                    "message": {"type": "string", "description": "The text message content to send"},
                },
                ["recipient_name", "message"],
            ),
        ),
        SendSmsArgs,
    ),
    (
        ToolDefinition(
            name="send_email",
            description=(
                "Send an email. You can either specify a contact name (to look up their email) "
                "OR provide a direct email address."
            ),
            input_schema=_schema(
                {
                    "recipient_name": {
                        "type": "string",
                        "description": "The name of the contact to send the email to (optional if email is provided)",
                    },
                    "recipient_email": {
                        "type": "string",
                        "description": "The direct email address to send to (optional if recipient_name is provided)",
                    },
                    "subject": {"type": "string", "description": "The email subject line"},
                    "body": {"type": "string", "description": "The email body content"},
                },
                ["subject", "body"],
            ),
        ),
        SendEmailArgs,
    ),
    (
        ToolDefinition(
            name="search_web",
            description=(
                "Search the web for current information. Use this for finding flights, restaurants, "
                "products, news, weather, or any real-time information."
            ),
            input_schema=_schema(
                {
                    "query": {
                        "type": "string",
                        "description": "The search query (e.g., 'flights from NYC to LA on December 15', 'best Italian restaurants in Boston')",
                    },
                },
                ["query"],
            ),
        ),
        SearchWebArgs,
    ),
    (
        ToolDefinition(
            name="create_reminder",
            description="Create a reminder for the user. Use this when the user wants to be reminded about something.",
            input_schema=_schema(
                {
                    "title": {"type": "string", "description": "The reminder title/content"},
                    "notes": {"type": "string", "description": "Optional additional notes for the reminder"},
                    "due_date": {
                        "type": "string",
                        "description": "Optional due date in ISO 8601 format (e.g., '2024-12-25T10:00:00Z')",
                    },
                    "is_recurring": {"type": "boolean", "description": "Whether this reminder should repeat"},
                    "recurrence_interval": {
                        "type": "string",
                        "enum": [i.value for i in RecurrenceInterval],
                        "description": "How often the reminder should repeat",
                    },
                },
                ["title"],
            ),
        ),
        CreateReminderArgs,
    ),
    (
        ToolDefinition(
            name="create_calendar_event",
            description="Create a calendar event. Use this when the user wants to schedule something on their calendar.",
            input_schema=_schema(
                {
                    "title": {"type": "string", "description": "The event title"},
                    "start_date": {
                        "type": "string",
                        "description": "Event start date/time in ISO 8601 format",
                    },
                    "end_date": {
                        "type": "string",
                        "description": "Optional event end date/time in ISO 8601 format. Defaults to 1 hour after start.",
                    },
                    "location": {"type": "string", "description": "Optional event location"},
                    "notes": {"type": "string", "description": "Optional event notes/description"},
                },
                ["title", "start_date"],
            ),
        ),
        CreateCalendarEventArgs,
    ),
    (
        ToolDefinition(
            name="get_calendar_events",
            description="Get upcoming calendar events or search for specific events",
            input_schema=_schema(
                {
                    "search_query": {
                        "type": "string",
                        "description": "Optional search term to find specific events (e.g., 'meeting with John', 'dentist')",
                    },
                    "days_ahead": {
                        "type": "integer",
                        "description": "Number of days ahead to look for events (default 7)",
                    },
                },
                [],
            ),
        ),
        GetCalendarEventsArgs,
    ),
    (
        ToolDefinition(
            name="update_calendar_event",
            description="Update an existing calendar event. First use get_calendar_events to find the event ID.",
            input_schema=_schema(
                {
                    "event_id": {"type": "string", "description": "The ID of the event to update"},
                    "title": {"type": "string", "description": "New title for the event (optional)"},
                    "start_date": {
                        "type": "string",
                        "description": "New start date/time in ISO 8601 format (optional)",
                    },
                    "end_date": {
                        "type": "string",
                        "description": "New end date/time in ISO 8601 format (optional)",
                    },
                    "location": {"type": "string", "description": "New location (optional)"},
                    "notes": {"type": "string", "description": "New notes/description (optional)"},
                },
                ["event_id"],
            ),
        ),
        UpdateCalendarEventArgs,
    ),
    (
        ToolDefinition(
            name="delete_calendar_event",
            description="Delete a calendar event. First use get_calendar_events to find the event ID.",
            input_schema=_schema(
                {"event_id": {"type": "string", "description": "The ID of the event to delete"}},
                ["event_id"],
            ),
        ),
        DeleteCalendarEventArgs,
    ),
    (
        ToolDefinition(
            name="get_contacts",
            description=(
                "Retrieve the user's contacts list. Use this when you need to look up contact "
                "information or verify a contact exists."
            ),
            input_schema=_schema(
                {"search_name": {"type": "string", "description": "Optional name to search for in contacts"}},
                [],
            ),
        ),
        GetContactsArgs,
    ),
]


class ToolArgumentError(ValueError):
    """Tool arguments failed validation. Message is model-readable."""


def describe_validation_error(tool_name: str, error: ValidationError) -> str:
    problems = []
    for err in error.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "arguments"
        if err.get("type") == "missing":
            problems.append(f"missing required argument '{field}'")
        else:
            msg = err.get("msg", "invalid value").removeprefix("Value error, ")
            if field == "arguments":
                problems.append(msg)
            else:
                problems.append(f"invalid value for '{field}': {msg}")
    return f"Invalid arguments for {tool_name}: " + "; ".join(problems)


class ToolRegistry:
    """Declarative catalog: what tools exist and what their arguments look like."""

    def __init__(self, tools: list[tuple[ToolDefinition, type[ToolArgs]]] | None = None):
        self._tools = {defn.name: (defn, model) for defn, model in (tools or _TOOLS)}

    def get_definitions(self) -> list[ToolDefinition]:
        return [defn for defn, _ in self._tools.values()]

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def validate(self, name: str, arguments: dict) -> ToolArgs:
        """Validate raw arguments for a known tool.

        Raises:
            KeyError: unknown tool
            ToolArgumentError: missing or invalid fields
        """
        _, model = self._tools[name]
        try:
            return model.model_validate(arguments or {})
        except ValidationError as e:
            raise ToolArgumentError(describe_validation_error(name, e)) from e
