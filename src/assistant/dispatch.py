"""Tool dispatch: runs validated tool calls against the collaborators.

Every outcome, including failures, comes back as text in a ``ToolResult``.
Nothing raised by a collaborator escapes ``execute``.
"""

from collections.abc import Callable
from datetime import timezone, tzinfo

import structlog

from integrations.calendar import (
    DEFAULT_EVENT_DURATION,
    CalendarAdapter,
    CalendarError,
    CalendarEvent,
    CalendarNotAuthorizedError,
    DisabledCalendar,
    EventNotFoundError,
)
from integrations.messaging import (
    ContactDirectory,
    ContactNotFoundError,
    DisabledContacts,
    DisabledMessaging,
    MessagingError,
    MessagingGateway,
)
from integrations.search import DisabledSearch, SearchAdapter, SearchError
from llm.base import ToolCall, ToolResult
from shared_types import TaskSource
from tasks.models import format_due_absolute
from tasks.service import TaskService

from .tools import (
    CreateCalendarEventArgs,
    CreateReminderArgs,
    DeleteCalendarEventArgs,
    GetCalendarEventsArgs,
    GetContactsArgs,
    SearchWebArgs,
    SendEmailArgs,
    SendSmsArgs,
    ToolArgumentError,
    ToolRegistry,
    UpdateCalendarEventArgs,
)

logger = structlog.get_logger()

# Max chars returned per tool result to manage context window
TOOL_RESULT_MAX_CHARS = 4000
MAX_LISTED_EVENTS = 10


class ToolFailure(Exception):
    """Expected tool failure; the message goes to the model as-is."""


class ToolDispatcher:
    """Maps tool names to handlers bound to explicit collaborators.

    Absent collaborators are configured as their disabled variants, so
    handlers never check for None.
    """

    def __init__(
        self,
        tasks: TaskService,
        registry: ToolRegistry | None = None,
        search: SearchAdapter | None = None,
        calendar: CalendarAdapter | None = None,
        contacts: ContactDirectory | None = None,
        messaging: MessagingGateway | None = None,
        tz: tzinfo | None = None,
        max_result_chars: int = TOOL_RESULT_MAX_CHARS,
    ):
        self.tasks = tasks
        self.registry = registry or ToolRegistry()
        self.search = search or DisabledSearch()
        self.calendar = calendar or DisabledCalendar()
        self.contacts = contacts or DisabledContacts()
        self.messaging = messaging or DisabledMessaging()
        self.tz = tz or timezone.utc
        self.max_result_chars = max_result_chars

        self._handlers: dict[str, Callable] = {
            "send_sms": self._send_sms,
            "send_email": self._send_email,
            "search_web": self._search_web,
            "create_reminder": self._create_reminder,
            "create_calendar_event": self._create_calendar_event,
            "get_calendar_events": self._get_calendar_events,
            "update_calendar_event": self._update_calendar_event,
            "delete_calendar_event": self._delete_calendar_event,
            "get_contacts": self._get_contacts,
        }
        missing = set(self.registry.names) - set(self._handlers)
        if missing:
            raise ValueError(f"No handler for tools: {', '.join(sorted(missing))}")

    def execute(self, call: ToolCall) -> ToolResult:
        handler = self._handlers.get(call.name)
        if handler is None or call.name not in self.registry:
            logger.warning("unknown_tool", tool=call.name)
            return self._result(call, f"Unknown tool: {call.name}", is_error=True)

        try:
            args = self.registry.validate(call.name, call.arguments)
        except ToolArgumentError as e:
            return self._result(call, f"Error: {e}", is_error=True)

        try:
            text = handler(args)
        except ToolFailure as e:
            return self._result(call, f"Error: {e}", is_error=True)
        except Exception as e:
            logger.error("tool_execution_failed", tool=call.name, error=str(e))
            return self._result(call, f"Error running {call.name}: {e}", is_error=True)
        return self._result(call, text)

    def _result(self, call: ToolCall, text: str, is_error: bool = False) -> ToolResult:
        if len(text) > self.max_result_chars:
            text = text[: self.max_result_chars] + "... (truncated)"
        return ToolResult(tool_call_id=call.id, name=call.name, content=text, is_error=is_error)

    def _fmt(self, moment) -> str:
        return format_due_absolute(moment, self.tz)

    # --- Reminders ---

    def _create_reminder(self, args: CreateReminderArgs) -> str:
        task = self.tasks.create_task(
            title=args.title,
            notes=args.notes,
            due=args.due_date,
            is_recurring=args.is_recurring,
            recurrence_interval=args.recurrence_interval if args.is_recurring else None,
            source=TaskSource.ASSISTANT,
        )
        text = f"Successfully created reminder: {task.title}"
        if task.due:
            text += f" for {self._fmt(task.due)}"
        if task.is_recurring:
            text += f" (recurring {task.recurrence.interval.value})"
        return text + f" [id: {task.id}]"

    # --- Search ---

    def _search_web(self, args: SearchWebArgs) -> str:
        if not self.search.enabled:
            raise ToolFailure("Search service not configured")
        try:
            return self.search.search(args.query)
        except SearchError as e:
            raise ToolFailure(f"Could not search: {e}") from e

    # --- Calendar ---

    def _calendar_call(self, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except CalendarNotAuthorizedError as e:
            raise ToolFailure(str(e)) from e
        except EventNotFoundError as e:
            raise ToolFailure("Calendar event not found. Use get_calendar_events to find the event ID.") from e
        except CalendarError as e:
            raise ToolFailure(str(e)) from e

    def _create_calendar_event(self, args: CreateCalendarEventArgs) -> str:
        end = args.end_date or args.start_date + DEFAULT_EVENT_DURATION
        self._calendar_call(
            self.calendar.create_event,
            title=args.title,
            start=args.start_date,
            end=end,
            location=args.location,
            notes=args.notes,
        )
        return f"Successfully created calendar event: {args.title} at {self._fmt(args.start_date)}"

    def _get_calendar_events(self, args: GetCalendarEventsArgs) -> str:
        if args.search_query:
            events = self._calendar_call(self.calendar.search_events, args.search_query)
        else:
            events = self._calendar_call(self.calendar.fetch_upcoming, args.days_ahead)

        if not events:
            return "No upcoming events found."
        lines = ["Upcoming events:"]
        for event in events[:MAX_LISTED_EVENTS]:
            lines.append(self._describe_event(event))
        return "\n".join(lines)

    def _describe_event(self, event: CalendarEvent) -> str:
        text = f"\n• {event.title}\n  ID: {event.id}\n  When: {self._fmt(event.start)} - {self._fmt(event.end)}"
        if event.location:
            text += f"\n  Where: {event.location}"
        return text

    def _update_calendar_event(self, args: UpdateCalendarEventArgs) -> str:
        if not self.calendar.supports_update:
            if not self.calendar.is_authorized:
                raise ToolFailure("Calendar service not configured")
            return "This calendar does not support editing events; nothing was changed."
        self._calendar_call(
            self.calendar.update_event,
            args.event_id,
            title=args.title,
            start=args.start_date,
            end=args.end_date,
            location=args.location,
            notes=args.notes,
        )
        return "Successfully updated calendar event"

    def _delete_calendar_event(self, args: DeleteCalendarEventArgs) -> str:
        self._calendar_call(self.calendar.delete_event, args.event_id)
        return "Successfully deleted calendar event"

    # --- Contacts & messaging ---

    def _resolve_contact(self, name: str):
        if not self.contacts.enabled:
            raise ToolFailure("Contacts not available")
        try:
            return self.contacts.resolve(name)
        except ContactNotFoundError as e:
            raise ToolFailure(f"{e}. Use get_contacts to check the name.") from e

    def _send_sms(self, args: SendSmsArgs) -> str:
        if not self.messaging.enabled:
            raise ToolFailure("SMS not configured")
        contact = self._resolve_contact(args.recipient_name)
        if not contact.phone:
            raise ToolFailure(f"{contact.name} has no phone number")
        try:
            self.messaging.send_sms(contact.phone, args.message)
        except MessagingError as e:
            raise ToolFailure(f"Could not send text: {e}") from e
        return f"Text message to {contact.name} queued for delivery"

    def _send_email(self, args: SendEmailArgs) -> str:
        if not self.messaging.enabled:
            raise ToolFailure("Email not configured")
        if args.recipient_email:
            to, label = args.recipient_email, args.recipient_email
        elif args.recipient_name:
            contact = self._resolve_contact(args.recipient_name)
            if not contact.email:
                raise ToolFailure(f"{contact.name} has no email address")
            to, label = contact.email, contact.name
        else:
            raise ToolFailure("send_email needs recipient_name or recipient_email")
        try:
            self.messaging.send_email(to, args.subject, args.body)
        except MessagingError as e:
            raise ToolFailure(f"Could not send email: {e}") from e
        return f"Email to {label} queued for delivery: {args.subject}"

    def _get_contacts(self, args: GetContactsArgs) -> str:
        if not self.contacts.enabled:
            raise ToolFailure("Contacts not available")
        try:
            contacts = self.contacts.find(args.search_name or "")
        except MessagingError as e:
            raise ToolFailure(str(e)) from e
        if not contacts:
            return "No contacts found."
        lines = ["Contacts:"]
        for c in contacts:
            details = ", ".join(part for part in (c.phone, c.email) if part)
            lines.append(f"- {c.name}" + (f": {details}" if details else ""))
        return "\n".join(lines)
