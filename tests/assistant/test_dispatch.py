"""Tests for ToolDispatcher: handlers, validation boundary, disabled collaborators."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from assistant.dispatch import ToolDispatcher
from integrations.calendar import CalendarAdapter, CalendarError, CalendarEvent, EventNotFoundError
from integrations.messaging import Contact, InMemoryContactDirectory, OutboxGateway, SQLiteOutboxGateway
from integrations.search import SearchAdapter, SearchError
from llm.base import ToolCall
from shared_types import RecurrenceInterval, TaskSource


def call(name, **arguments):
    return ToolCall(id=f"call_{name}", name=name, arguments=arguments)


class FakeCalendar(CalendarAdapter):
    provider_name = "fake"

    def __init__(self, events=None):
        self.events = list(events or [])
        self.created = []
        self.deleted = []

    def create_event(self, title, start, end=None, location=None, notes=None):
        event = CalendarEvent(id=f"ev{len(self.created)}", title=title, start=start, end=end,
                              location=location, notes=notes, provider="fake")
        self.created.append(event)
        return event

    def fetch_upcoming(self, days=7):
        return self.events

    def delete_event(self, event_id):
        if event_id not in {e.id for e in self.events}:
            raise EventNotFoundError(event_id)
        self.deleted.append(event_id)


@pytest.fixture
def contacts():
    return InMemoryContactDirectory(
        [
            Contact(name="Mom", phone="+15551234567", email="mom@example.com"),
            Contact(name="John Smith", email="john@example.com"),
        ]
    )


@pytest.fixture
def dispatcher(service):
    return ToolDispatcher(service)


class TestBoundary:
    def test_unknown_tool(self, dispatcher):
        result = dispatcher.execute(call("launch_rocket", target="moon"))
        assert result.content == "Unknown tool: launch_rocket"
        assert result.is_error
        assert result.tool_call_id == "call_launch_rocket"

    def test_missing_required_field(self, dispatcher, service):
        result = dispatcher.execute(call("create_reminder"))
        assert result.is_error
        assert result.content.startswith("Error: Invalid arguments for create_reminder")
        assert "'title'" in result.content
        assert service.list_tasks() == []

    def test_unexpected_exception_becomes_text(self, service):
        search = MagicMock(spec=SearchAdapter)
        search.enabled = True
        search.search.side_effect = RuntimeError("boom")
        result = ToolDispatcher(service, search=search).execute(call("search_web", query="x"))
        assert result.is_error
        assert result.content == "Error running search_web: boom"

    def test_result_truncated(self, service):
        search = MagicMock(spec=SearchAdapter)
        search.enabled = True
        search.search.return_value = "a" * 100
        result = ToolDispatcher(service, search=search, max_result_chars=10).execute(
            call("search_web", query="x")
        )
        assert result.content == "a" * 10 + "... (truncated)"


class TestCreateReminder:
    def test_round_trip(self, dispatcher, service):
        result = dispatcher.execute(call("create_reminder", title="Open presents", due_date="2025-12-25T10:00:00Z"))

        assert not result.is_error
        assert result.content.startswith("Successfully created reminder: Open presents for 10:00am Thursday Dec 25th")
        (task,) = service.list_tasks()
        assert task.due == datetime(2025, 12, 25, 10, 0, tzinfo=timezone.utc)
        assert task.completed is False
        assert task.source == TaskSource.ASSISTANT
        assert task.id in result.content

    def test_recurring(self, dispatcher, service):
        result = dispatcher.execute(
            call("create_reminder", title="Water plants", due_date="2025-01-07T09:00:00Z",
                 is_recurring=True, recurrence_interval="weekly")
        )
        assert "(recurring weekly)" in result.content
        (task,) = service.list_tasks()
        assert task.recurrence.interval is RecurrenceInterval.WEEKLY

    def test_local_time_rendering(self, service):
        from zoneinfo import ZoneInfo

        dispatcher = ToolDispatcher(service, tz=ZoneInfo("America/New_York"))
        result = dispatcher.execute(call("create_reminder", title="x", due_date="2025-12-25T20:00:00Z"))
        assert "3:00pm Thursday Dec 25th" in result.content


class TestDisabledCollaborators:
    @pytest.mark.parametrize(
        "tool_call,message",
        [
            (call("search_web", query="weather"), "Error: Search service not configured"),
            (call("create_calendar_event", title="x", start_date="2025-01-01T10:00:00Z"),
             "Error: Calendar service not configured"),
            (call("get_calendar_events"), "Error: Calendar service not configured"),
            (call("update_calendar_event", event_id="e1", title="y"), "Error: Calendar service not configured"),
            (call("delete_calendar_event", event_id="e1"), "Error: Calendar service not configured"),
            (call("send_sms", recipient_name="Mom", message="hi"), "Error: SMS not configured"),
            (call("send_email", subject="s", body="b", recipient_email="a@b.com"), "Error: Email not configured"),
            (call("get_contacts"), "Error: Contacts not available"),
        ],
    )
    def test_reports_missing_precondition(self, dispatcher, tool_call, message):
        result = dispatcher.execute(tool_call)
        assert result.is_error
        assert result.content == message


class TestSearch:
    def test_search_result_passed_through(self, service):
        search = MagicMock(spec=SearchAdapter)
        search.enabled = True
        search.search.return_value = "Sunny, 72F"
        result = ToolDispatcher(service, search=search).execute(call("search_web", query="weather"))
        assert result.content == "Sunny, 72F"
        search.search.assert_called_once_with("weather")

    def test_search_error(self, service):
        search = MagicMock(spec=SearchAdapter)
        search.enabled = True
        search.search.side_effect = SearchError("Search error (500)")
        result = ToolDispatcher(service, search=search).execute(call("search_web", query="weather"))
        assert result.content == "Error: Could not search: Search error (500)"


class TestCalendar:
    def test_create_defaults_end_to_one_hour(self, service):
        calendar = FakeCalendar()
        result = ToolDispatcher(service, calendar=calendar).execute(
            call("create_calendar_event", title="Standup", start_date="2025-01-02T15:00:00Z")
        )
        assert result.content.startswith("Successfully created calendar event: Standup")
        event = calendar.created[0]
        assert event.end - event.start == timedelta(hours=1)

    def test_list_events(self, service):
        start = datetime(2025, 1, 2, 15, tzinfo=timezone.utc)
        events = [
            CalendarEvent(id=f"e{i}", title=f"Event {i}", start=start, end=start + timedelta(hours=1),
                          location="Room 1" if i == 0 else None)
            for i in range(12)
        ]
        result = ToolDispatcher(service, calendar=FakeCalendar(events)).execute(call("get_calendar_events"))
        assert result.content.startswith("Upcoming events:")
        assert "ID: e0" in result.content
        assert "Where: Room 1" in result.content
        assert "Event 9" in result.content
        assert "Event 10" not in result.content

    def test_no_events(self, service):
        result = ToolDispatcher(service, calendar=FakeCalendar()).execute(call("get_calendar_events"))
        assert result.content == "No upcoming events found."

    def test_search_unsupported_degrades_to_empty(self, service):
        result = ToolDispatcher(service, calendar=FakeCalendar()).execute(
            call("get_calendar_events", search_query="dentist")
        )
        assert result.content == "No upcoming events found."

    def test_update_unsupported_is_noop(self, service):
        result = ToolDispatcher(service, calendar=FakeCalendar()).execute(
            call("update_calendar_event", event_id="e1", title="New")
        )
        assert not result.is_error
        assert "nothing was changed" in result.content

    def test_delete_not_found(self, service):
        result = ToolDispatcher(service, calendar=FakeCalendar()).execute(
            call("delete_calendar_event", event_id="missing")
        )
        assert result.is_error
        assert "Calendar event not found" in result.content

    def test_calendar_error(self, service):
        calendar = MagicMock(spec=CalendarAdapter)
        calendar.fetch_upcoming.side_effect = CalendarError("Calendar API error (500)")
        result = ToolDispatcher(service, calendar=calendar).execute(call("get_calendar_events"))
        assert result.content == "Error: Calendar API error (500)"


class TestMessaging:
    def test_send_sms(self, service, contacts):
        gateway = OutboxGateway()
        result = ToolDispatcher(service, contacts=contacts, messaging=gateway).execute(
            call("send_sms", recipient_name="mom", message="Running late")
        )
        assert result.content == "Text message to Mom queued for delivery"
        assert gateway.outbox[0].to == "+15551234567"
        assert gateway.outbox[0].body == "Running late"

    def test_send_sms_is_persisted(self, service, contacts, tmp_path):
        gateway = SQLiteOutboxGateway(tmp_path / "outbox.db")
        result = ToolDispatcher(service, contacts=contacts, messaging=gateway).execute(
            call("send_sms", recipient_name="mom", message="Running late")
        )
        assert not result.is_error
        pending = SQLiteOutboxGateway(tmp_path / "outbox.db").pending()
        assert [(m.to, m.body) for _, m in pending] == [("+15551234567", "Running late")]

    def test_send_sms_no_phone(self, service, contacts):
        result = ToolDispatcher(service, contacts=contacts, messaging=OutboxGateway()).execute(
            call("send_sms", recipient_name="John Smith", message="hi")
        )
        assert result.content == "Error: John Smith has no phone number"

    def test_send_sms_unknown_contact(self, service, contacts):
        result = ToolDispatcher(service, contacts=contacts, messaging=OutboxGateway()).execute(
            call("send_sms", recipient_name="Zed", message="hi")
        )
        assert result.is_error
        assert "get_contacts" in result.content

    def test_send_email_by_name(self, service, contacts):
        gateway = OutboxGateway()
        result = ToolDispatcher(service, contacts=contacts, messaging=gateway).execute(
            call("send_email", recipient_name="John", subject="Lunch", body="Noon?")
        )
        assert result.content == "Email to John Smith queued for delivery: Lunch"
        assert gateway.outbox[0].to == "john@example.com"
        assert gateway.outbox[0].subject == "Lunch"

    def test_send_email_direct_address(self, service):
        gateway = OutboxGateway()
        result = ToolDispatcher(service, messaging=gateway).execute(
            call("send_email", recipient_email="x@y.com", subject="Hi", body="...")
        )
        assert result.content == "Email to x@y.com queued for delivery: Hi"

    def test_send_email_needs_recipient(self, service, contacts):
        result = ToolDispatcher(service, contacts=contacts, messaging=OutboxGateway()).execute(
            call("send_email", subject="Hi", body="...")
        )
        assert result.content == "Error: send_email needs recipient_name or recipient_email"

    def test_get_contacts(self, service, contacts):
        dispatcher = ToolDispatcher(service, contacts=contacts)
        result = dispatcher.execute(call("get_contacts"))
        assert "- Mom: +15551234567, mom@example.com" in result.content
        assert "- John Smith: john@example.com" in result.content

        result = dispatcher.execute(call("get_contacts", search_name="zzz"))
        assert result.content == "No contacts found."


def test_every_registered_tool_has_a_handler(service):
    dispatcher = ToolDispatcher(service)
    assert set(dispatcher._handlers) == set(dispatcher.registry.names)
