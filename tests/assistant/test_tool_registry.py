"""Tests for the tool catalog and argument validation."""

from datetime import datetime, timezone

import pytest

from assistant.tools import (
    CreateReminderArgs,
    GetCalendarEventsArgs,
    ToolArgumentError,
    ToolRegistry,
    parse_iso8601,
)
from shared_types import RecurrenceInterval

EXPECTED_TOOLS = [
    "send_sms",
    "send_email",
    "search_web",
    "create_reminder",
    "create_calendar_event",
    "get_calendar_events",
    "update_calendar_event",
    "delete_calendar_event",
    "get_contacts",
]


@pytest.fixture
def registry():
    return ToolRegistry()


class TestCatalog:
    def test_all_tools_declared(self, registry):
        assert registry.names == EXPECTED_TOOLS
        assert [d.name for d in registry.get_definitions()] == EXPECTED_TOOLS

    def test_required_fields(self, registry):
        required = {d.name: d.required for d in registry.get_definitions()}
        assert required["send_sms"] == ["recipient_name", "message"]
        assert required["send_email"] == ["subject", "body"]
        assert required["create_reminder"] == ["title"]
        assert required["create_calendar_event"] == ["title", "start_date"]
        assert required["get_calendar_events"] == []
        assert required["update_calendar_event"] == ["event_id"]

    def test_recurrence_enum_in_schema(self, registry):
        defn = next(d for d in registry.get_definitions() if d.name == "create_reminder")
        assert defn.input_schema["properties"]["recurrence_interval"]["enum"] == ["daily", "weekly", "monthly"]

    def test_contains(self, registry):
        assert "search_web" in registry
        assert "launch_rocket" not in registry


class TestValidation:
    def test_valid_reminder(self, registry):
        args = registry.validate(
            "create_reminder",
            {"title": " Buy milk ", "due_date": "2025-12-25T10:00:00Z", "is_recurring": True, "recurrence_interval": "weekly"},
        )
        assert isinstance(args, CreateReminderArgs)
        assert args.title == "Buy milk"
        assert args.due_date == datetime(2025, 12, 25, 10, tzinfo=timezone.utc)
        assert args.recurrence_interval is RecurrenceInterval.WEEKLY

    def test_missing_required(self, registry):
        with pytest.raises(ToolArgumentError) as exc:
            registry.validate("create_reminder", {})
        assert "missing required argument 'title'" in str(exc.value)
        assert str(exc.value).startswith("Invalid arguments for create_reminder")

    def test_bad_date(self, registry):
        with pytest.raises(ToolArgumentError) as exc:
            registry.validate("create_calendar_event", {"title": "x", "start_date": "next tuesday"})
        assert "start_date" in str(exc.value)

    def test_bad_enum(self, registry):
        with pytest.raises(ToolArgumentError) as exc:
            registry.validate(
                "create_reminder", {"title": "x", "is_recurring": True, "recurrence_interval": "yearly"}
            )
        assert "recurrence_interval" in str(exc.value)

    def test_recurring_without_interval(self, registry):
        with pytest.raises(ToolArgumentError) as exc:
            registry.validate("create_reminder", {"title": "x", "is_recurring": True})
        assert "recurrence_interval is required" in str(exc.value)

    def test_end_before_start(self, registry):
        with pytest.raises(ToolArgumentError):
            registry.validate(
                "create_calendar_event",
                {"title": "x", "start_date": "2025-01-02T10:00:00Z", "end_date": "2025-01-02T09:00:00Z"},
            )

    def test_unknown_fields_ignored(self, registry):
        args = registry.validate("search_web", {"query": "weather", "verbose": True})
        assert args.query == "weather"

    def test_defaults(self, registry):
        args = registry.validate("get_calendar_events", {})
        assert isinstance(args, GetCalendarEventsArgs)
        assert args.days_ahead == 7
        assert args.search_query is None

    def test_none_arguments_treated_as_empty(self, registry):
        assert registry.validate("get_contacts", None).search_name is None

    def test_unknown_tool_raises_key_error(self, registry):
        with pytest.raises(KeyError):
            registry.validate("launch_rocket", {})


class TestParseIso8601:
    def test_offset_normalized_to_utc(self):
        assert parse_iso8601("2025-12-25T05:00:00-05:00") == datetime(2025, 12, 25, 10, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_iso8601("2025-12-25T10:00:00") == datetime(2025, 12, 25, 10, tzinfo=timezone.utc)

    def test_rejects_non_string(self):
        with pytest.raises(ValueError):
            parse_iso8601(1735120800)
