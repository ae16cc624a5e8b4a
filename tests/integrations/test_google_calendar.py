"""Tests for GoogleCalendarProvider against a mocked HTTP client."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import httpx
import pytest

from integrations.calendar import (
    CalendarError,
    CalendarNotAuthorizedError,
    DisabledCalendar,
    EventNotFoundError,
)
from integrations.google_calendar import GoogleCalendarProvider, parse_google_date

NOW = datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc)

EVENT = {
    "id": "evt1",
    "summary": "Dentist",
    "start": {"dateTime": "2025-01-07T15:00:00Z"},
    "end": {"dateTime": "2025-01-07T16:00:00Z"},
    "location": "Main St",
}


def _response(status_code=200, payload=None):
    return httpx.Response(status_code, json=payload if payload is not None else {})


@pytest.fixture
def http_client():
    return MagicMock()


@pytest.fixture
def calendar(http_client):
    return GoogleCalendarProvider("token-abc", time_zone="America/New_York", clock=lambda: NOW, client=http_client)


class TestParseGoogleDate:
    def test_date_time_with_offset(self):
        assert parse_google_date({"dateTime": "2025-01-07T10:00:00-05:00"}) == datetime(
            2025, 1, 7, 15, tzinfo=timezone.utc
        )

    def test_all_day(self):
        assert parse_google_date({"date": "2025-01-07"}) == datetime(2025, 1, 7, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, {}, {"dateTime": "soon"}, {"date": "2025-13-40"}])
    def test_unparseable(self, value):
        assert parse_google_date(value) is None


class TestFetch:
    def test_fetch_upcoming(self, calendar, http_client):
        broken = {"id": "evt2", "summary": "No times"}
        http_client.request.return_value = _response(payload={"items": [EVENT, broken]})

        events = calendar.fetch_upcoming(days=3)

        assert [e.id for e in events] == ["evt1"]
        assert events[0].location == "Main St"
        assert events[0].provider == "google"

        method, path = http_client.request.call_args.args
        kwargs = http_client.request.call_args.kwargs
        assert (method, path) == ("GET", "/calendars/primary/events")
        assert kwargs["headers"] == {"Authorization": "Bearer token-abc"}
        assert kwargs["params"]["timeMin"] == "2025-01-06T08:00:00Z"
        assert kwargs["params"]["timeMax"] == "2025-01-09T08:00:00Z"

    def test_all_day_event(self, calendar, http_client):
        item = {"id": "a", "summary": "Holiday", "start": {"date": "2025-01-08"}, "end": {"date": "2025-01-09"}}
        http_client.request.return_value = _response(payload={"items": [item]})
        (event,) = calendar.fetch_upcoming()
        assert event.is_all_day

    def test_search_passes_query(self, calendar, http_client):
        http_client.request.return_value = _response(payload={"items": [EVENT]})
        assert [e.title for e in calendar.search_events("dentist")] == ["Dentist"]
        assert http_client.request.call_args.kwargs["params"]["q"] == "dentist"


class TestMutations:
    def test_create_event_defaults_end(self, calendar, http_client):
        http_client.request.return_value = _response(payload=EVENT)
        start = datetime(2025, 1, 7, 15, tzinfo=timezone.utc)

        event = calendar.create_event("Dentist", start, location="Main St")

        assert event.id == "evt1"
        body = http_client.request.call_args.kwargs["json"]
        assert body["start"] == {"dateTime": "2025-01-07T15:00:00Z", "timeZone": "America/New_York"}
        assert body["end"]["dateTime"] == "2025-01-07T16:00:00Z"
        assert body["location"] == "Main St"
        assert body["reminders"]["overrides"][0]["minutes"] == 15

    def test_update_merges_existing_fields(self, calendar, http_client):
        updated = dict(EVENT, summary="Dentist (moved)")
        http_client.request.side_effect = [_response(payload=EVENT), _response(payload=updated)]

        event = calendar.update_event("evt1", title="Dentist (moved)")

        assert event.title == "Dentist (moved)"
        method, path = http_client.request.call_args.args
        assert (method, path) == ("PUT", "/calendars/primary/events/evt1")
        body = http_client.request.call_args.kwargs["json"]
        assert body["location"] == "Main St"
        assert body["start"]["dateTime"] == "2025-01-07T15:00:00Z"

    def test_delete_accepts_no_content(self, calendar, http_client):
        http_client.request.return_value = httpx.Response(204)
        calendar.delete_event("evt1")
        assert http_client.request.call_args.args == ("DELETE", "/calendars/primary/events/evt1")


class TestErrors:
    def test_not_found(self, calendar, http_client):
        http_client.request.return_value = _response(404)
        with pytest.raises(EventNotFoundError):
            calendar.delete_event("gone")

    @pytest.mark.parametrize("status", [401, 403])
    def test_unauthorized(self, calendar, http_client, status):
        http_client.request.return_value = _response(status)
        with pytest.raises(CalendarNotAuthorizedError):
            calendar.fetch_upcoming()

    def test_server_error(self, calendar, http_client):
        http_client.request.return_value = _response(500)
        with pytest.raises(CalendarError, match=r"Calendar API error \(500\)"):
            calendar.fetch_upcoming()

    def test_transport_error(self, calendar, http_client):
        http_client.request.side_effect = httpx.ReadTimeout("slow")
        with pytest.raises(CalendarError, match="Calendar request failed"):
            calendar.fetch_upcoming()

    def test_missing_token(self, http_client):
        calendar = GoogleCalendarProvider(None, client=http_client)
        assert calendar.is_authorized is False
        with pytest.raises(CalendarNotAuthorizedError):
            calendar.fetch_upcoming()
        http_client.request.assert_not_called()


class TestDisabledCalendar:
    def test_every_operation_reports_not_configured(self):
        calendar = DisabledCalendar()
        assert calendar.is_authorized is False
        start = NOW + timedelta(days=1)
        for op in (
            lambda: calendar.create_event("x", start),
            lambda: calendar.fetch_upcoming(),
            lambda: calendar.delete_event("e"),
            lambda: calendar.update_event("e", title="y"),
            lambda: calendar.search_events("q"),
        ):
            with pytest.raises(CalendarNotAuthorizedError, match="Calendar service not configured"):
                op()
