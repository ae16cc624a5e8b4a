"""Google Calendar v3 provider over httpx."""

from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone

import httpx
import structlog

from tasks.models import as_utc, utcnow

from .calendar import (
    DEFAULT_EVENT_DURATION,
    CalendarAdapter,
    CalendarError,
    CalendarEvent,
    CalendarNotAuthorizedError,
    EventNotFoundError,
)

logger = structlog.get_logger()

GOOGLE_CALENDAR_URL = "https://www.googleapis.com/calendar/v3"
SEARCH_WINDOW = timedelta(days=90)
POPUP_REMINDER_MINUTES = 15


def _iso(moment: datetime) -> str:
    return as_utc(moment).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_google_date(value: dict) -> datetime | None:
    """Parse a Google start/end object: {"dateTime": ...} or all-day {"date": ...}."""
    if not isinstance(value, dict):
        return None
    if value.get("dateTime"):
        try:
            return as_utc(datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00")))
        except ValueError:
            return None
    if value.get("date"):
        try:
            day = date.fromisoformat(value["date"])
        except ValueError:
            return None
        return datetime.combine(day, time.min, tzinfo=timezone.utc)
    return None


class GoogleCalendarProvider(CalendarAdapter):
    """Primary calendar of the account behind ``access_token``."""

    provider_name = "google"
    supports_update = True
    supports_search = True

    def __init__(
        self,
        access_token: str | None,
        time_zone: str = "UTC",
        timeout: float = 20.0,
        clock: Callable[[], datetime] = utcnow,
        retry_decorator=None,
        client: httpx.Client | None = None,
    ):
        self.access_token = access_token
        self.time_zone = time_zone
        self.clock = clock
        self.client = client or httpx.Client(base_url=GOOGLE_CALENDAR_URL, timeout=timeout)
        self._request = retry_decorator(self._request_once) if retry_decorator else self._request_once

    @property
    def is_authorized(self) -> bool:
        return bool(self.access_token)

    # --- HTTP ---

    def _request_once(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.access_token}"}
        return self.client.request(method, path, headers=headers, **kwargs)

    def _call(self, method: str, path: str, ok=(200,), **kwargs) -> httpx.Response:
        if not self.access_token:
            raise CalendarNotAuthorizedError("Calendar access not authorized")
        try:
            response = self._request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("calendar_request_failed", method=method, error=str(e))
            raise CalendarError(f"Calendar request failed: {e}") from e

        if response.status_code == 404:
            raise EventNotFoundError("Calendar event not found")
        if response.status_code in (401, 403):
            raise CalendarNotAuthorizedError("Calendar access not authorized")
        if response.status_code not in ok:
            logger.error(
                "calendar_api_error", method=method, status=response.status_code,
                body=response.text[:200],
            )
            raise CalendarError(f"Calendar API error ({response.status_code})")
        return response

    # --- Mapping ---

    def _event_body(self, title, start, end, location, notes) -> dict:
        body = {
            "summary": title,
            "start": {"dateTime": _iso(start), "timeZone": self.time_zone},
            "end": {"dateTime": _iso(end), "timeZone": self.time_zone},
        }
        if location:
            body["location"] = location
        if notes:
            body["description"] = notes
        return body

    def _to_event(self, item: dict) -> CalendarEvent | None:
        start = parse_google_date(item.get("start"))
        end = parse_google_date(item.get("end"))
        if not item.get("id") or not item.get("summary") or start is None or end is None:
            return None
        return CalendarEvent(
            id=item["id"],
            title=item["summary"],
            start=start,
            end=end,
            location=item.get("location"),
            notes=item.get("description"),
            provider=self.provider_name,
        )

    def _list(self, params: dict) -> list[CalendarEvent]:
        response = self._call("GET", "/calendars/primary/events", params=params)
        try:
            items = response.json().get("items", [])
        except ValueError as e:
            raise CalendarError("Failed to parse calendar events") from e
        return [event for event in map(self._to_event, items) if event]

    # --- Operations ---

    def create_event(self, title, start, end=None, location=None, notes=None) -> CalendarEvent | None:
        end = end or start + DEFAULT_EVENT_DURATION
        body = self._event_body(title, start, end, location, notes)
        body["reminders"] = {
            "useDefault": False,
            "overrides": [{"method": "popup", "minutes": POPUP_REMINDER_MINUTES}],
        }
        response = self._call("POST", "/calendars/primary/events", json=body)
        logger.info("calendar_event_created", provider=self.provider_name)
        try:
            return self._to_event(response.json())
        except ValueError:
            return None

    def fetch_upcoming(self, days: int = 7) -> list[CalendarEvent]:
        now = self.clock()
        return self._list(
            {
                "timeMin": _iso(now),
                "timeMax": _iso(now + timedelta(days=days)),
                "singleEvents": "true",
                "orderBy": "startTime",
                "maxResults": 50,
            }
        )

    def fetch_event(self, event_id: str) -> CalendarEvent:
        response = self._call("GET", f"/calendars/primary/events/{event_id}")
        event = self._to_event(response.json())
        if event is None:
            raise EventNotFoundError("Calendar event not found")
        return event

    def update_event(
        self, event_id, title=None, start=None, end=None, location=None, notes=None
    ) -> CalendarEvent | None:
        existing = self.fetch_event(event_id)
        body = self._event_body(
            title or existing.title,
            start or existing.start,
            end or existing.end,
            location if location is not None else existing.location,
            notes if notes is not None else existing.notes,
        )
        response = self._call("PUT", f"/calendars/primary/events/{event_id}", json=body)
        logger.info("calendar_event_updated", provider=self.provider_name)
        try:
            return self._to_event(response.json())
        except ValueError:
            return None

    def delete_event(self, event_id: str) -> None:
        self._call("DELETE", f"/calendars/primary/events/{event_id}", ok=(200, 204))
        logger.info("calendar_event_deleted", provider=self.provider_name)

    def search_events(self, query: str) -> list[CalendarEvent]:
        now = self.clock()
        return self._list(
            {
                "timeMin": _iso(now),
                "timeMax": _iso(now + SEARCH_WINDOW),
                "singleEvents": "true",
                "orderBy": "startTime",
                "q": query,
                "maxResults": 20,
            }
        )

    def close(self):
        self.client.close()
