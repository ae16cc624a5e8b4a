"""Calendar adapter contract and the disabled variant."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta

DEFAULT_EVENT_DURATION = timedelta(hours=1)


class CalendarError(Exception):
    """Calendar operation failed."""


class CalendarNotAuthorizedError(CalendarError):
    """Provider is not configured or access was not granted."""


class EventNotFoundError(CalendarError):
    """No event with the given id."""


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    title: str
    start: datetime
    end: datetime
    location: str | None = None
    notes: str | None = None
    provider: str = "unknown"

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_all_day(self) -> bool:
        return (
            (self.start.hour, self.start.minute) == (0, 0)
            and (self.end.hour, self.end.minute) in ((23, 59), (0, 0))
            and self.duration >= timedelta(hours=23, minutes=59)
        )


class CalendarAdapter(ABC):
    """Provider-polymorphic calendar.

    Update and search are optional capabilities. Providers without them
    inherit the no-op / empty implementations below instead of failing.
    """

    provider_name: str = "base"
    supports_update: bool = False
    supports_search: bool = False

    @property
    def is_authorized(self) -> bool:
        return True

    @abstractmethod
    def create_event(
        self,
        title: str,
        start: datetime,
        end: datetime | None = None,
        location: str | None = None,
        notes: str | None = None,
    ) -> CalendarEvent | None: ...

    @abstractmethod
    def fetch_upcoming(self, days: int = 7) -> list[CalendarEvent]: ...

    @abstractmethod
    def delete_event(self, event_id: str) -> None: ...

    def update_event(
        self,
        event_id: str,
        title: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        location: str | None = None,
        notes: str | None = None,
    ) -> CalendarEvent | None:
        return None

    def search_events(self, query: str) -> list[CalendarEvent]:
        return []


class DisabledCalendar(CalendarAdapter):
    """No calendar connected. Every call reports the missing precondition."""

    provider_name = "disabled"

    @property
    def is_authorized(self) -> bool:
        return False

    def create_event(self, title, start, end=None, location=None, notes=None):
        raise CalendarNotAuthorizedError("Calendar service not configured")

    def fetch_upcoming(self, days: int = 7) -> list[CalendarEvent]:
        raise CalendarNotAuthorizedError("Calendar service not configured")

    def delete_event(self, event_id: str) -> None:
        raise CalendarNotAuthorizedError("Calendar service not configured")

    def update_event(self, event_id, title=None, start=None, end=None, location=None, notes=None):
        raise CalendarNotAuthorizedError("Calendar service not configured")

    def search_events(self, query: str) -> list[CalendarEvent]:
        raise CalendarNotAuthorizedError("Calendar service not configured")
