"""External collaborators: search, calendar, contacts, messaging."""

from .calendar import (
    CalendarAdapter,
    CalendarError,
    CalendarEvent,
    CalendarNotAuthorizedError,
    DisabledCalendar,
    EventNotFoundError,
)
from .messaging import (
    Contact,
    ContactDirectory,
    ContactNotFoundError,
    DisabledContacts,
    DisabledMessaging,
    InMemoryContactDirectory,
    MessagingError,
    MessagingGateway,
    OutboxGateway,
    SQLiteOutboxGateway,
)
from .search import DisabledSearch, PerplexitySearchClient, SearchAdapter, SearchError

__all__ = [
    "CalendarAdapter",
    "CalendarError",
    "CalendarEvent",
    "CalendarNotAuthorizedError",
    "DisabledCalendar",
    "EventNotFoundError",
    "Contact",
    "ContactDirectory",
    "ContactNotFoundError",
    "DisabledContacts",
    "DisabledMessaging",
    "InMemoryContactDirectory",
    "MessagingError",
    "MessagingGateway",
    "OutboxGateway",
    "SQLiteOutboxGateway",
    "SearchAdapter",
    "SearchError",
    "DisabledSearch",
    "PerplexitySearchClient",
]
