"""Contacts lookup and SMS/email delivery boundaries.

Delivery itself is out of this project's hands; gateways here either refuse
(disabled) or queue messages in an outbox for a delivery process to pick up.
"""

import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import structlog

from db import transaction
from tasks.models import utcnow

logger = structlog.get_logger()


class MessagingError(Exception):
    """Message could not be handed off."""


class ContactNotFoundError(MessagingError):
    """No contact matches the given name."""


@dataclass(frozen=True)
class Contact:
    name: str
    phone: str | None = None
    email: str | None = None


class ContactDirectory(ABC):
    enabled: bool = True

    @abstractmethod
    def all(self) -> list[Contact]: ...

    def find(self, name: str) -> list[Contact]:
        """Case-insensitive substring match on contact name."""
        needle = name.strip().lower()
        if not needle:
            return self.all()
        return [c for c in self.all() if needle in c.name.lower()]

    def resolve(self, name: str) -> Contact:
        """Best single match: exact name wins over substring matches."""
        matches = self.find(name)
        if not matches:
            raise ContactNotFoundError(f"No contact named {name!r}")
        for contact in matches:
            if contact.name.lower() == name.strip().lower():
                return contact
        return matches[0]


class InMemoryContactDirectory(ContactDirectory):
    def __init__(self, contacts: list[Contact] | None = None):
        self._contacts = list(contacts or [])

    def all(self) -> list[Contact]:
        return list(self._contacts)


class DisabledContacts(ContactDirectory):
    enabled = False

    def all(self) -> list[Contact]:
        raise MessagingError("Contacts not available")


@dataclass
class OutgoingMessage:
    channel: str  # "sms" | "email"
    to: str
    body: str
    subject: str | None = None
    created_at: datetime = field(default_factory=utcnow)


class MessagingGateway(ABC):
    enabled: bool = True

    @abstractmethod
    def send_sms(self, phone: str, message: str) -> None: ...

    @abstractmethod
    def send_email(self, to: str, subject: str, body: str) -> None: ...


class DisabledMessaging(MessagingGateway):
    enabled = False

    def send_sms(self, phone: str, message: str) -> None:
        raise MessagingError("SMS not configured")

    def send_email(self, to: str, subject: str, body: str) -> None:
        raise MessagingError("Email not configured")


class OutboxGateway(MessagingGateway):
    """Keeps messages in memory; the embedding caller drains ``outbox``."""

    def __init__(self):
        self.outbox: list[OutgoingMessage] = []

    def send_sms(self, phone: str, message: str) -> None:
        self.outbox.append(OutgoingMessage(channel="sms", to=phone, body=message))
        logger.info("sms_queued", chars=len(message))

    def send_email(self, to: str, subject: str, body: str) -> None:
        self.outbox.append(OutgoingMessage(channel="email", to=to, body=body, subject=subject))
        logger.info("email_queued", to=to, chars=len(body))


class SQLiteOutboxGateway(MessagingGateway):
    """Persists messages to a SQLite outbox that a delivery process drains.

    Rows stay pending until ``mark_delivered`` stamps them.
    """

    def __init__(self, db_path: str | Path, clock: Callable[[], datetime] = utcnow):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.clock = clock
        self._init_db()

    def _init_db(self):
        with transaction(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS outbox (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    channel TEXT NOT NULL,
                    recipient TEXT NOT NULL,
                    subject TEXT,
                    body TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    delivered_at TEXT
                )
            """)

    def _enqueue(self, message: OutgoingMessage) -> int:
        try:
            with transaction(self.db_path) as conn:
                cur = conn.execute(
                    "INSERT INTO outbox (channel, recipient, subject, body, created_at) VALUES (?, ?, ?, ?, ?)",
                    (message.channel, message.to, message.subject, message.body, message.created_at.isoformat()),
                )
                message_id = cur.lastrowid
        except sqlite3.Error as e:
            raise MessagingError(f"Outbox unavailable: {e}") from e
        logger.info("message_queued", message_id=message_id, channel=message.channel, chars=len(message.body))
        return message_id

    def send_sms(self, phone: str, message: str) -> None:
        self._enqueue(OutgoingMessage(channel="sms", to=phone, body=message, created_at=self.clock()))

    def send_email(self, to: str, subject: str, body: str) -> None:
        self._enqueue(
            OutgoingMessage(channel="email", to=to, body=body, subject=subject, created_at=self.clock())
        )

    def pending(self) -> list[tuple[int, OutgoingMessage]]:
        """Undelivered messages, oldest first, with their outbox ids."""
        with transaction(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                "SELECT * FROM outbox WHERE delivered_at IS NULL ORDER BY id"
            ).fetchall()
        return [
            (
                row["id"],
                OutgoingMessage(
                    channel=row["channel"],
                    to=row["recipient"],
                    body=row["body"],
                    subject=row["subject"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                ),
            )
            for row in rows
        ]

    def mark_delivered(self, message_id: int) -> bool:
        with transaction(self.db_path) as conn:
            cur = conn.execute(
                "UPDATE outbox SET delivered_at = ? WHERE id = ? AND delivered_at IS NULL",
                (self.clock().isoformat(), message_id),
            )
        return cur.rowcount > 0
