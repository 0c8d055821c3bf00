"""Class sessions at which attendance is taken."""

import dataclasses
import datetime
import enum
import re
import uuid
from typing import Any, ClassVar, Optional, TYPE_CHECKING

from bridgeattend import errors

if TYPE_CHECKING:
    from bridgeattend.model import database


EVENT_ID_PATTERN = re.compile(r"^[0-9A-F]{8}$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def generate_event_id() -> str:
    """Generate an 8-character uppercase hex event ID."""
    return uuid.uuid4().hex[:8].upper()


def is_valid_event_id(event_id: str) -> bool:
    """True if the ID is exactly 8 uppercase hexadecimal characters."""
    return bool(EVENT_ID_PATTERN.match(event_id))


def parse_event_date(value: datetime.date | str) -> datetime.date:
    """Convert a YYYY-MM-DD string to a date, or raise InvalidInput."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise errors.InvalidInput("date must be YYYY-MM-DD format")
    try:
        return datetime.date.fromisoformat(value)
    except ValueError as err:
        raise errors.InvalidInput(f"Invalid date {value}: {err}")


class EventType(enum.StrEnum):
    """Whether the class met in person or online."""

    IN_PERSON = "in_person"
    REMOTE = "remote"


@dataclasses.dataclass
class Event:
    """One occurrence of a class."""

    event_id: str
    """8-character uppercase hex ID. Printed on the sign-in sheet."""
    name: str
    """Class name. Occurrences of the same class share a name."""
    event_date: datetime.date
    teacher: str
    location: str = ""
    event_type: EventType = EventType.IN_PERSON
    created_at: Optional[datetime.datetime] = None

    table_def: ClassVar[str] = """
        CREATE TABLE IF NOT EXISTS events (
               event_id TEXT PRIMARY KEY,
                   name TEXT NOT NULL,
             event_date DATE NOT NULL,
                teacher TEXT NOT NULL,
               location TEXT NOT NULL DEFAULT '',
             event_type TEXT NOT NULL DEFAULT 'in_person'
                        CHECK (event_type IN ('in_person', 'remote')),
             created_at DATETIME NOT NULL
        );
    """

    def __init__(
        self,
        event_id: str,
        name: str,
        event_date: datetime.date | str,
        teacher: str,
        location: Optional[str] = "",
        event_type: EventType | str = EventType.IN_PERSON,
        created_at: Optional[datetime.datetime] = None,
    ) -> None:
        """Convert fields from Sqlite to Python datatypes as needed."""
        self.event_id = event_id
        self.name = name
        self.event_date = parse_event_date(event_date)
        self.teacher = teacher
        self.location = location or ""
        self.event_type = EventType(event_type)
        self.created_at = created_at

    @property
    def iso_date(self) -> str:
        return self.event_date.isoformat()

    def to_dict(self) -> dict[str, Any]:
        """Convert event to a dictionary."""
        return dataclasses.asdict(self)

    @classmethod
    def create(
        cls,
        dbase: "database.DBase",
        name: str,
        event_date: datetime.date | str,
        teacher: Optional[str] = None,
        location: str = "",
        event_type: EventType | str = EventType.IN_PERSON,
        event_id: Optional[str] = None,
        default_teacher: str = "Rick",
    ) -> "Event":
        """Validate event fields and add the event to the database.

        Raises:
            InvalidInput: Missing name, bad date, bad ID or bad event type.
            Conflict: An event with the ID already exists.
        """
        if not name or not name.strip():
            raise errors.InvalidInput("name is required")
        if not event_date:
            raise errors.InvalidInput("date is required")
        event_id = generate_event_id() if event_id is None else event_id
        if not is_valid_event_id(event_id):
            raise errors.InvalidInput("id must be 8 uppercase hex characters")
        try:
            event_type = EventType(event_type)
        except ValueError:
            raise errors.InvalidInput(
                f"type must be one of {', '.join(t.value for t in EventType)}"
            )
        event = cls(
            event_id=event_id,
            name=name.strip(),
            event_date=parse_event_date(event_date),
            teacher=teacher or default_teacher,
            location=location,
            event_type=event_type,
        )
        if cls.select(dbase, event_id) is not None:
            raise errors.Conflict(f"Event with ID {event_id} already exists")
        if not event.add(dbase):
            raise errors.Conflict(f"Event with ID {event_id} already exists")
        return event

    def add(self, dbase: "database.DBase") -> bool:
        """Add the event to the database.

        Returns False if an event with the same ID already exists.
        """
        from bridgeattend.model import database

        if self.created_at is None:
            self.created_at = database.utc_now()
        query = """
                INSERT INTO events
                            (event_id, name, event_date, teacher, location,
                            event_type, created_at)
                     VALUES (:event_id, :name, :event_date, :teacher, :location,
                            :event_type, :created_at)
                ON CONFLICT (event_id) DO NOTHING;
        """
        with dbase.get_db_connection() as conn:
            cursor = conn.execute(
                query, {**self.to_dict(), "event_type": self.event_type.value}
            )
        rowcount = cursor.rowcount
        conn.close()
        return rowcount == 1

    def exists(self, dbase: "database.DBase") -> bool:
        """True if the event is in the database."""
        return self.select(dbase, self.event_id) is not None

    @staticmethod
    def select(dbase: "database.DBase", event_id: str) -> Optional["Event"]:
        """Get the event with the given ID, or None if it doesn't exist."""
        query = """
                SELECT event_id, name, event_date, teacher, location,
                       event_type, created_at
                  FROM events
                 WHERE event_id = :event_id;
        """
        conn = dbase.get_db_connection(as_dict=True)
        result = conn.execute(query, {"event_id": event_id}).fetchone()
        conn.close()
        if result:
            return Event(**result)
        return None

    @classmethod
    def require(cls, dbase: "database.DBase", event_id: str) -> "Event":
        """Get the event with the given ID or raise NotFound."""
        event = cls.select(dbase, event_id)
        if event is None:
            raise errors.NotFound.for_resource("Event", event_id)
        return event

    @staticmethod
    def get_all(dbase: "database.DBase") -> list["Event"]:
        """Get all events, newest first."""
        query = """
                SELECT event_id, name, event_date, teacher, location,
                       event_type, created_at
                  FROM events
              ORDER BY event_date DESC, created_at DESC;
        """
        conn = dbase.get_db_connection(as_dict=True)
        events = [Event(**row) for row in conn.execute(query)]
        conn.close()
        return events

    @staticmethod
    def get_page(
        dbase: "database.DBase", limit: int = 20, offset: int = 0
    ) -> tuple[list["Event"], int]:
        """Get one page of events, newest first, and the total event count."""
        query = """
                SELECT event_id, name, event_date, teacher, location,
                       event_type, created_at
                  FROM events
              ORDER BY event_date DESC, created_at DESC
                 LIMIT :limit OFFSET :offset;
        """
        conn = dbase.get_db_connection(as_dict=True)
        total = conn.execute("SELECT COUNT(*) AS total FROM events;").fetchone()
        events = [
            Event(**row)
            for row in conn.execute(query, {"limit": min(limit, 100), "offset": offset})
        ]
        conn.close()
        return events, total["total"]

    @staticmethod
    def summary(dbase: "database.DBase") -> dict[str, Any]:
        """Number of events and the dates of the first and last events."""
        query = """
                SELECT COUNT(*) AS total,
                       MIN(event_date) AS earliest,
                       MAX(event_date) AS latest
                  FROM events;
        """
        conn = dbase.get_db_connection(as_dict=True)
        result = conn.execute(query).fetchone()
        conn.close()
        return result
