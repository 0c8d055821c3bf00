"""Mailing list signups written on sign-in sheets."""

import csv
import dataclasses
import datetime
import io
import sqlite3
import uuid
from typing import Any, ClassVar, Optional, TYPE_CHECKING

from bridgeattend import errors

if TYPE_CHECKING:
    from bridgeattend.model import database


@dataclasses.dataclass
class MailingListEntry:
    """A request to join the mailing list.

    Signups are not members. They are what people wrote on a sheet, kept
    until someone adds them to the real list.
    """

    entry_id: str
    name: str
    email: str
    """Trimmed and lower-cased. Unique across all signups."""
    event_id: Optional[str] = None
    """Event where the signup was captured."""
    created_at: Optional[datetime.datetime] = None

    table_def: ClassVar[str] = """
        CREATE TABLE IF NOT EXISTS mailing_list (
               entry_id TEXT PRIMARY KEY,
                   name TEXT NOT NULL,
                  email TEXT NOT NULL UNIQUE,
               event_id TEXT,
             created_at DATETIME NOT NULL,
            FOREIGN KEY (event_id) REFERENCES events (event_id) ON DELETE SET NULL
        );
    """

    def to_dict(self) -> dict[str, Any]:
        """Convert signup to a dictionary."""
        return dataclasses.asdict(self)

    @classmethod
    def insert(
        cls,
        dbase: "database.DBase",
        name: str,
        email: str,
        event_id: Optional[str] = None,
    ) -> "MailingListEntry":
        """Insert a signup.

        Raises:
            sqlite3.IntegrityError: The email is already on the list.
        """
        from bridgeattend.model import database

        entry = cls(
            entry_id=str(uuid.uuid4()),
            name=name.strip(),
            email=normalize_email(email),
            event_id=event_id,
            created_at=database.utc_now(),
        )
        query = """
                INSERT INTO mailing_list
                            (entry_id, name, email, event_id, created_at)
                     VALUES (:entry_id, :name, :email, :event_id, :created_at);
        """
        with dbase.get_db_connection() as conn:
            conn.execute(query, entry.to_dict())
        conn.close()
        return entry

    @classmethod
    def add(
        cls,
        dbase: "database.DBase",
        name: str,
        email: str,
        event_id: Optional[str] = None,
    ) -> "MailingListEntry":
        """Add one signup. A duplicate email is a Conflict."""
        from bridgeattend.model import database

        if not name or not name.strip():
            raise errors.InvalidInput("name is required")
        if not email or not email.strip():
            raise errors.InvalidInput("email is required")
        try:
            return cls.insert(dbase, name, email, event_id)
        except sqlite3.IntegrityError as err:
            if database.is_unique_violation(err):
                raise errors.Conflict(
                    f"Email {normalize_email(email)} is already on the mailing list"
                )
            raise

    @staticmethod
    def get_by_email(
        dbase: "database.DBase", email: str
    ) -> Optional["MailingListEntry"]:
        query = """
                SELECT entry_id, name, email, event_id, created_at
                  FROM mailing_list
                 WHERE email = :email;
        """
        conn = dbase.get_db_connection(as_dict=True)
        result = conn.execute(query, {"email": normalize_email(email)}).fetchone()
        conn.close()
        if result:
            return MailingListEntry(**result)
        return None

    @staticmethod
    def get_all(dbase: "database.DBase") -> list["MailingListEntry"]:
        query = """
                SELECT entry_id, name, email, event_id, created_at
                  FROM mailing_list
              ORDER BY name;
        """
        conn = dbase.get_db_connection(as_dict=True)
        entries = [MailingListEntry(**row) for row in conn.execute(query)]
        conn.close()
        return entries

    @staticmethod
    def delete(dbase: "database.DBase", entry_id: str) -> bool:
        query = """
                DELETE FROM mailing_list
                      WHERE entry_id = :entry_id;
        """
        with dbase.get_db_connection() as conn:
            cursor = conn.execute(query, {"entry_id": entry_id})
        rowcount = cursor.rowcount
        conn.close()
        return rowcount == 1

    @classmethod
    def to_csv(cls, dbase: "database.DBase") -> str:
        """Export all signups as CSV text."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(["name", "email", "event_id", "created_at"])
        for entry in cls.get_all(dbase):
            writer.writerow(
                [
                    entry.name,
                    entry.email,
                    entry.event_id or "",
                    entry.created_at.isoformat() if entry.created_at else "",
                ]
            )
        return buffer.getvalue()


def normalize_email(email: str) -> str:
    """Dedup key for signups: trimmed and lower-cased."""
    return email.strip().lower()
