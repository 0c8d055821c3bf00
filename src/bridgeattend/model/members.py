"""Canonical mailing list roster, imported in bulk from the list service.

Members and students are separate name spaces. Nothing links a member to a
student except a case-insensitive match on name.
"""

import dataclasses
import datetime
import uuid
from typing import Any, ClassVar, Optional, TYPE_CHECKING

from bridgeattend import errors

if TYPE_CHECKING:
    from bridgeattend.model import database


@dataclasses.dataclass
class Member:
    """A subscriber on the canonical mailing list."""

    member_id: str
    name: str
    email: str
    """Lower-cased. Unique across all members."""
    joined_date: Optional[datetime.date] = None
    declined: bool = False
    """Person has asked not to be invited to join the mailing list."""
    created_at: Optional[datetime.datetime] = None

    table_def: ClassVar[str] = """
        CREATE TABLE IF NOT EXISTS members (
              member_id TEXT PRIMARY KEY,
                   name TEXT NOT NULL,
                  email TEXT NOT NULL UNIQUE,
            joined_date DATE,
               declined BOOL NOT NULL DEFAULT 0,
             created_at DATETIME NOT NULL
        );
    """
    name_index_def: ClassVar[str] = """
        CREATE INDEX IF NOT EXISTS idx_members_name ON members (name);
    """

    def to_dict(self) -> dict[str, Any]:
        """Convert member to a dictionary."""
        return dataclasses.asdict(self)

    @classmethod
    def add(
        cls,
        dbase: "database.DBase",
        name: str,
        email: str,
        joined_date: Optional[datetime.date] = None,
        declined: bool = False,
    ) -> tuple["Member", bool]:
        """Add a member unless one with the same email exists.

        Returns:
            The new or existing member, and True if the member was created.
        """
        from bridgeattend.model import database

        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name:
            raise errors.InvalidInput("name is required")
        if not email:
            raise errors.InvalidInput("email is required")
        member = cls(
            member_id=str(uuid.uuid4()),
            name=name,
            email=email,
            joined_date=joined_date,
            declined=declined,
            created_at=database.utc_now(),
        )
        query = """
                INSERT INTO members
                            (member_id, name, email, joined_date, declined,
                            created_at)
                     VALUES (:member_id, :name, :email, :joined_date, :declined,
                            :created_at)
                ON CONFLICT (email) DO NOTHING;
        """
        with dbase.get_db_connection() as conn:
            cursor = conn.execute(query, member.to_dict())
        rowcount = cursor.rowcount
        conn.close()
        if rowcount == 1:
            return member, True
        existing = cls.get_by_email(dbase, email)
        if existing is None:
            # The conflicting row was deleted between the two queries.
            raise errors.Conflict(f"member {email} changed during insert")
        return existing, False

    @classmethod
    def import_batch(
        cls, dbase: "database.DBase", entries: list[dict[str, Any]]
    ) -> dict[str, int]:
        """Add many members. Entries missing a name or email are ignored."""
        created = 0
        skipped = 0
        for entry in entries:
            name = (entry.get("name") or "").strip()
            email = (entry.get("email") or "").strip()
            if not name or not email:
                continue
            _, was_created = cls.add(
                dbase,
                name,
                email,
                joined_date=entry.get("joined_date"),
                declined=bool(entry.get("declined", False)),
            )
            if was_created:
                created += 1
            else:
                skipped += 1
        return {"created": created, "skipped": skipped, "total": created + skipped}

    @staticmethod
    def get_by_email(dbase: "database.DBase", email: str) -> Optional["Member"]:
        query = """
                SELECT member_id, name, email, joined_date, declined, created_at
                  FROM members
                 WHERE email = :email;
        """
        conn = dbase.get_db_connection(as_dict=True)
        result = conn.execute(query, {"email": email.strip().lower()}).fetchone()
        conn.close()
        if result:
            return Member(**result)
        return None

    @staticmethod
    def get_by_id(dbase: "database.DBase", member_id: str) -> Optional["Member"]:
        query = """
                SELECT member_id, name, email, joined_date, declined, created_at
                  FROM members
                 WHERE member_id = :member_id;
        """
        conn = dbase.get_db_connection(as_dict=True)
        result = conn.execute(query, {"member_id": member_id}).fetchone()
        conn.close()
        if result:
            return Member(**result)
        return None

    @staticmethod
    def get_all(
        dbase: "database.DBase",
        search: Optional[str] = None,
        limit: int = -1,
        offset: int = 0,
    ) -> list["Member"]:
        """Get members ordered by name, optionally filtered by name or email."""
        query = """
                SELECT member_id, name, email, joined_date, declined, created_at
                  FROM members
                 WHERE :search IS NULL
                       OR name LIKE '%' || :search || '%'
                       OR email LIKE '%' || :search || '%'
              ORDER BY name
                 LIMIT :limit OFFSET :offset;
        """
        conn = dbase.get_db_connection(as_dict=True)
        members = [
            Member(**row)
            for row in conn.execute(
                query, {"search": search, "limit": limit, "offset": offset}
            )
        ]
        conn.close()
        return members

    def set_declined(self, dbase: "database.DBase", declined: bool) -> bool:
        """Mark whether the member declined mailing list invitations."""
        query = """
                UPDATE members
                   SET declined = :declined
                 WHERE member_id = :member_id;
        """
        with dbase.get_db_connection() as conn:
            cursor = conn.execute(
                query, {"declined": declined, "member_id": self.member_id}
            )
        rowcount = cursor.rowcount
        conn.close()
        if rowcount == 1:
            self.declined = declined
        return rowcount == 1

    @staticmethod
    def delete(dbase: "database.DBase", member_id: str) -> bool:
        query = """
                DELETE FROM members
                      WHERE member_id = :member_id;
        """
        with dbase.get_db_connection() as conn:
            cursor = conn.execute(query, {"member_id": member_id})
        rowcount = cursor.rowcount
        conn.close()
        return rowcount == 1

    @staticmethod
    def get_count(dbase: "database.DBase") -> int:
        conn = dbase.get_db_connection()
        result = conn.execute("SELECT COUNT(*) FROM members;").fetchone()
        conn.close()
        return result[0]
