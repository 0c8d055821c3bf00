"""Find class attendees who aren't on the mailing list roster.

Students come from sign-in sheets. Members come from a bulk export of the
mailing list. The two are matched only by name, ignoring case, so a name
spelled differently in the two places looks like two different people.
"""

import dataclasses
from typing import Any

from bridgeattend import model


@dataclasses.dataclass
class RosterEntry:
    """A student who has attended the class, and their mailing list status."""

    student: model.Student
    is_member: bool
    """A member has the same name, ignoring case."""
    declined: bool
    """A matching member asked not to be invited."""

    @property
    def needs_signup(self) -> bool:
        """The student should be invited to join the mailing list."""
        return not self.is_member and not self.declined

    def to_dict(self) -> dict[str, Any]:
        return {
            "student": self.student.to_dict(),
            "is_member": self.is_member,
            "declined": self.declined,
            "needs_signup": self.needs_signup,
        }


def roster_for(dbase: model.DBase, event_id: str) -> list[RosterEntry]:
    """Everyone who has attended any occurrence of the event's class.

    Occurrences of a class are the events with the same name.

    Raises:
        NotFound: The event doesn't exist.
    """
    event = model.Event.require(dbase, event_id)
    query = """
            WITH class_students AS (
                SELECT DISTINCT a.student_id
                  FROM attendance AS a
                  JOIN events AS e
                    ON e.event_id = a.event_id
                 WHERE e.name = :class_name
            )
            SELECT s.student_id, s.name, s.email, s.first_event_id,
                   s.created_at,
                   COUNT(m.member_id) AS member_count,
                   COALESCE(MAX(m.declined), 0) AS any_declined
              FROM class_students AS c
              JOIN students AS s
                ON s.student_id = c.student_id
         LEFT JOIN members AS m
                ON CASEFOLD(m.name) = CASEFOLD(s.name)
          GROUP BY s.student_id
          ORDER BY s.name, s.student_id;
    """
    conn = dbase.get_db_connection(as_dict=True)
    rows = conn.execute(query, {"class_name": event.name}).fetchall()
    conn.close()
    roster = []
    for row in rows:
        is_member = row.pop("member_count") > 0
        declined = bool(row.pop("any_declined"))
        roster.append(
            RosterEntry(
                student=model.Student(**row),
                is_member=is_member,
                declined=declined,
            )
        )
    return roster


def needs_signup(dbase: model.DBase, event_id: str) -> list[model.Student]:
    """Students of the event's class who should be invited to the list."""
    return [
        entry.student
        for entry in roster_for(dbase, event_id)
        if entry.needs_signup
    ]


def non_members(dbase: model.DBase, event_id: str) -> list[model.Student]:
    """Attendees of this one event with no member of the same name."""
    model.Event.require(dbase, event_id)
    query = """
            SELECT s.student_id, s.name, s.email, s.first_event_id,
                   s.created_at
              FROM attendance AS a
              JOIN students AS s
                ON s.student_id = a.student_id
             WHERE a.event_id = :event_id
               AND NOT EXISTS (
                   SELECT 1 FROM members AS m
                    WHERE CASEFOLD(m.name) = CASEFOLD(s.name))
          ORDER BY s.name;
    """
    conn = dbase.get_db_connection(as_dict=True)
    students = [
        model.Student(**row) for row in conn.execute(query, {"event_id": event_id})
    ]
    conn.close()
    return students
