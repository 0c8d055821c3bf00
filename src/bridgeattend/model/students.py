"""People who have attended at least one class."""

import dataclasses
import datetime
import logging
import uuid
from typing import Any, ClassVar, Optional, TYPE_CHECKING

from bridgeattend import errors

if TYPE_CHECKING:
    from bridgeattend.model import database


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Student:
    """A person identified by the name written on a sign-in sheet."""

    student_id: str
    name: str
    """Free text, exactly as reviewed. Lookups are case-sensitive."""
    email: Optional[str] = None
    first_event_id: Optional[str] = None
    """Event at which the student was first recorded."""
    created_at: Optional[datetime.datetime] = None

    table_def: ClassVar[str] = """
        CREATE TABLE IF NOT EXISTS students (
             student_id TEXT PRIMARY KEY,
                   name TEXT NOT NULL,
                  email TEXT,
         first_event_id TEXT,
             created_at DATETIME NOT NULL,
            FOREIGN KEY (first_event_id) REFERENCES events (event_id)
                        ON DELETE SET NULL
        );
    """
    name_index_def: ClassVar[str] = """
        CREATE INDEX IF NOT EXISTS idx_students_name ON students (name);
    """

    def to_dict(self) -> dict[str, Any]:
        """Convert student to a dictionary."""
        return dataclasses.asdict(self)

    @classmethod
    def create(
        cls,
        dbase: "database.DBase",
        name: str,
        email: Optional[str] = None,
        first_event_id: Optional[str] = None,
    ) -> "Student":
        """Add a new student to the database."""
        from bridgeattend.model import database

        if not name or not name.strip():
            raise errors.InvalidInput("name is required")
        student = cls(
            student_id=str(uuid.uuid4()),
            name=name,
            email=email,
            first_event_id=first_event_id,
            created_at=database.utc_now(),
        )
        query = """
                INSERT INTO students
                            (student_id, name, email, first_event_id, created_at)
                     VALUES (:student_id, :name, :email, :first_event_id,
                            :created_at);
        """
        with dbase.get_db_connection() as conn:
            conn.execute(query, student.to_dict())
        conn.close()
        return student

    @classmethod
    def resolve_or_create(
        cls, dbase: "database.DBase", name: str, originating_event_id: str
    ) -> "Student":
        """Get the student with exactly this name, creating one if needed.

        The match is exact and case-sensitive, so callers should trim names
        first. A miss creates a permanent record whose first_event_id is the
        originating event.
        """
        student = cls.get_by_name(dbase, name)
        if student is not None:
            return student
        student = cls.create(dbase, name, first_event_id=originating_event_id)
        logger.info(
            "Created student %s (%s) at event %s",
            name,
            student.student_id,
            originating_event_id,
        )
        return student

    @staticmethod
    def get_by_name(dbase: "database.DBase", name: str) -> Optional["Student"]:
        """Get the earliest-created student with this exact name."""
        query = """
                SELECT student_id, name, email, first_event_id, created_at
                  FROM students
                 WHERE name = :name
              ORDER BY created_at, rowid
                 LIMIT 1;
        """
        conn = dbase.get_db_connection(as_dict=True)
        result = conn.execute(query, {"name": name}).fetchone()
        conn.close()
        if result:
            return Student(**result)
        return None

    @staticmethod
    def get_by_id(dbase: "database.DBase", student_id: str) -> Optional["Student"]:
        """Get a student by ID, or None if there is no such student."""
        query = """
                SELECT student_id, name, email, first_event_id, created_at
                  FROM students
                 WHERE student_id = :student_id;
        """
        conn = dbase.get_db_connection(as_dict=True)
        result = conn.execute(query, {"student_id": student_id}).fetchone()
        conn.close()
        if result:
            return Student(**result)
        return None

    @staticmethod
    def get_all(
        dbase: "database.DBase", search: Optional[str] = None
    ) -> list["Student"]:
        """Get all students ordered by name, optionally filtered by name."""
        query = """
                SELECT student_id, name, email, first_event_id, created_at
                  FROM students
                 WHERE :search IS NULL OR name LIKE '%' || :search || '%'
              ORDER BY name;
        """
        conn = dbase.get_db_connection(as_dict=True)
        students = [Student(**row) for row in conn.execute(query, {"search": search})]
        conn.close()
        return students

    @staticmethod
    def get_event_counts(
        dbase: "database.DBase", search: Optional[str] = None
    ) -> list[dict[str, Any]]:
        """Students with the number of events each has attended."""
        query = """
                SELECT s.student_id, s.name, s.email, s.first_event_id,
                       COUNT(a.attendance_id) AS event_count
                  FROM students AS s
             LEFT JOIN attendance AS a
                    ON a.student_id = s.student_id
                 WHERE :search IS NULL OR s.name LIKE '%' || :search || '%'
              GROUP BY s.student_id
              ORDER BY s.name;
        """
        conn = dbase.get_db_connection(as_dict=True)
        rows = conn.execute(query, {"search": search}).fetchall()
        conn.close()
        return rows

    def get_history(self, dbase: "database.DBase") -> list[dict[str, Any]]:
        """Events the student attended, newest first."""
        query = """
                SELECT a.event_id, e.name AS event_name,
                       e.event_date AS event_date,
                       a.table_number, a.seat
                  FROM attendance AS a
                  JOIN events AS e
                    ON e.event_id = a.event_id
                 WHERE a.student_id = :student_id
              ORDER BY e.event_date DESC;
        """
        conn = dbase.get_db_connection(as_dict=True)
        rows = conn.execute(query, {"student_id": self.student_id}).fetchall()
        conn.close()
        return rows

    @staticmethod
    def summary(dbase: "database.DBase") -> dict[str, int]:
        """Number of students, and how many have never attended."""
        query = """
                SELECT COUNT(*) AS total,
                       SUM(CASE WHEN NOT EXISTS (
                               SELECT 1 FROM attendance AS a
                                WHERE a.student_id = s.student_id)
                           THEN 1 ELSE 0 END) AS no_attendance
                  FROM students AS s;
        """
        conn = dbase.get_db_connection(as_dict=True)
        result = conn.execute(query).fetchone()
        conn.close()
        return {
            "total": result["total"],
            "no_attendance": result["no_attendance"] or 0,
        }
