"""Records of which students attended which events."""

import dataclasses
import datetime
import enum
import logging
import sqlite3
import uuid
from typing import Any, ClassVar, Optional, TYPE_CHECKING

from bridgeattend import errors
from bridgeattend.model import events, students

if TYPE_CHECKING:
    from bridgeattend.model import database


logger = logging.getLogger(__name__)

SEATS = ("N", "S", "E", "W")
"""Bridge table compass positions."""


class AttendanceSource(enum.StrEnum):
    """How an attendance record was captured."""

    EXTRACTED = "extracted"
    MANUAL = "manual"
    REMOTE = "remote"


@dataclasses.dataclass
class Attendance:
    """One student present at one event."""

    attendance_id: str
    event_id: str
    student_id: str
    table_number: Optional[int] = None
    seat: Optional[str] = None
    source: AttendanceSource = AttendanceSource.MANUAL
    created_at: Optional[datetime.datetime] = None

    # One record per student per event. The UNIQUE constraint enforces it.
    table_def: ClassVar[str] = """
        CREATE TABLE IF NOT EXISTS attendance (
          attendance_id TEXT PRIMARY KEY,
               event_id TEXT NOT NULL,
             student_id TEXT NOT NULL,
           table_number INTEGER,
                   seat TEXT CHECK (seat IS NULL OR seat IN ('N', 'S', 'E', 'W')),
                 source TEXT NOT NULL DEFAULT 'manual'
                        CHECK (source IN ('extracted', 'manual', 'remote')),
             created_at DATETIME NOT NULL,
            UNIQUE (event_id, student_id),
            FOREIGN KEY (event_id) REFERENCES events (event_id) ON DELETE CASCADE,
            FOREIGN KEY (student_id) REFERENCES students (student_id)
                        ON DELETE CASCADE
        );
    """

    def __init__(
        self,
        attendance_id: str,
        event_id: str,
        student_id: str,
        table_number: Optional[int] = None,
        seat: Optional[str] = None,
        source: AttendanceSource | str = AttendanceSource.MANUAL,
        created_at: Optional[datetime.datetime] = None,
    ) -> None:
        """Convert fields from Sqlite to Python datatypes as needed."""
        self.attendance_id = attendance_id
        self.event_id = event_id
        self.student_id = student_id
        self.table_number = table_number
        self.seat = seat
        self.source = AttendanceSource(source)
        self.created_at = created_at

    def to_dict(self) -> dict[str, Any]:
        """Convert attendance record to a dictionary."""
        return {**dataclasses.asdict(self), "source": self.source.value}

    @classmethod
    def insert(
        cls,
        dbase: "database.DBase",
        event_id: str,
        student_id: str,
        table_number: Optional[int] = None,
        seat: Optional[str] = None,
        source: AttendanceSource = AttendanceSource.MANUAL,
    ) -> "Attendance":
        """Insert an attendance record.

        Raises:
            sqlite3.IntegrityError: The student is already recorded for the
                event. Callers decide whether that is an error.
        """
        from bridgeattend.model import database

        record = cls(
            attendance_id=str(uuid.uuid4()),
            event_id=event_id,
            student_id=student_id,
            table_number=table_number,
            seat=seat,
            source=source,
            created_at=database.utc_now(),
        )
        query = """
                INSERT INTO attendance
                            (attendance_id, event_id, student_id, table_number,
                            seat, source, created_at)
                     VALUES (:attendance_id, :event_id, :student_id, :table_number,
                            :seat, :source, :created_at);
        """
        with dbase.get_db_connection() as conn:
            conn.execute(query, record.to_dict())
        conn.close()
        return record

    @classmethod
    def record(
        cls,
        dbase: "database.DBase",
        event_id: str,
        student_name: str,
        table_number: Optional[int] = None,
        seat: Optional[str] = None,
        source: AttendanceSource | str = AttendanceSource.MANUAL,
    ) -> tuple["Attendance", students.Student]:
        """Record that a student attended an event.

        This is the single, deliberate write. Recording the same student
        twice for an event is a Conflict.
        """
        from bridgeattend.model import database

        if not student_name or not student_name.strip():
            raise errors.InvalidInput("student_name is required")
        if seat is not None and seat not in SEATS:
            raise errors.InvalidInput("seat must be N, S, E, or W")
        try:
            source = AttendanceSource(source)
        except ValueError:
            raise errors.InvalidInput(f"Invalid attendance source: {source}")
        events.Event.require(dbase, event_id)
        student = students.Student.resolve_or_create(dbase, student_name, event_id)
        try:
            record = cls.insert(
                dbase, event_id, student.student_id, table_number, seat, source
            )
        except sqlite3.IntegrityError as err:
            if database.is_unique_violation(err):
                raise errors.Conflict(
                    f"{student_name} is already recorded for this event"
                )
            raise
        return record, student

    @classmethod
    def record_batch(
        cls,
        dbase: "database.DBase",
        event_id: str,
        records: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """Record several manual attendance entries.

        Entries already recorded, or without a name, are reported as skipped.
        """
        from bridgeattend.model import database

        if not records:
            raise errors.InvalidInput("records array is required and must not be empty")
        events.Event.require(dbase, event_id)
        results = []
        for rec in records:
            name = (rec.get("student_name") or "").strip()
            if not name:
                results.append({"student_name": "(empty)", "status": "skipped"})
                continue
            student = students.Student.resolve_or_create(dbase, name, event_id)
            try:
                cls.insert(
                    dbase,
                    event_id,
                    student.student_id,
                    rec.get("table_number"),
                    rec.get("seat"),
                    AttendanceSource(rec.get("source") or AttendanceSource.MANUAL),
                )
                results.append({"student_name": name, "status": "created"})
            except sqlite3.IntegrityError as err:
                if not database.is_unique_violation(err):
                    raise
                results.append({"student_name": name, "status": "skipped"})
        created = sum(1 for res in results if res["status"] == "created")
        return {
            "created": created,
            "skipped": len(results) - created,
            "results": results,
        }

    @staticmethod
    def exists(dbase: "database.DBase", event_id: str, student_id: str) -> bool:
        """True if the student is already recorded for the event."""
        query = """
                SELECT 1
                  FROM attendance
                 WHERE event_id = :event_id AND student_id = :student_id;
        """
        conn = dbase.get_db_connection()
        result = conn.execute(
            query, {"event_id": event_id, "student_id": student_id}
        ).fetchone()
        conn.close()
        return result is not None

    @staticmethod
    def delete(dbase: "database.DBase", event_id: str, student_id: str) -> bool:
        """Remove a student's attendance record for an event."""
        query = """
                DELETE FROM attendance
                      WHERE event_id = :event_id AND student_id = :student_id;
        """
        with dbase.get_db_connection() as conn:
            cursor = conn.execute(
                query, {"event_id": event_id, "student_id": student_id}
            )
        rowcount = cursor.rowcount
        conn.close()
        return rowcount == 1

    @staticmethod
    def get_for_event(dbase: "database.DBase", event_id: str) -> list[dict[str, Any]]:
        """Attendance records for an event with student names.

        Ordered by table number and seat.
        """
        query = """
                SELECT a.attendance_id, a.event_id, a.student_id,
                       a.table_number, a.seat, a.source, a.created_at,
                       s.name AS student_name, s.email AS student_email
                  FROM attendance AS a
                  JOIN students AS s
                    ON s.student_id = a.student_id
                 WHERE a.event_id = :event_id
              ORDER BY a.table_number, a.seat;
        """
        conn = dbase.get_db_connection(as_dict=True)
        rows = conn.execute(query, {"event_id": event_id}).fetchall()
        conn.close()
        return rows

    @staticmethod
    def get_count(dbase: "database.DBase", event_id: Optional[str] = None) -> int:
        """Number of attendance records, for one event or overall."""
        query = """
                SELECT COUNT(*) AS total
                  FROM attendance
                 WHERE :event_id IS NULL OR event_id = :event_id;
        """
        conn = dbase.get_db_connection()
        result = conn.execute(query, {"event_id": event_id}).fetchone()
        conn.close()
        return result[0]
