"""Commit a reviewed extraction result to attendance and mailing list tables.

Confirming can be repeated. A student already recorded for the event, or an
email already on the mailing list, is reported as skipped rather than
treated as an error. The existence checks before each insert only save a
wasted insert. The UNIQUE constraints are what prevent duplicates when two
confirms for the same event run at once, and the loser of that race is also
reported as skipped.
"""

import dataclasses
import logging
import sqlite3
from typing import Any, Literal, Optional

from bridgeattend import errors, model
from bridgeattend.extraction import normalize
from bridgeattend.model import database
from bridgeattend.model.mailing_list import normalize_email


logger = logging.getLogger(__name__)

Status = Literal["created", "skipped"]


@dataclasses.dataclass
class ReviewedAttendance:
    """An attendance line after a person has checked and edited it."""

    student_name: str
    table_number: Optional[int] = None
    seat: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReviewedAttendance":
        name = data.get("student_name")
        table_number = data.get("table_number")
        return cls(
            student_name=name if isinstance(name, str) else "",
            table_number=(
                int(table_number) if normalize.is_number(table_number) else None
            ),
            seat=normalize.normalize_seat(data.get("seat")),
        )


@dataclasses.dataclass
class ReviewedSignup:
    """A mailing list line after review."""

    name: str
    email: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReviewedSignup":
        name = data.get("name")
        email = data.get("email")
        return cls(
            name=name if isinstance(name, str) else "",
            email=email if isinstance(email, str) else "",
        )


@dataclasses.dataclass
class ConfirmRequest:
    """Everything a reviewer wants committed for one event."""

    attendance: list[ReviewedAttendance] = dataclasses.field(default_factory=list)
    mailing_list: list[ReviewedSignup] = dataclasses.field(default_factory=list)
    ocr_job_id: Optional[str] = None
    """Job the reviewed data came from, if any. Informational only."""

    @classmethod
    def from_dict(cls, data: Any) -> "ConfirmRequest":
        """Build a request from JSON.

        Raises:
            InvalidInput: attendance or mailing_list is not a list.
        """
        if not isinstance(data, dict):
            raise errors.InvalidInput("confirm request must be a JSON object")
        if not isinstance(data.get("attendance"), list):
            raise errors.InvalidInput("attendance must be an array")
        if not isinstance(data.get("mailing_list"), list):
            raise errors.InvalidInput("mailing_list must be an array")
        return cls(
            attendance=[
                ReviewedAttendance.from_dict(entry)
                for entry in data["attendance"]
                if isinstance(entry, dict)
            ],
            mailing_list=[
                ReviewedSignup.from_dict(entry)
                for entry in data["mailing_list"]
                if isinstance(entry, dict)
            ],
            ocr_job_id=data.get("ocr_job_id"),
        )

    @classmethod
    def from_extraction(
        cls,
        result: normalize.ExtractionResult,
        ocr_job_id: Optional[str] = None,
    ) -> "ConfirmRequest":
        """Start a review from an extraction result, unchanged."""
        return cls(
            attendance=[
                ReviewedAttendance(
                    student_name=line.name,
                    table_number=(
                        int(line.table_number)
                        if line.table_number is not None
                        else None
                    ),
                    seat=line.seat,
                )
                for line in result.attendance
            ],
            mailing_list=[
                ReviewedSignup(name=line.name, email=line.email)
                for line in result.mailing_list
            ],
            ocr_job_id=ocr_job_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclasses.dataclass
class EntryResult:
    """Outcome for one confirmed line."""

    name: str
    status: Status
    student_id: Optional[str] = None
    email: Optional[str] = None


@dataclasses.dataclass
class ReconcileReport:
    """Outcomes for one list of confirmed lines, in input order."""

    results: list[EntryResult] = dataclasses.field(default_factory=list)

    @property
    def created(self) -> int:
        return sum(1 for res in self.results if res.status == "created")

    @property
    def skipped(self) -> int:
        return sum(1 for res in self.results if res.status == "skipped")

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "skipped": self.skipped,
            "results": [
                {
                    key: val
                    for key, val in dataclasses.asdict(res).items()
                    if val is not None
                }
                for res in self.results
            ],
        }


@dataclasses.dataclass
class ConfirmReport:
    attendance: ReconcileReport
    mailing_list: ReconcileReport

    def to_dict(self) -> dict[str, Any]:
        return {
            "attendance": self.attendance.to_dict(),
            "mailing_list": self.mailing_list.to_dict(),
        }


def confirm_attendance(
    dbase: model.DBase, event_id: str, entries: list[ReviewedAttendance]
) -> ReconcileReport:
    """Record attendance for each reviewed line not already recorded.

    Lines with a blank name are ignored. Students are matched by exact name
    and created when there is no match.
    """
    model.Event.require(dbase, event_id)
    report = ReconcileReport()
    for entry in entries:
        name = entry.student_name.strip()
        if not name:
            continue
        student = model.Student.resolve_or_create(dbase, name, event_id)
        status: Status = "skipped"
        if not model.Attendance.exists(dbase, event_id, student.student_id):
            try:
                model.Attendance.insert(
                    dbase,
                    event_id,
                    student.student_id,
                    entry.table_number,
                    normalize.normalize_seat(entry.seat),
                    model.AttendanceSource.EXTRACTED,
                )
                status = "created"
            except sqlite3.IntegrityError as err:
                if not database.is_unique_violation(err):
                    raise
                logger.debug("%s was recorded by a concurrent confirm", name)
        report.results.append(
            EntryResult(
                name=entry.student_name,
                status=status,
                student_id=student.student_id,
            )
        )
    logger.info(
        "Confirmed attendance for %s: %d created, %d skipped",
        event_id,
        report.created,
        report.skipped,
    )
    return report


def confirm_mailing_list(
    dbase: model.DBase, event_id: str, entries: list[ReviewedSignup]
) -> ReconcileReport:
    """Add each reviewed signup whose email isn't already on the list.

    The first signup for an email wins. Later ones never change its name.
    """
    model.Event.require(dbase, event_id)
    report = ReconcileReport()
    for entry in entries:
        if not entry.name.strip() or not entry.email.strip():
            continue
        email = normalize_email(entry.email)
        status: Status = "skipped"
        if model.MailingListEntry.get_by_email(dbase, email) is None:
            try:
                model.MailingListEntry.insert(dbase, entry.name, email, event_id)
                status = "created"
            except sqlite3.IntegrityError as err:
                if not database.is_unique_violation(err):
                    raise
        report.results.append(
            EntryResult(name=entry.name, status=status, email=email)
        )
    logger.info(
        "Confirmed mailing list for %s: %d created, %d skipped",
        event_id,
        report.created,
        report.skipped,
    )
    return report


def confirm(
    dbase: model.DBase, event_id: str, request: ConfirmRequest
) -> ConfirmReport:
    """Commit reviewed attendance and mailing list lines for an event."""
    model.Event.require(dbase, event_id)
    if request.ocr_job_id is not None:
        model.OcrJob.require(dbase, request.ocr_job_id, event_id)
    return ConfirmReport(
        attendance=confirm_attendance(dbase, event_id, request.attendance),
        mailing_list=confirm_mailing_list(dbase, event_id, request.mailing_list),
    )
