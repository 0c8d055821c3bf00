"""The bridgeattend.model namespace."""

# ruff: noqa: F401
from bridgeattend.model.events import (
    Event,
    EventType,
    generate_event_id,
    is_valid_event_id,
)
from bridgeattend.model.students import Student
from bridgeattend.model.attendance import Attendance, AttendanceSource, SEATS
from bridgeattend.model.members import Member
from bridgeattend.model.mailing_list import MailingListEntry
from bridgeattend.model.ocr_jobs import JobStatus, OcrJob
from bridgeattend.model.database import DBase, DBaseError
