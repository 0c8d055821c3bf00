"""Markdown report of what the database holds."""

import datetime
from typing import Optional

from bridgeattend import model


def _table(heading: str, columns: list[str], values: list[object]) -> list[str]:
    """One markdown section holding a single-row table."""
    return [
        f"## {heading}",
        "| " + " | ".join(columns) + " |",
        "| " + " | ".join("-" * len(col) for col in columns) + " |",
        "| " + " | ".join("" if val is None else str(val) for val in values) + " |",
    ]


def _stamp(when: datetime.datetime) -> str:
    return when.replace(microsecond=0).isoformat()


def get_summary(dbase: Optional[model.DBase]) -> str:
    """Counts of events, students, signups and sheet scans."""
    if dbase is None:
        return ""
    file_info = dbase.get_database_file_info()
    event_stats = model.Event.summary(dbase)
    job_counts = model.OcrJob.status_counts(dbase)
    lines = _table(
        "File Info",
        ["File", "Last Accessed", "Last Modified", "Created On"],
        [
            dbase.db_path.name,
            _stamp(file_info.access_time),
            _stamp(file_info.modification_time),
            _stamp(file_info.creation_time),
        ],
    )
    lines += _table(
        "Events and Attendance",
        ["Events", "First Event", "Last Event", "Students", "Attendance Records"],
        [
            event_stats["total"],
            event_stats["earliest"],
            event_stats["latest"],
            model.Student.summary(dbase)["total"],
            model.Attendance.get_count(dbase),
        ],
    )
    lines += _table(
        "Mailing List",
        ["Roster Members", "Sheet Signups"],
        [
            model.Member.get_count(dbase),
            len(model.MailingListEntry.get_all(dbase)),
        ],
    )
    lines += _table(
        "Sheet Scans",
        ["Pending", "Processing", "Complete", "Failed"],
        [job_counts[status.value] for status in model.JobStatus],
    )
    return "\n".join(lines)
