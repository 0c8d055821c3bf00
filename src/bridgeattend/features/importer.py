"""Bulk imports: the mailing list roster and previously transcribed classes."""

import csv
import datetime
import json
import logging
import pathlib
from typing import Any, Optional

import dateutil.parser

from bridgeattend import errors, model
from bridgeattend.features import confirm


logger = logging.getLogger(__name__)


def parse_joined_date(value: str) -> Optional[datetime.date]:
    """Convert a roster export date such as 03/14/2023 to a date."""
    value = value.strip()
    if not value:
        return None
    try:
        return dateutil.parser.parse(value, dayfirst=False).date()
    except (dateutil.parser.ParserError, OverflowError):
        logger.warning("Ignoring unreadable joined date %r", value)
        return None


def read_members_csv(path: pathlib.Path) -> list[dict[str, Any]]:
    """Read member rows from a mailing list service CSV export.

    Uses the Email, Display Name and Joined columns. Rows without an email
    or name are dropped.
    """
    members = []
    with open(path, newline="", encoding="utf-8-sig") as cfile:
        for row in csv.DictReader(cfile):
            email = (row.get("Email") or "").strip()
            name = (row.get("Display Name") or "").strip()
            if not email or not name:
                continue
            members.append(
                {
                    "name": name,
                    "email": email.lower(),
                    "joined_date": parse_joined_date(row.get("Joined") or ""),
                }
            )
    return members


def import_members_csv(dbase: model.DBase, path: pathlib.Path) -> dict[str, int]:
    """Add members from a CSV export. Existing emails are skipped."""
    members = read_members_csv(path)
    counts = model.Member.import_batch(dbase, members)
    logger.info(
        "Imported %s: %d created, %d skipped",
        path.name,
        counts["created"],
        counts["skipped"],
    )
    return counts


_SEAT_WORDS = {"North": "N", "South": "S", "East": "E", "West": "W"}


def _class_confirm_request(cls_data: dict[str, Any]) -> confirm.ConfirmRequest:
    attendance = []
    for entry in cls_data.get("attendance", []):
        if not entry.get("name"):
            continue
        seat = entry.get("seat")
        attendance.append(
            {
                # A name matched to a roster member beats the name as read.
                "student_name": entry.get("matched_member") or entry["name"],
                "table_number": entry.get("table"),
                "seat": _SEAT_WORDS.get(seat, seat),
            }
        )
    mailing_list = [
        {"name": entry["name"], "email": entry["email"]}
        for entry in cls_data.get("mailing_list", [])
        if entry.get("name") and entry.get("email")
    ]
    return confirm.ConfirmRequest.from_dict(
        {"attendance": attendance, "mailing_list": mailing_list}
    )


def import_classes_json(
    dbase: model.DBase, path: pathlib.Path, default_teacher: str = "Rick"
) -> dict[str, confirm.ConfirmReport]:
    """Create events and confirm attendance from a transcribed classes file.

    The file holds {"classes": [{"event": {...}, "attendance": [...],
    "mailing_list": [...]}]}. Events that already exist are reused, and
    confirming is repeatable, so a file can be imported more than once.

    Returns:
        Confirm report for each event ID.
    """
    with open(path, "rt") as jfile:
        data = json.load(jfile)
    if not isinstance(data, dict) or not isinstance(data.get("classes"), list):
        raise errors.InvalidInput(f"{path.name} has no classes array")
    reports = {}
    for cls_data in data["classes"]:
        event_data = cls_data.get("event") or {}
        event_id = event_data.get("id")
        if event_id is None or model.Event.select(dbase, event_id) is None:
            event = model.Event.create(
                dbase,
                name=event_data.get("class_name", ""),
                event_date=event_data.get("date", ""),
                teacher=event_data.get("instructor"),
                location=event_data.get("location", ""),
                event_id=event_id,
                default_teacher=default_teacher,
            )
            event_id = event.event_id
            logger.info("Created event %s (%s)", event.name, event_id)
        reports[event_id] = confirm.confirm(
            dbase, event_id, _class_confirm_request(cls_data)
        )
    return reports
