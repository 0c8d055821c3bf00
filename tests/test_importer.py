"""Test bulk imports of the member roster and transcribed classes."""

import datetime
import json
import pathlib

import pytest

import rich  # noqa: F401

from bridgeattend import errors, model
from bridgeattend.features import importer


MEMBERS_CSV = """\
Email,Display Name,Joined,Nickname
ann@example.com,Ann Lee,03/14/2023,
BOB@example.com,Bob Smith,not a date,Bobby
,No Email,01/01/2024,
nameless@example.com,,01/01/2024,
ann@example.com,Ann Duplicate,,
"""


@pytest.fixture
def members_csv(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "members.csv"
    path.write_text(MEMBERS_CSV, encoding="utf-8-sig")
    return path


@pytest.fixture
def classes_json(tmp_path: pathlib.Path) -> pathlib.Path:
    data = {
        "classes": [
            {
                "event": {
                    "id": "AAAA0002",
                    "class_name": "Intro to Bridge",
                    "date": "2025-01-14",
                },
                "attendance": [
                    {"name": "Alise Jonson", "matched_member": "Alice Johnson",
                     "table": 1, "seat": "North"},
                    {"name": "Gus Gray", "table": 2, "seat": "W"},
                    {"name": "", "table": 3, "seat": "E"},
                ],
                "mailing_list": [
                    {"name": "Gus Gray", "email": "Gus@Example.com"},
                    {"name": "No Email"},
                ],
            },
            {
                "event": {
                    "id": "DDDD0001",
                    "class_name": "Slam Bidding",
                    "date": "2025-02-20",
                    "instructor": "Pat",
                    "location": "Library",
                },
                "attendance": [{"name": "Gus Gray", "table": 1, "seat": "South"}],
            },
        ]
    }
    path = tmp_path / "classes.json"
    path.write_text(json.dumps(data))
    return path


@pytest.mark.parametrize(
    "value, expected",
    [
        ("03/14/2023", datetime.date(2023, 3, 14)),
        ("2023-03-14", datetime.date(2023, 3, 14)),
        ("Mar 14, 2023", datetime.date(2023, 3, 14)),
        ("", None),
        ("not a date", None),
    ],
)
def test_parse_joined_date(value: str, expected) -> None:
    assert importer.parse_joined_date(value) == expected


def test_read_members_csv(members_csv: pathlib.Path) -> None:
    """Rows without a name or email are dropped. Emails are lower cased."""
    # Act
    members = importer.read_members_csv(members_csv)
    # Assert
    assert [mem["email"] for mem in members] == [
        "ann@example.com",
        "bob@example.com",
        "ann@example.com",
    ]
    assert members[0]["joined_date"] == datetime.date(2023, 3, 14)
    assert members[1]["joined_date"] is None


def test_import_members_csv(
    empty_dbase: model.DBase, members_csv: pathlib.Path
) -> None:
    """Importing twice adds nothing the second time."""
    # Act
    first = importer.import_members_csv(empty_dbase, members_csv)
    second = importer.import_members_csv(empty_dbase, members_csv)
    # Assert
    assert first == {"created": 2, "skipped": 1, "total": 3}
    assert second == {"created": 0, "skipped": 3, "total": 3}
    ann = model.Member.get_by_email(empty_dbase, "ann@example.com")
    assert ann is not None
    assert ann.name == "Ann Lee"


def test_import_classes_json(
    full_dbase: model.DBase, classes_json: pathlib.Path
) -> None:
    """Existing events are reused and missing events are created."""
    # Act
    reports = importer.import_classes_json(full_dbase, classes_json)
    # Assert
    assert list(reports) == ["AAAA0002", "DDDD0001"]
    intro = reports["AAAA0002"]
    assert (intro.attendance.created, intro.attendance.skipped) == (2, 0)
    assert (intro.mailing_list.created, intro.mailing_list.skipped) == (1, 0)
    rows = {
        row["student_name"]: row
        for row in model.Attendance.get_for_event(full_dbase, "AAAA0002")
    }
    assert rows["Alice Johnson"]["seat"] == "N"
    assert "Alise Jonson" not in rows
    slam = model.Event.require(full_dbase, "DDDD0001")
    assert slam.teacher == "Pat"
    assert slam.location == "Library"
    gus = model.Student.get_by_name(full_dbase, "Gus Gray")
    assert gus is not None
    assert gus.first_event_id == "AAAA0002"
    assert model.Attendance.exists(full_dbase, "DDDD0001", gus.student_id)
    signup = model.MailingListEntry.get_by_email(full_dbase, "gus@example.com")
    assert signup is not None


def test_import_classes_json_twice(
    full_dbase: model.DBase, classes_json: pathlib.Path
) -> None:
    """A second import skips everything."""
    # Arrange
    importer.import_classes_json(full_dbase, classes_json)
    # Act
    reports = importer.import_classes_json(full_dbase, classes_json)
    # Assert
    assert all(rep.attendance.created == 0 for rep in reports.values())
    assert all(rep.mailing_list.created == 0 for rep in reports.values())
    assert len(model.Event.get_all(full_dbase)) == 4


def test_import_classes_json_invalid(
    empty_dbase: model.DBase, tmp_path: pathlib.Path
) -> None:
    # Arrange
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"events": []}))
    # Act / Assert
    with pytest.raises(errors.InvalidInput):
        importer.import_classes_json(empty_dbase, path)
