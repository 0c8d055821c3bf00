"""Fixtures shared by the test modules."""

import datetime
import json
import pathlib
from typing import Any

import pytest

from bridgeattend import config, errors, model


INTRO_CLASS = "Intro to Bridge"


class FakeVision:
    """Stands in for the vision model. Returns a canned reply or raises."""

    reply: Any
    calls: list[tuple[bytes, str]]

    def __init__(self, reply: Any) -> None:
        self.reply = reply
        self.calls = []

    def extract(self, image: bytes, media_type: str) -> str:
        self.calls.append((image, media_type))
        if isinstance(self.reply, Exception):
            raise self.reply
        if isinstance(self.reply, str):
            return self.reply
        return json.dumps(self.reply)


@pytest.fixture
def empty_dbase(tmp_path: pathlib.Path) -> model.DBase:
    """A new database with tables and no records."""
    return model.DBase(tmp_path / "empty.db", create_new=True)


@pytest.fixture
def full_dbase(tmp_path: pathlib.Path) -> model.DBase:
    """Two occurrences of the intro class, a second class, and a few members."""
    dbase = model.DBase(tmp_path / "full.db", create_new=True)
    model.Event.create(
        dbase, INTRO_CLASS, "2025-01-07", event_id="AAAA0001", location="Club"
    )
    model.Event.create(
        dbase, INTRO_CLASS, "2025-01-14", event_id="AAAA0002", location="Club"
    )
    model.Event.create(
        dbase,
        "Defensive Play",
        datetime.date(2025, 1, 9),
        teacher="Ann",
        event_type=model.EventType.REMOTE,
        event_id="BBBB0001",
    )
    for name, table, seat in [
        ("Alice Johnson", 1, "N"),
        ("Bob Smith", 1, "S"),
        ("Carol White", 2, "E"),
    ]:
        model.Attendance.record(dbase, "AAAA0001", name, table, seat)
    model.Attendance.record(dbase, "AAAA0002", "Dave Brown", 1, "W")
    model.Attendance.record(dbase, "BBBB0001", "Erin Green")
    model.Member.add(dbase, "bob smith", "Bob@Example.com")
    model.Member.add(dbase, "Carol White", "carol@example.com", declined=True)
    return dbase


@pytest.fixture
def scan_settings(tmp_path: pathlib.Path) -> config.Settings:
    """Settings that allow scanning without a real API key."""
    return config.Settings(
        db_path=tmp_path / "full.db",
        photo_folder=tmp_path / "photos",
        anthropic_api_key="test-key",
        max_photo_bytes=1024,
    )


@pytest.fixture
def sheet_reply() -> dict[str, Any]:
    """A typical vision model reply for a blank sign-in sheet."""
    return {
        "qr_data": {
            "app": "bridge-attendance",
            "event_id": "AAAA0002",
            "name": INTRO_CLASS,
            "date": "2025-01-14",
            "teacher": "Rick",
        },
        "form_type": "blank",
        "attendance": [
            {"name": "Alice Johnson", "table_number": 1, "seat": "north",
             "is_checked": None, "confidence": 0.9},
            {"name": "Frank Black", "table_number": 2, "seat": "S",
             "is_checked": None, "confidence": 0.4},
            {"name": "  ", "table_number": 3, "seat": "E"},
        ],
        "mailing_list": [
            {"name": "Frank Black", "email": "Frank@Example.com",
             "confidence": 0.8},
        ],
        "confidence": 0.85,
        "notes": "Row 3 is smudged",
    }


@pytest.fixture
def failing_vision() -> FakeVision:
    return FakeVision(errors.ExtractionFailure("Anthropic API error (529): busy"))


@pytest.fixture
def sheet_vision(sheet_reply: dict[str, Any]) -> FakeVision:
    return FakeVision(sheet_reply)


@pytest.fixture
def make_vision() -> type[FakeVision]:
    """Build a fake vision model with any reply."""
    return FakeVision
