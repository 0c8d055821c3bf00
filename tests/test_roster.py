"""Test matching class attendees against the mailing list roster."""

import pytest

import rich  # noqa: F401

from bridgeattend import errors, model
from bridgeattend.features import roster


def _entries(dbase: model.DBase, event_id: str) -> dict[str, roster.RosterEntry]:
    return {entry.student.name: entry for entry in roster.roster_for(dbase, event_id)}


def test_roster_covers_whole_class(full_dbase: model.DBase) -> None:
    """Everyone who attended any occurrence of the class is listed once."""
    # Arrange
    model.Attendance.record(full_dbase, "AAAA0002", "Alice Johnson")
    # Act
    entries = roster.roster_for(full_dbase, "AAAA0002")
    # Assert
    assert [entry.student.name for entry in entries] == [
        "Alice Johnson",
        "Bob Smith",
        "Carol White",
        "Dave Brown",
    ]


def test_roster_status(full_dbase: model.DBase) -> None:
    """Members match by name ignoring case. Declined members aren't invited."""
    # Act
    entries = _entries(full_dbase, "AAAA0001")
    # Assert
    assert not entries["Alice Johnson"].is_member
    assert entries["Alice Johnson"].needs_signup
    assert entries["Bob Smith"].is_member
    assert not entries["Bob Smith"].needs_signup
    assert entries["Carol White"].is_member
    assert entries["Carol White"].declined
    assert not entries["Carol White"].needs_signup
    assert [stu.name for stu in roster.needs_signup(full_dbase, "AAAA0001")] == [
        "Alice Johnson",
        "Dave Brown",
    ]


def test_removing_member_flips_needs_signup(full_dbase: model.DBase) -> None:
    """Needs signup follows the member roster."""
    # Arrange
    member, _ = model.Member.add(full_dbase, "alice johnson", "alice@example.com")
    assert not _entries(full_dbase, "AAAA0001")["Alice Johnson"].needs_signup
    # Act
    model.Member.delete(full_dbase, member.member_id)
    # Assert
    assert _entries(full_dbase, "AAAA0001")["Alice Johnson"].needs_signup


def test_declined_member_stays_off(full_dbase: model.DBase) -> None:
    """A member who declined is never reported as needing a signup."""
    # Arrange
    member, _ = model.Member.add(full_dbase, "Alice Johnson", "alice@example.com")
    # Act
    member.set_declined(full_dbase, True)
    # Assert
    entry = _entries(full_dbase, "AAAA0001")["Alice Johnson"]
    assert entry.declined
    assert not entry.needs_signup
    assert entry.to_dict()["needs_signup"] is False


def test_other_class_not_included(full_dbase: model.DBase) -> None:
    """Students of other classes are not on the roster."""
    # Act
    entries = _entries(full_dbase, "BBBB0001")
    # Assert
    assert list(entries) == ["Erin Green"]


def test_non_members(full_dbase: model.DBase) -> None:
    """Attendees of one event with no matching member."""
    # Act / Assert
    assert [stu.name for stu in roster.non_members(full_dbase, "AAAA0001")] == [
        "Alice Johnson"
    ]
    assert [stu.name for stu in roster.non_members(full_dbase, "AAAA0002")] == [
        "Dave Brown"
    ]


def test_roster_missing_event(full_dbase: model.DBase) -> None:
    with pytest.raises(errors.NotFound):
        roster.roster_for(full_dbase, "FFFFFFFF")
    with pytest.raises(errors.NotFound):
        roster.non_members(full_dbase, "FFFFFFFF")


def test_roster_matches_non_ascii_names(full_dbase: model.DBase) -> None:
    """Names with accented letters match regardless of case."""
    # Arrange
    model.Attendance.record(full_dbase, "AAAA0002", "José Núñez")
    model.Member.add(full_dbase, "JOSÉ NÚÑEZ", "jose@example.com")
    # Act
    entries = _entries(full_dbase, "AAAA0002")
    others = roster.non_members(full_dbase, "AAAA0002")
    # Assert
    assert entries["José Núñez"].is_member
    assert not entries["José Núñez"].needs_signup
    assert "José Núñez" not in [stu.name for stu in others]
