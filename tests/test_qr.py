"""Test reading QR payloads from sheet photos."""

import json

import pytest

import rich  # noqa: F401

from bridgeattend.extraction import qr


def test_payload_from_text() -> None:
    """Parse a payload printed by the sheet generator."""
    # Arrange
    text = json.dumps(
        {
            "app": "bridge-attendance",
            "event_id": "AAAA0001",
            "name": "Intro to Bridge",
            "date": "2025-01-07",
            "teacher": "Rick",
        }
    )
    # Act
    payload = qr.QrPayload.from_text(text)
    # Assert
    assert payload is not None
    assert payload.event_id == "AAAA0001"
    assert payload.to_dict()["teacher"] == "Rick"


@pytest.mark.parametrize(
    "text",
    [
        "https://example.com",
        "[]",
        '{"app": "other-app", "event_id": "AAAA0001"}',
        '{"app": "bridge-attendance", "event_id": "AAAA0001"}',
        (
            '{"app": "bridge-attendance", "event_id": 7, "name": "x",'
            ' "date": "2025-01-07", "teacher": "Rick"}'
        ),
    ],
)
def test_payload_from_other_text(text: str) -> None:
    """QR codes that aren't our payloads are ignored."""
    assert qr.QrPayload.from_text(text) is None


def test_read_undecodable_image() -> None:
    """Bytes that aren't an image have no QR code."""
    assert qr.read_qr_text(b"not an image") is None
    assert qr.read_payload(b"not an image") is None
