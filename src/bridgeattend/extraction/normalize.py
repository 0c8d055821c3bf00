"""Coerce vision model output into a canonical extraction result.

The vision model returns JSON that usually, but not always, has the shape
we asked for. Everything it returns goes through `normalize`, which never
raises. Fields that are missing or have the wrong type get a default value
and entries that can't be used are dropped. Code downstream of this module
can rely on the types of `ExtractionResult` without checking them again.
"""

import dataclasses
import json
import math
import numbers
import re
from typing import Any, Literal, Optional

from bridgeattend import errors


DEFAULT_CONFIDENCE = 0.5

_SEAT_WORDS = {"NORTH": "N", "SOUTH": "S", "EAST": "E", "WEST": "W"}
_FENCE_START = re.compile(r"^```(?:json)?\s*\n?")
_FENCE_END = re.compile(r"\n?```\s*$")


@dataclasses.dataclass
class AttendanceLine:
    """A name read from the attendance part of a sheet."""

    name: str
    table_number: Optional[int | float] = None
    seat: Optional[str] = None
    """One of N, S, E, W, or None."""
    is_checked: Optional[bool] = None
    """Roster sheets only: whether the box next to the name was marked."""
    confidence: float = DEFAULT_CONFIDENCE


@dataclasses.dataclass
class SignupLine:
    """A name and email read from the mailing list part of a sheet."""

    name: str
    email: str
    confidence: float = DEFAULT_CONFIDENCE


@dataclasses.dataclass
class ExtractionResult:
    """Canonical data read from one sign-in sheet."""

    qr_data: Optional[Any] = None
    """Decoded QR payload, usually a dict with app, event_id, name, date and
    teacher keys. Passed through unchanged."""
    form_type: Literal["blank", "roster"] = "blank"
    attendance: list[AttendanceLine] = dataclasses.field(default_factory=list)
    mailing_list: list[SignupLine] = dataclasses.field(default_factory=list)
    confidence: float = DEFAULT_CONFIDENCE
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "ExtractionResult":
        """Rebuild a result from stored or edited JSON."""
        return normalize(data)

    @property
    def qr_event_id(self) -> Optional[str]:
        """Event ID from the QR payload, if there is one."""
        if isinstance(self.qr_data, dict):
            event_id = self.qr_data.get("event_id")
            if isinstance(event_id, str):
                return event_id
        return None


def is_number(value: Any) -> bool:
    """A finite int or float. NaN, Infinity and booleans don't count."""
    # bool is an int subclass, but True is not a table number.
    if not isinstance(value, numbers.Real) or isinstance(value, bool):
        return False
    return math.isfinite(value)


def _confidence(value: Any) -> float:
    return value if is_number(value) else DEFAULT_CONFIDENCE


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _items(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def normalize_seat(seat: Any) -> Optional[str]:
    """Convert a seat to N, S, E or W. Anything unrecognized becomes None.

    >>> normalize_seat("north"), normalize_seat(" w "), normalize_seat("up")
    ('N', 'W', None)
    """
    if not isinstance(seat, str):
        return None
    upper = seat.strip().upper()
    if upper in _SEAT_WORDS:
        return _SEAT_WORDS[upper]
    if upper in _SEAT_WORDS.values():
        return upper
    return None


def normalize(raw: Any) -> ExtractionResult:
    """Build an ExtractionResult from any parsed JSON value."""
    if not isinstance(raw, dict):
        raw = {}

    attendance = []
    for entry in _items(raw.get("attendance")):
        name = _text(entry.get("name"))
        if not name:
            continue
        table_number = entry.get("table_number")
        is_checked = entry.get("is_checked")
        attendance.append(
            AttendanceLine(
                name=name,
                table_number=table_number if is_number(table_number) else None,
                seat=normalize_seat(entry.get("seat")),
                is_checked=is_checked,
                confidence=_confidence(entry.get("confidence")),
            )
        )

    mailing_list = []
    for entry in _items(raw.get("mailing_list")):
        name = _text(entry.get("name"))
        email = _text(entry.get("email")).lower()
        if not name or not email:
            continue
        mailing_list.append(
            SignupLine(
                name=name,
                email=email,
                confidence=_confidence(entry.get("confidence")),
            )
        )

    notes = raw.get("notes")
    return ExtractionResult(
        qr_data=raw.get("qr_data"),
        form_type="roster" if raw.get("form_type") == "roster" else "blank",
        attendance=attendance,
        mailing_list=mailing_list,
        confidence=_confidence(raw.get("confidence")),
        notes=notes if notes is not None else "",
    )


def parse_model_output(text: str) -> Any:
    """Parse the model's reply as JSON, ignoring a Markdown code fence.

    Raises:
        ExtractionFailure: The reply isn't valid JSON.
    """
    raw_text = text.strip()
    json_text = _FENCE_END.sub("", _FENCE_START.sub("", raw_text))
    try:
        return json.loads(json_text)
    except json.JSONDecodeError:
        raise errors.ExtractionFailure(
            "Failed to parse OCR result as JSON. "
            f"Raw response: {raw_text[:500]}"
        )
