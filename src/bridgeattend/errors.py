"""Errors raised by attendance operations."""


class AttendError(Exception):
    """Base class for errors that callers are expected to handle."""


class InvalidInput(AttendError):
    """Missing or malformed input. Raised before anything is written."""


class NotFound(AttendError):
    """A referenced event, student, job or other record does not exist."""

    @classmethod
    def for_resource(cls, resource: str, resource_id: str) -> "NotFound":
        """Build the standard 'X with ID Y not found' error."""
        return cls(f"{resource} with ID {resource_id} not found")


class Conflict(AttendError):
    """A deliberate single-record write hit a uniqueness constraint."""


class JobStateError(Conflict):
    """An OCR job was asked to make a transition its status doesn't allow."""


class ExtractionFailure(AttendError):
    """The vision model call failed or its output couldn't be parsed."""
