"""Input checks for the dialog fields."""

import dateutil.parser

from textual import validation

from bridgeattend import model
from bridgeattend.extraction import normalize
from bridgeattend.model import events


class DateValidator(validation.Validator):
    """A calendar date written as YYYY-MM-DD."""

    def validate(self, value: str) -> validation.ValidationResult:
        if events.DATE_PATTERN.match(value) is None:
            return self.failure("Use the YYYY-MM-DD format for dates.")
        try:
            dateutil.parser.isoparse(value)
        except ValueError as err:
            return self.failure(f"Not a real date: {err}")
        return self.success()


class IsEventId(validation.Validator):
    """Blank, or 8 uppercase hexadecimal characters."""

    def validate(self, value: str) -> validation.ValidationResult:
        if not value or model.is_valid_event_id(value):
            return self.success()
        return self.failure("Event ID must be 8 uppercase hex characters.")


class IsTableNumber(validation.Validator):
    """Blank, or an integer greater than zero."""

    def validate(self, value: str) -> validation.ValidationResult:
        if not value or (value.isdigit() and int(value) > 0):
            return self.success()
        return self.failure("Must be blank or an integer greater than 0.")


class IsSeat(validation.Validator):
    """Blank, or a compass seat such as N or North."""

    def validate(self, value: str) -> validation.ValidationResult:
        if not value.strip() or normalize.normalize_seat(value) is not None:
            return self.success()
        return self.failure("Seat must be N, S, E, W or blank.")


class NotEmpty(validation.Validator):
    """Something other than whitespace must be entered."""

    def validate(self, value: str) -> validation.ValidationResult:
        return self.success() if value.strip() else self.failure("Required.")
