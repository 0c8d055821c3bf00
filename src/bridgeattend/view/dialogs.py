"""Modal dialog definitions."""

import dataclasses
import pathlib
from typing import Any, Optional

import textual
from textual import app, containers, screen, widgets

from bridgeattend import model
from bridgeattend.extraction import normalize
from bridgeattend.features import confirm
import bridgeattend.view
from bridgeattend.view import validators


def _inputs_valid(dialog: screen.ModalScreen) -> bool:
    """Run validators on every input in the dialog and report failures."""
    valid = True
    for input_widget in dialog.query(widgets.Input):
        result = input_widget.validate(input_widget.value)
        if result is not None and not result.is_valid:
            dialog.notify(
                "\n".join(result.failure_descriptions),
                title=input_widget.placeholder,
                severity="error",
            )
            valid = False
    return valid


class EventDialog(screen.ModalScreen[Optional[dict[str, Any]]]):
    """A dialog for adding a class occurrence."""

    CSS_PATH = bridgeattend.view.CSS_FOLDER / "dialogs.tcss"

    default_teacher: str

    def __init__(self, default_teacher: str) -> None:
        super().__init__()
        self.default_teacher = default_teacher

    def compose(self) -> app.ComposeResult:
        """Create and arrange dialog widgets."""
        with containers.Vertical(id="event-dialog", classes="modal-dialog"):
            yield widgets.Label("Add New Event", classes="emphasis")
            yield widgets.Input(
                placeholder="Class Name",
                id="e-name",
                validators=[validators.NotEmpty()],
            )
            yield widgets.Input(
                placeholder="Date (YYYY-MM-DD)",
                id="e-date",
                validators=[validators.DateValidator()],
            )
            yield widgets.Input(
                value=self.default_teacher, placeholder="Teacher", id="e-teacher"
            )
            yield widgets.Input(placeholder="Location", id="e-location")
            yield widgets.Select(
                [(t.value.replace("_", " ").title(), t.value) for t in model.EventType],
                value=model.EventType.IN_PERSON.value,
                allow_blank=False,
                id="e-type",
            )
            yield widgets.Input(
                placeholder="Event ID (leave blank to generate)",
                id="e-id",
                validators=[validators.IsEventId()],
            )
            with containers.Horizontal(classes="ok-cancel-row"):
                yield widgets.Button("Save", variant="primary", id="save-event")
                yield widgets.Button("Cancel", id="cancel-event")

    def on_mount(self) -> None:
        self.query_one("#e-name", widgets.Input).focus()

    @textual.on(widgets.Button.Pressed, "#save-event")
    def save_event(self) -> None:
        if not _inputs_valid(self):
            return
        self.dismiss(
            {
                "name": self.query_one("#e-name", widgets.Input).value,
                "event_date": self.query_one("#e-date", widgets.Input).value,
                "teacher": self.query_one("#e-teacher", widgets.Input).value or None,
                "location": self.query_one("#e-location", widgets.Input).value,
                "event_type": self.query_one("#e-type", widgets.Select).value,
                "event_id": self.query_one("#e-id", widgets.Input).value or None,
            }
        )

    @textual.on(widgets.Button.Pressed, "#cancel-event")
    def cancel(self) -> None:
        self.dismiss(None)


class AttendanceLineDialog(screen.ModalScreen[Optional[confirm.ReviewedAttendance]]):
    """Correct one name, table and seat read from a sheet."""

    CSS_PATH = bridgeattend.view.CSS_FOLDER / "dialogs.tcss"

    line: confirm.ReviewedAttendance

    def __init__(self, line: Optional[confirm.ReviewedAttendance] = None) -> None:
        super().__init__()
        self.line = line or confirm.ReviewedAttendance(student_name="")

    def compose(self) -> app.ComposeResult:
        with containers.Vertical(id="line-dialog", classes="modal-dialog"):
            yield widgets.Label("Attendance", classes="emphasis")
            yield widgets.Input(
                value=self.line.student_name,
                placeholder="Student Name",
                id="l-name",
                validators=[validators.NotEmpty()],
            )
            yield widgets.Input(
                value=(
                    ""
                    if self.line.table_number is None
                    else str(self.line.table_number)
                ),
                placeholder="Table Number",
                id="l-table",
                validators=[validators.IsTableNumber()],
            )
            yield widgets.Input(
                value=self.line.seat or "",
                placeholder="Seat (N, S, E, W)",
                id="l-seat",
                validators=[validators.IsSeat()],
            )
            with containers.Horizontal(classes="ok-cancel-row"):
                yield widgets.Button("Ok", variant="primary", id="save-line")
                yield widgets.Button("Cancel", id="cancel-line")

    def on_mount(self) -> None:
        self.query_one("#l-name", widgets.Input).focus()

    @textual.on(widgets.Button.Pressed, "#save-line")
    def save_line(self) -> None:
        if not _inputs_valid(self):
            return
        table = self.query_one("#l-table", widgets.Input).value
        self.dismiss(
            confirm.ReviewedAttendance(
                student_name=self.query_one("#l-name", widgets.Input).value.strip(),
                table_number=int(table) if table else None,
                seat=normalize.normalize_seat(
                    self.query_one("#l-seat", widgets.Input).value
                ),
            )
        )

    @textual.on(widgets.Button.Pressed, "#cancel-line")
    def cancel(self) -> None:
        self.dismiss(None)


class SignupDialog(screen.ModalScreen[Optional[confirm.ReviewedSignup]]):
    """Correct one mailing list signup read from a sheet."""

    CSS_PATH = bridgeattend.view.CSS_FOLDER / "dialogs.tcss"

    signup: confirm.ReviewedSignup

    def __init__(self, signup: Optional[confirm.ReviewedSignup] = None) -> None:
        super().__init__()
        self.signup = signup or confirm.ReviewedSignup(name="", email="")

    def compose(self) -> app.ComposeResult:
        with containers.Vertical(id="signup-dialog", classes="modal-dialog"):
            yield widgets.Label("Mailing List Signup", classes="emphasis")
            yield widgets.Input(
                value=self.signup.name,
                placeholder="Name",
                id="m-name",
                validators=[validators.NotEmpty()],
            )
            yield widgets.Input(
                value=self.signup.email,
                placeholder="Email",
                id="m-email",
                validators=[validators.NotEmpty()],
            )
            with containers.Horizontal(classes="ok-cancel-row"):
                yield widgets.Button("Ok", variant="primary", id="save-signup")
                yield widgets.Button("Cancel", id="cancel-signup")

    @textual.on(widgets.Button.Pressed, "#save-signup")
    def save_signup(self) -> None:
        if not _inputs_valid(self):
            return
        self.dismiss(
            dataclasses.replace(
                self.signup,
                name=self.query_one("#m-name", widgets.Input).value.strip(),
                email=self.query_one("#m-email", widgets.Input).value.strip().lower(),
            )
        )

    @textual.on(widgets.Button.Pressed, "#cancel-signup")
    def cancel(self) -> None:
        self.dismiss(None)


class PathDialog(screen.ModalScreen[Optional[pathlib.Path]]):
    """Ask for a file name, such as a sign-in sheet photo or an export file."""

    CSS_PATH = bridgeattend.view.CSS_FOLDER / "dialogs.tcss"

    heading: str
    placeholder: str
    must_exist: bool
    """The file must already exist, as when reading it."""

    def __init__(
        self, heading: str, placeholder: str = "File name", must_exist: bool = True
    ) -> None:
        super().__init__()
        self.heading = heading
        self.placeholder = placeholder
        self.must_exist = must_exist

    def compose(self) -> app.ComposeResult:
        with containers.Vertical(id="path-dialog", classes="modal-dialog"):
            yield widgets.Label(self.heading, classes="emphasis")
            yield widgets.Input(
                placeholder=self.placeholder,
                id="p-path",
                validators=[validators.NotEmpty()],
            )
            with containers.Horizontal(classes="ok-cancel-row"):
                yield widgets.Button("Ok", variant="primary", id="path-ok")
                yield widgets.Button("Cancel", id="path-cancel")

    def on_mount(self) -> None:
        self.query_one("#p-path", widgets.Input).focus()

    @textual.on(widgets.Button.Pressed, "#path-ok")
    def choose_path(self) -> None:
        if not _inputs_valid(self):
            return
        path_input = self.query_one("#p-path", widgets.Input)
        path = pathlib.Path(path_input.value.strip()).expanduser()
        if self.must_exist and not path.is_file():
            self.notify(f"No such file: {path}", severity="error")
            return
        self.dismiss(path)

    @textual.on(widgets.Button.Pressed, "#path-cancel")
    def cancel(self) -> None:
        self.dismiss(None)
