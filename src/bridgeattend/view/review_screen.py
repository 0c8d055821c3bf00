"""Check and correct what was read from a sign-in sheet, then confirm it."""

from typing import Optional

import textual
from textual import app, binding, containers, screen, widgets

from bridgeattend import errors, model
from bridgeattend.extraction import normalize
from bridgeattend.features import confirm
import bridgeattend.view
from bridgeattend.view import dialogs


LOW_CONFIDENCE = 0.5
"""Lines read with less confidence than this are highlighted."""


class ReviewScreen(screen.Screen[Optional[bool]]):
    """Edit the attendance and mailing list lines of one OCR job.

    Nothing is written to the database until Confirm is pressed. The screen
    is dismissed with True after a successful confirm.
    """

    CSS_PATH = [bridgeattend.view.CSS_FOLDER / "review_screen.tcss"]

    dbase: model.DBase
    """Sqlite database connection object."""
    job: model.OcrJob
    """Complete OCR job being reviewed."""
    result: normalize.ExtractionResult
    """Lines as read from the sheet."""
    request: confirm.ConfirmRequest
    """Lines as corrected so far."""
    _extracted_lines: list[Optional[normalize.AttendanceLine]]
    """Extracted line behind each attendance line. None for added lines."""
    _signup_confidence: list[Optional[float]]
    _current_table: Optional[widgets.DataTable]
    """Table that last had a highlighted row."""

    BINDINGS = [
        binding.Binding("escape", "cancel_review", "Cancel", show=True),
        ("e", "edit_line", "Edit"),
        ("d", "remove_line", "Remove"),
        ("c", "confirm", "Confirm"),
    ]

    def __init__(self, dbase: model.DBase, job: model.OcrJob) -> None:
        super().__init__()
        result = job.result
        if result is None:
            raise errors.InvalidInput(f"OCR job {job.job_id} is {job.status.value}")
        self.dbase = dbase
        self.job = job
        self.result = result
        self.request = confirm.ConfirmRequest.from_extraction(result, job.job_id)
        self._extracted_lines = list(result.attendance)
        self._signup_confidence = [line.confidence for line in result.mailing_list]
        self._current_table = None

    def compose(self) -> app.ComposeResult:
        yield widgets.Header()
        yield widgets.Static(self._sheet_details(), id="review-details")
        with containers.HorizontalGroup(classes="toolbar"):
            yield widgets.Button("Add Attendee", id="review-add-attendee")
            yield widgets.Button("Add Signup", id="review-add-signup")
            yield widgets.Button("Edit", id="review-edit")
            yield widgets.Button("Remove", id="review-remove")
            yield widgets.Button("Confirm", variant="primary", id="review-confirm")
        yield widgets.Static("Attendance", classes="separator emphasis")
        yield widgets.DataTable(zebra_stripes=True, id="review-attendance-table")
        yield widgets.Static("Mailing List Signups", classes="separator emphasis")
        yield widgets.DataTable(zebra_stripes=True, id="review-signup-table")
        yield widgets.Footer()

    def on_mount(self) -> None:
        """Set up table columns and fill the tables."""
        attendance_table = self._attendance_table()
        attendance_table.cursor_type = "row"
        for col in ["Name", "Table", "Seat", "Checked", "Confidence"]:
            attendance_table.add_column(col)
        signup_table = self._signup_table()
        signup_table.cursor_type = "row"
        for col in ["Name", "Email", "Confidence"]:
            signup_table.add_column(col)
        self.update_tables()

    def _sheet_details(self) -> str:
        """Summarize the QR code, overall confidence and model notes."""
        details = [
            f"[bold]Event:[/bold] {self.job.event_id}",
            f"[bold]Confidence:[/bold] {self.result.confidence:.2f}",
        ]
        qr_event_id = self.result.qr_event_id
        if qr_event_id is not None and qr_event_id != self.job.event_id:
            details.append(
                f"[yellow]Sheet QR code is for event {qr_event_id}, "
                "not this event.[/]"
            )
        if self.result.notes:
            details.append(f"[bold]Notes:[/bold] {self.result.notes}")
        return "\n".join(details)

    def _attendance_table(self) -> widgets.DataTable:
        return self.query_one("#review-attendance-table", widgets.DataTable)

    def _signup_table(self) -> widgets.DataTable:
        return self.query_one("#review-signup-table", widgets.DataTable)

    def update_tables(self) -> None:
        """Show the current lines. Row keys are list indexes."""
        attendance_table = self._attendance_table()
        attendance_table.clear(columns=False)
        for idx, line in enumerate(self.request.attendance):
            extracted = self._extracted_lines[idx]
            confidence = "" if extracted is None else f"{extracted.confidence:.2f}"
            if extracted is not None and extracted.confidence < LOW_CONFIDENCE:
                confidence = f"[yellow]{confidence}[/]"
            attendance_table.add_row(
                line.student_name or "[red](blank)[/]",
                line.table_number or "",
                line.seat or "",
                "" if extracted is None or not extracted.is_checked else "yes",
                confidence,
                key=str(idx),
            )
        signup_table = self._signup_table()
        signup_table.clear(columns=False)
        for idx, signup in enumerate(self.request.mailing_list):
            signup_confidence = self._signup_confidence[idx]
            signup_table.add_row(
                signup.name or "[red](blank)[/]",
                signup.email,
                "" if signup_confidence is None else f"{signup_confidence:.2f}",
                key=str(idx),
            )

    @textual.on(widgets.DataTable.RowHighlighted)
    def track_current_table(self, message: widgets.DataTable.RowHighlighted) -> None:
        self._current_table = message.data_table

    def _selected(self) -> tuple[Optional[str], Optional[int]]:
        """Get the selected table's ID and row index."""
        table = self._current_table
        if table is None or table.row_count == 0:
            return None, None
        return table.id, table.cursor_row

    @textual.on(widgets.Button.Pressed, "#review-add-attendee")
    def add_attendee(self) -> None:
        def _add(line: Optional[confirm.ReviewedAttendance]) -> None:
            if line is not None:
                self.request.attendance.append(line)
                self._extracted_lines.append(None)
                self.update_tables()

        self.app.push_screen(dialogs.AttendanceLineDialog(), _add)

    @textual.on(widgets.Button.Pressed, "#review-add-signup")
    def add_signup(self) -> None:
        def _add(signup: Optional[confirm.ReviewedSignup]) -> None:
            if signup is not None:
                self.request.mailing_list.append(signup)
                self._signup_confidence.append(None)
                self.update_tables()

        self.app.push_screen(dialogs.SignupDialog(), _add)

    @textual.on(widgets.Button.Pressed, "#review-edit")
    def action_edit_line(self) -> None:
        """Open the selected line in a dialog."""
        table_id, idx = self._selected()
        if idx is None:
            return

        if table_id == "review-attendance-table":

            def _replace_line(line: Optional[confirm.ReviewedAttendance]) -> None:
                if line is not None:
                    self.request.attendance[idx] = line
                    self.update_tables()

            self.app.push_screen(
                dialogs.AttendanceLineDialog(self.request.attendance[idx]),
                _replace_line,
            )
        else:

            def _replace_signup(signup: Optional[confirm.ReviewedSignup]) -> None:
                if signup is not None:
                    self.request.mailing_list[idx] = signup
                    self.update_tables()

            self.app.push_screen(
                dialogs.SignupDialog(self.request.mailing_list[idx]),
                _replace_signup,
            )

    @textual.on(widgets.Button.Pressed, "#review-remove")
    def action_remove_line(self) -> None:
        """Drop the selected line. The extraction result is not changed."""
        table_id, idx = self._selected()
        if idx is None:
            return
        if table_id == "review-attendance-table":
            del self.request.attendance[idx]
            del self._extracted_lines[idx]
        else:
            del self.request.mailing_list[idx]
            del self._signup_confidence[idx]
        self.update_tables()

    @textual.on(widgets.Button.Pressed, "#review-confirm")
    def action_confirm(self) -> None:
        """Write the reviewed lines to the database."""
        try:
            report = confirm.confirm(self.dbase, self.job.event_id, self.request)
        except errors.AttendError as err:
            self.notify(str(err), title="Confirm", severity="error")
            return
        self.notify(
            f"Attendance: {report.attendance.created} added, "
            f"{report.attendance.skipped} already recorded.\n"
            f"Mailing list: {report.mailing_list.created} added, "
            f"{report.mailing_list.skipped} already on list.",
            title="Confirm",
        )
        self.dismiss(True)

    def action_cancel_review(self) -> None:
        self.dismiss(False)
