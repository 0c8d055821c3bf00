"""Add events, scan their sign-in sheets, and view who attended."""

import pathlib
from typing import Optional

import textual
from textual import app, binding, containers, reactive, screen, widgets

from bridgeattend import config, errors, model
from bridgeattend.extraction import vision
from bridgeattend.features import scan
import bridgeattend.view
from bridgeattend.view import dialogs, review_screen, roster_screen


class EventsTable(widgets.DataTable):
    """Table of class occurrences, newest first."""

    dbase: model.DBase
    """Connection to Sqlite Database."""
    events: dict[str, model.Event]
    """Events keyed by event ID."""

    def __init__(self, dbase: model.DBase, *args, **kwargs) -> None:
        """Set link to database."""
        super().__init__(zebra_stripes=True, *args, **kwargs)
        self.dbase = dbase
        self.events = {}

    def on_mount(self) -> None:
        """Initialize the table."""
        self.initialize_table()
        self.update_table()

    def initialize_table(self) -> None:
        """Set up table columns."""
        self.cursor_type = "row"
        for col in [
            ("[green]Date[/]", "event_date"),
            ("Class", "name"),
            ("Teacher", "teacher"),
            ("Location", "location"),
            ("Type", "event_type"),
            ("Attendance", "attendance"),
            ("ID", "event_id"),
        ]:
            self.add_column(col[0], key=col[1])

    def update_table(self) -> None:
        """Populate the table with events."""
        self.clear(columns=False)
        self.events = {
            event.event_id: event for event in model.Event.get_all(self.dbase)
        }
        for event_id, event in self.events.items():
            self.add_row(
                f"[green]{event.iso_date}[/]",
                event.name,
                event.teacher,
                event.location,
                event.event_type.value,
                model.Attendance.get_count(self.dbase, event_id),
                event_id,
                key=event_id,
            )
        self.refresh()


class AttendanceTable(widgets.DataTable):
    """Attendance for the event selected in the events table."""

    dbase: model.DBase
    """Connection to Sqlite Database."""
    event_id: reactive.reactive[str | None] = reactive.reactive(None)
    """ID of selected event."""

    def __init__(self, dbase: model.DBase, *args, **kwargs) -> None:
        """Set link to database."""
        super().__init__(zebra_stripes=True, *args, **kwargs)
        self.dbase = dbase

    def on_mount(self) -> None:
        """Define table columns."""
        self.cursor_type = "row"
        for col in [
            ("Table", "table_number"),
            ("Seat", "seat"),
            ("Name", "student_name"),
            ("Email", "student_email"),
            ("Source", "source"),
        ]:
            self.add_column(col[0], key=col[1])

    def watch_event_id(self) -> None:
        """Show attendance for the selected event."""
        self.update_table()

    def update_table(self) -> None:
        self.clear(columns=False)
        if self.event_id is None:
            return
        for row in model.Attendance.get_for_event(self.dbase, self.event_id):
            self.add_row(
                row["table_number"] or "",
                row["seat"] or "",
                row["student_name"],
                row["student_email"] or "",
                row["source"],
                key=row["student_id"],
            )
        self.refresh()


class ScansTable(widgets.DataTable):
    """Sheet scans for the selected event. Select a complete scan to review it."""

    dbase: model.DBase
    """Connection to Sqlite Database."""
    jobs: dict[str, model.OcrJob]
    """OCR jobs keyed by job ID."""
    event_id: reactive.reactive[str | None] = reactive.reactive(None)
    """ID of selected event."""

    def __init__(self, dbase: model.DBase, *args, **kwargs) -> None:
        """Set link to database."""
        super().__init__(zebra_stripes=True, *args, **kwargs)
        self.dbase = dbase
        self.jobs = {}

    def on_mount(self) -> None:
        """Define table columns."""
        self.cursor_type = "row"
        for col in [
            ("Scanned", "created_at"),
            ("Status", "status"),
            ("Lines", "lines"),
            ("Error", "error_message"),
        ]:
            self.add_column(col[0], key=col[1])

    def watch_event_id(self) -> None:
        self.update_table()

    def update_table(self) -> None:
        """Show OCR jobs for the selected event."""
        self.clear(columns=False)
        if self.event_id is None:
            self.jobs = {}
            return
        self.jobs = {
            job.job_id: job
            for job in model.OcrJob.get_for_event(self.dbase, self.event_id)
        }
        for job_id, job in self.jobs.items():
            result = job.result
            match job.status:
                case model.JobStatus.COMPLETE:
                    status = f"[green]{job.status.value}[/]"
                case model.JobStatus.FAILED:
                    status = f"[red]{job.status.value}[/]"
                case _:
                    status = f"[yellow]{job.status.value}[/]"
            self.add_row(
                (
                    ""
                    if job.created_at is None
                    else job.created_at.replace(microsecond=0).isoformat()
                ),
                status,
                "" if result is None else len(result.attendance),
                job.error_message or "",
                key=job_id,
            )
        self.refresh()


class EventScreen(screen.Screen):
    """Add events, scan sign-in sheets, and view attendance."""

    dbase: model.DBase
    """Connection to Sqlite Database."""
    event_id: reactive.reactive[str | None] = reactive.reactive(None)
    """ID of selected event."""

    CSS_PATH = bridgeattend.view.CSS_FOLDER / "event_screen.tcss"
    BINDINGS = [
        binding.Binding("escape", "app.pop_screen", "Back to Main Screen", show=True),
        ("n", "new_event", "New Event"),
        ("s", "scan_sheet", "Scan Sheet"),
        ("r", "show_roster", "Roster"),
    ]

    def __init__(self) -> None:
        """Initialize the database connection."""
        super().__init__()
        if config.settings.db_path is None:
            raise model.DBaseError("No database file selected.")
        self.dbase = model.DBase(config.settings.db_path)

    def compose(self) -> app.ComposeResult:
        """Add the datatables and other controls to the screen."""
        yield widgets.Header()
        with containers.HorizontalGroup(id="events-toolbar", classes="toolbar"):
            yield widgets.Button("New Event", id="events-new-event")
            yield widgets.Button(
                "Scan Sheet",
                id="events-scan-sheet",
                tooltip="Read a sign-in sheet photo for the selected event.",
            )
            yield widgets.Button("Roster", id="events-roster")
        yield EventsTable(dbase=self.dbase, id="events-table")
        yield widgets.Static("Attendance", classes="separator emphasis")
        yield (
            AttendanceTable(
                dbase=self.dbase, id="events-attendance-table"
            ).data_bind(EventScreen.event_id)
        )
        yield widgets.Static(
            "Sheet Scans (select a complete scan to review)",
            classes="separator emphasis",
        )
        yield ScansTable(dbase=self.dbase, id="events-scans-table").data_bind(
            EventScreen.event_id
        )
        yield widgets.Footer()

    @textual.on(EventsTable.RowHighlighted, "#events-table")
    def on_events_table_row_highlighted(
        self, message: EventsTable.RowHighlighted
    ) -> None:
        """Set the new event_id, which will trigger table updates."""
        self.event_id = message.row_key.value
        textual.log(f"Event highlighted. ID: {self.event_id}")

    def refresh_tables(self) -> None:
        self.query_one(EventsTable).update_table()
        self.query_one(AttendanceTable).update_table()
        self.query_one(ScansTable).update_table()

    @textual.on(widgets.Button.Pressed, "#events-new-event")
    def action_new_event(self) -> None:
        """Open a dialog to add an event."""

        def _add_event(values: Optional[dict]) -> None:
            if values is None:
                return
            try:
                event = model.Event.create(
                    self.dbase,
                    default_teacher=config.settings.default_teacher,
                    **values,
                )
            except errors.AttendError as err:
                self.notify(str(err), title="New Event", severity="error")
                return
            self.notify(f"Created {event.name} on {event.iso_date}")
            self.query_one(EventsTable).update_table()

        self.app.push_screen(
            dialogs.EventDialog(config.settings.default_teacher), _add_event
        )

    @textual.on(widgets.Button.Pressed, "#events-scan-sheet")
    def action_scan_sheet(self) -> None:
        """Ask for a photo and scan it for the selected event."""
        if self.event_id is None:
            self.notify("Select an event first.", severity="warning")
            return
        event_id = self.event_id

        def _scan(path: Optional[pathlib.Path]) -> None:
            if path is not None:
                self.notify(f"Reading {path.name}...")
                self.scan_photo(event_id, path)

        self.app.push_screen(
            dialogs.PathDialog(
                "Scan Sign-in Sheet",
                placeholder="Photo file (.jpg, .png, .gif, .webp)",
            ),
            _scan,
        )

    @textual.work(exclusive=True, thread=True)
    def scan_photo(self, event_id: str, path: pathlib.Path) -> None:
        """Read a sheet photo without blocking the interface."""
        try:
            outcome = scan.scan_sheet(
                self.dbase,
                config.settings,
                scan.PhotoStore.from_settings(config.settings),
                vision.ClaudeVision(config.settings),
                event_id,
                path.read_bytes(),
                scan.media_type_for(path),
            )
        except (errors.AttendError, OSError) as err:
            self.app.call_from_thread(
                self.notify, str(err), title="Scan Sheet", severity="error"
            )
            return
        self.app.call_from_thread(self._scan_finished, outcome)

    def _scan_finished(self, outcome: scan.ScanOutcome) -> None:
        self.query_one(ScansTable).update_table()
        if outcome.status == model.JobStatus.FAILED:
            self.notify(
                f"Photo saved but could not be read: {outcome.error}",
                title="Scan Sheet",
                severity="warning",
            )
            return
        self.notify("Sheet read. Review it before confirming.", title="Scan Sheet")
        self.app.push_screen(
            review_screen.ReviewScreen(self.dbase, outcome.job), self._reviewed
        )

    @textual.on(ScansTable.RowSelected, "#events-scans-table")
    def review_scan(self, message: ScansTable.RowSelected) -> None:
        """Review a complete scan."""
        job = self.query_one(ScansTable).jobs.get(str(message.row_key.value))
        if job is None:
            return
        if job.status != model.JobStatus.COMPLETE:
            self.notify(f"Scan is {job.status.value}.", severity="warning")
            return
        self.app.push_screen(
            review_screen.ReviewScreen(self.dbase, job), self._reviewed
        )

    def _reviewed(self, confirmed: Optional[bool]) -> None:
        if confirmed:
            self.refresh_tables()

    @textual.on(widgets.Button.Pressed, "#events-roster")
    def action_show_roster(self) -> None:
        """Show the class roster for the selected event."""
        if self.event_id is None:
            self.notify("Select an event first.", severity="warning")
            return
        self.app.push_screen(roster_screen.RosterScreen(self.dbase, self.event_id))
