"""Command line interface."""

import json
import pathlib
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from bridgeattend import config, errors, logs, model
from bridgeattend.extraction import vision
from bridgeattend.features import confirm, importer, roster, scan, summary


app = typer.Typer(help="Bridge class attendance from sign-in sheet photos.")
console = Console()


def _dbase() -> model.DBase:
    if config.settings.db_path is None:
        raise model.DBaseError("No database file selected.")
    return model.DBase(config.settings.db_path)


def _fail(err: Exception) -> NoReturn:
    console.print(f"[red]Error:[/] {err}")
    raise typer.Exit(code=1)


def _print_json(data) -> None:
    console.print_json(json.dumps(data, default=str))


@app.callback()
def main(
    config_path: Optional[pathlib.Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Settings TOML file.",
    ),
) -> None:
    """Load settings and configure logging."""
    if config_path is None and pathlib.Path(config.CONFIG_FILE_NAME).exists():
        config_path = pathlib.Path(config.CONFIG_FILE_NAME)
    try:
        config.settings = config.Settings.load(config_path)
    except config.SettingsError as err:
        _fail(err)
    if config.settings.db_path is None:
        config.settings.db_path = pathlib.Path(config.DB_FILE_NAME)
    logs.setup_logging(config.settings.log_level)


@app.command("init")
def init_settings(
    path: pathlib.Path = typer.Argument(pathlib.Path(config.CONFIG_FILE_NAME)),
) -> None:
    """Write a settings file with default values."""
    try:
        config.Settings.create_new_config_file(path)
    except config.SettingsError as err:
        _fail(err)
    console.print(f"[green]Created settings file {path}[/]")


@app.command("init-db")
def init_db() -> None:
    """Create a new, empty database."""
    if config.settings.db_path is None:
        _fail(model.DBaseError("No database file selected."))
    try:
        model.DBase(config.settings.db_path, create_new=True)
    except model.DBaseError as err:
        _fail(err)
    console.print(f"[green]Created database {config.settings.db_path}[/]")


@app.command("new-event")
def new_event(
    name: str = typer.Argument(..., help="Class name, same for every occurrence."),
    date: str = typer.Argument(..., help="YYYY-MM-DD"),
    teacher: Optional[str] = typer.Option(None),
    location: str = typer.Option(""),
    event_type: model.EventType = typer.Option(
        model.EventType.IN_PERSON, "--type"
    ),
    event_id: Optional[str] = typer.Option(None, "--id", help="8 hex characters."),
) -> None:
    """Add a class occurrence."""
    try:
        event = model.Event.create(
            _dbase(),
            name,
            date,
            teacher=teacher,
            location=location,
            event_type=event_type,
            event_id=event_id,
            default_teacher=config.settings.default_teacher,
        )
    except (errors.AttendError, model.DBaseError) as err:
        _fail(err)
    console.print(f"[green]Created event {event.event_id}[/]")


@app.command("events")
def list_events(
    limit: int = typer.Option(20), offset: int = typer.Option(0)
) -> None:
    """List events, newest first."""
    events, total = model.Event.get_page(_dbase(), limit, offset)
    table = Table(title=f"Events ({total} total)")
    for col in ["ID", "Date", "Name", "Teacher", "Location", "Type"]:
        table.add_column(col)
    for event in events:
        table.add_row(
            event.event_id,
            event.iso_date,
            event.name,
            event.teacher,
            event.location,
            event.event_type.value,
        )
    console.print(table)


@app.command("show")
def show_event(event_id: str) -> None:
    """Show an event and who attended."""
    dbase = _dbase()
    try:
        event = model.Event.require(dbase, event_id)
    except errors.NotFound as err:
        _fail(err)
    table = Table(title=f"{event.name} {event.iso_date} ({event.event_id})")
    for col in ["Table", "Seat", "Name", "Source"]:
        table.add_column(col)
    for row in model.Attendance.get_for_event(dbase, event_id):
        table.add_row(
            str(row["table_number"] or ""),
            row["seat"] or "",
            row["student_name"],
            row["source"],
        )
    console.print(table)


@app.command("scan")
def scan_photo(event_id: str, photo: pathlib.Path) -> None:
    """Store a sheet photo and read it with the vision model."""
    try:
        outcome = scan.scan_sheet(
            _dbase(),
            config.settings,
            scan.PhotoStore.from_settings(config.settings),
            vision.ClaudeVision(config.settings),
            event_id,
            photo.read_bytes(),
            scan.media_type_for(photo),
        )
    except (errors.AttendError, model.DBaseError, OSError) as err:
        _fail(err)
    _print_json(outcome.to_dict())
    if outcome.status == model.JobStatus.FAILED:
        console.print("[yellow]Photo saved but could not be read.[/]")


@app.command("jobs")
def list_jobs(event_id: str) -> None:
    """List sheet scans for an event."""
    dbase = _dbase()
    try:
        model.Event.require(dbase, event_id)
    except errors.NotFound as err:
        _fail(err)
    jobs = model.OcrJob.get_for_event(dbase, event_id)
    _print_json([job.to_dict() for job in jobs])


@app.command("review")
def export_review(
    event_id: str,
    job_id: str,
    output: pathlib.Path = typer.Argument(..., help="JSON file to edit."),
) -> None:
    """Write a scan's result as a confirm request to edit before confirming."""
    try:
        job = model.OcrJob.require(_dbase(), job_id, event_id)
    except errors.NotFound as err:
        _fail(err)
    result = job.result
    if result is None:
        _fail(errors.InvalidInput(f"OCR job {job_id} is {job.status.value}"))
    request = confirm.ConfirmRequest.from_extraction(result, job_id)
    with open(output, "wt") as jfile:
        json.dump(request.to_dict(), jfile, indent=2)
    console.print(
        f"Review {output}, then run: bridgeattend confirm {event_id} {output}"
    )


@app.command("confirm")
def confirm_review(event_id: str, request_file: pathlib.Path) -> None:
    """Commit reviewed attendance and mailing list entries."""
    try:
        with open(request_file, "rt") as jfile:
            request = confirm.ConfirmRequest.from_dict(json.load(jfile))
        report = confirm.confirm(_dbase(), event_id, request)
    except json.JSONDecodeError as err:
        _fail(errors.InvalidInput(f"{request_file} is not valid JSON: {err}"))
    except (errors.AttendError, model.DBaseError, OSError) as err:
        _fail(err)
    _print_json(report.to_dict())


@app.command("roster")
def show_roster(
    event_id: str,
    missing_only: bool = typer.Option(
        False, "--missing", help="Only students who need a mailing list invite."
    ),
) -> None:
    """Students of the event's class and their mailing list status."""
    try:
        entries = roster.roster_for(_dbase(), event_id)
    except errors.NotFound as err:
        _fail(err)
    table = Table(title="Class Roster")
    for col in ["Name", "Member", "Declined", "Needs Signup"]:
        table.add_column(col)
    for entry in entries:
        if missing_only and not entry.needs_signup:
            continue
        table.add_row(
            entry.student.name,
            "yes" if entry.is_member else "",
            "yes" if entry.declined else "",
            "[yellow]yes[/]" if entry.needs_signup else "",
        )
    console.print(table)


@app.command("import-members")
def import_members(csv_path: pathlib.Path) -> None:
    """Import the mailing list roster from a CSV export."""
    counts = importer.import_members_csv(_dbase(), csv_path)
    _print_json(counts)


@app.command("import-classes")
def import_classes(json_path: pathlib.Path) -> None:
    """Import events and attendance from a transcribed classes JSON file."""
    try:
        reports = importer.import_classes_json(
            _dbase(), json_path, config.settings.default_teacher
        )
    except errors.AttendError as err:
        _fail(err)
    _print_json({event_id: rep.to_dict() for event_id, rep in reports.items()})


@app.command("mailing-list")
def export_mailing_list(
    output: Optional[pathlib.Path] = typer.Option(None, help="CSV file to write.")
) -> None:
    """Export sheet signups as CSV."""
    csv_text = model.MailingListEntry.to_csv(_dbase())
    if output is None:
        console.print(csv_text, end="")
    else:
        output.write_text(csv_text)


@app.command("export")
def export_database(output: pathlib.Path) -> None:
    """Save the whole database to a JSON file."""
    with open(output, "wt") as jfile:
        json.dump(_dbase().to_dict(), jfile, indent=2)


@app.command("import")
def import_database(input_path: pathlib.Path) -> None:
    """Load a JSON file written by export into the database."""
    with open(input_path, "rt") as jfile:
        _dbase().load_from_dict(json.load(jfile))


@app.command("summary")
def show_summary() -> None:
    """Print an attendance summary."""
    console.print(Markdown(summary.get_summary(_dbase())))


@app.command("tui")
def run_tui() -> None:
    """Open the terminal user interface."""
    from bridgeattend.view import app as view_app

    view_app.BridgeAttend().run()
