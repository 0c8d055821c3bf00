"""Start screen of the Bridge Attendance terminal interface."""

import json
import pathlib
import sqlite3

import textual
from textual import app, containers, reactive, widgets

from bridgeattend import config, errors, model
from bridgeattend.features import importer, summary
import bridgeattend.view
from bridgeattend.view import dialogs, event_screen, review_screen


def _current_dbase() -> model.DBase | None:
    """The configured database, or None if it hasn't been created yet."""
    db_path = config.settings.db_path
    if db_path is None or not db_path.exists():
        return None
    return model.DBase(db_path)


class BridgeAttend(app.App):
    """Database controls, settings and a summary report."""

    CSS_PATH = bridgeattend.view.CSS_FOLDER / "root.tcss"

    TITLE = "Bridge Class Attendance"
    BINDINGS = [
        ("e", "manage_events", "Events and Sign-in Sheets"),
        ("r", "refresh_summary", "Refresh Summary"),
    ]
    db_path: reactive.reactive[pathlib.Path | None] = reactive.reactive(None)
    """Shown in the database pane."""

    def compose(self) -> app.ComposeResult:
        yield widgets.Header()
        with containers.HorizontalGroup(id="main-top-menu", classes="pane toolbar"):
            yield widgets.Button(
                "Events and Sign-in Sheets",
                id="main-manage-events",
                tooltip="Add classes, scan sign-in sheets, and review them.",
            )
        with containers.VerticalGroup(classes="pane"):
            yield widgets.Label(id="main-config-db-path")
            with containers.HorizontalGroup(classes="toolbar"):
                yield widgets.Button(
                    "New Database", id="main-create-database", variant="primary"
                )
                yield widgets.Button("Export to JSON", id="main-export-database")
                yield widgets.Button("Import from JSON", id="main-import-database")
                yield widgets.Button("Import Roster CSV", id="main-import-members")
        yield widgets.Label(
            f"[b]Settings:[/b] {config.settings.config_path}", classes="pane"
        )
        yield widgets.Markdown(self._summary(), id="main-db-summary")
        yield widgets.Footer()

    def on_mount(self) -> None:
        self.db_path = config.settings.db_path

    def watch_db_path(self, db_path: pathlib.Path | None) -> None:
        self.query_one("#main-config-db-path", widgets.Label).update(
            f"[b]Database:[/b] {db_path or '(not set)'}"
        )

    def _summary(self) -> str:
        dbase = _current_dbase()
        if dbase is None:
            return "No database. Create one to get started."
        return summary.get_summary(dbase)

    def action_refresh_summary(self) -> None:
        self.query_one("#main-db-summary", widgets.Markdown).update(self._summary())

    def _refresh_after(self, _result: object = None) -> None:
        self.action_refresh_summary()

    @textual.on(widgets.Button.Pressed, "#main-manage-events")
    def action_manage_events(self) -> None:
        """Open the event screen."""
        if _current_dbase() is None:
            self.notify("Create a database first.", severity="warning")
            return
        self.push_screen(event_screen.EventScreen(), self._refresh_after)

    @textual.on(widgets.Button.Pressed, "#main-create-database")
    def action_create_database(self) -> None:
        """Make an empty database at the configured path."""
        if config.settings.db_path is None:
            return
        try:
            model.DBase(config.settings.db_path, create_new=True)
        except model.DBaseError as err:
            self.notify(str(err), severity="error")
            return
        self.db_path = config.settings.db_path
        self.action_refresh_summary()

    def _ask_for_file(self, heading: str, on_file, must_exist: bool = True) -> None:
        """Prompt for a file name, then call on_file(dbase, path)."""

        def _chosen(path: pathlib.Path | None) -> None:
            dbase = _current_dbase()
            if path is None or dbase is None:
                return
            try:
                on_file(dbase, path)
            except (errors.AttendError, OSError, ValueError, sqlite3.Error) as err:
                self.notify(str(err), title=heading, severity="error")
                return
            self.action_refresh_summary()

        self.push_screen(dialogs.PathDialog(heading, must_exist=must_exist), _chosen)

    @textual.on(widgets.Button.Pressed, "#main-export-database")
    def export_file(self) -> None:
        """Write every table to a JSON file."""

        def _export(dbase: model.DBase, path: pathlib.Path) -> None:
            path = path.with_suffix(".json")
            path.write_text(json.dumps(dbase.to_dict(), indent=2))
            self.notify(f"Exported to {path}")

        self._ask_for_file("Export Database", _export, must_exist=False)

    @textual.on(widgets.Button.Pressed, "#main-import-database")
    def select_import_file(self) -> None:
        """Load a JSON file written by export."""

        def _import(dbase: model.DBase, path: pathlib.Path) -> None:
            # json.JSONDecodeError is a ValueError.
            dbase.load_from_dict(json.loads(path.read_text()))

        self._ask_for_file("Import Database", _import)

    @textual.on(widgets.Button.Pressed, "#main-import-members")
    def import_members(self) -> None:
        """Add members from the mailing list service's CSV export."""

        def _import(dbase: model.DBase, path: pathlib.Path) -> None:
            counts = importer.import_members_csv(dbase, path)
            self.notify(
                f"{counts['created']} members added, {counts['skipped']} skipped."
            )

        self._ask_for_file("Import Roster CSV", _import)

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Keep the start screen's shortcuts from firing on other screens."""
        top = self.screen_stack[-1]
        if isinstance(top, review_screen.ReviewScreen):
            return action not in ("manage_events", "refresh_summary")
        if isinstance(top, event_screen.EventScreen):
            return action != "manage_events"
        return True
