"""Class roster with each student's mailing list status."""

import textual
from textual import app, binding, containers, screen, widget, widgets

from bridgeattend import model
from bridgeattend.features import roster
import bridgeattend.view


class NeedsSignupToggle(widget.Widget):
    """A switch that limits the roster to students who need an invite."""

    def compose(self) -> app.ComposeResult:
        """Assemble the label and switch."""
        with containers.Horizontal(classes="toggle-needs-signup"):
            yield widgets.Label("Only Students Who Need a Mailing List Invite:")
            yield widgets.Switch(False, classes="toggle-needs-signup-switch")

    @property
    def value(self) -> bool:
        """Value of the switch."""
        return self.query_one(".toggle-needs-signup-switch", widgets.Switch).value


class RosterScreen(screen.Screen):
    """Everyone who has attended the selected event's class."""

    CSS_PATH = bridgeattend.view.CSS_FOLDER / "roster_screen.tcss"
    BINDINGS = [
        binding.Binding("escape", "app.pop_screen", "Back", show=True),
    ]

    dbase: model.DBase
    """Connection to Sqlite Database."""
    event: model.Event
    """Event whose class is shown."""

    def __init__(self, dbase: model.DBase, event_id: str) -> None:
        super().__init__()
        self.dbase = dbase
        self.event = model.Event.require(dbase, event_id)

    def compose(self) -> app.ComposeResult:
        yield widgets.Header()
        yield widgets.Static(
            f"{self.event.name} roster", classes="separator emphasis"
        )
        yield NeedsSignupToggle()
        yield widgets.DataTable(zebra_stripes=True, id="roster-table")
        yield widgets.Footer()

    def on_mount(self) -> None:
        table = self.query_one("#roster-table", widgets.DataTable)
        table.cursor_type = "row"
        for col in ["Name", "Email", "On Mailing List", "Declined", "Needs Signup"]:
            table.add_column(col)
        self.update_table()

    @textual.on(widgets.Switch.Changed, ".toggle-needs-signup-switch")
    def update_table(self) -> None:
        """Show roster entries, filtered by the toggle."""
        only_needed = self.query_one(NeedsSignupToggle).value
        table = self.query_one("#roster-table", widgets.DataTable)
        table.clear(columns=False)
        for entry in roster.roster_for(self.dbase, self.event.event_id):
            if only_needed and not entry.needs_signup:
                continue
            table.add_row(
                entry.student.name,
                entry.student.email or "",
                "[green]yes[/]" if entry.is_member else "",
                "yes" if entry.declined else "",
                "[yellow]yes[/]" if entry.needs_signup else "",
                key=entry.student.student_id,
            )
