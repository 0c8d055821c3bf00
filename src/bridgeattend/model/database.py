"""Sqlite storage for events, students, attendance and the mailing list."""

from collections.abc import Sequence
import dataclasses
import datetime
import os
import pathlib
import sqlite3
from typing import Any

from bridgeattend.model import (
    attendance,
    events,
    mailing_list,
    members,
    ocr_jobs,
    students,
)


class DBaseError(Exception):
    """The database file is missing, already exists, or can't be used."""


TABLE_ORDER = (
    "events",
    "students",
    "attendance",
    "members",
    "mailing_list",
    "ocr_jobs",
)
"""Table names, parents before the tables that reference them."""


# The adapters that ship with the sqlite3 module are deprecated (Python 3.12),
#   so dates and datetimes are stored as ISO text by the functions below.
#   Connections must use detect_types=sqlite3.PARSE_DECLTYPES for the
#   converters to run on DATE, DATETIME and BOOL columns.


def _to_iso(val: datetime.date | None) -> str | None:
    """Store a date or datetime as ISO text."""
    return None if val is None else val.isoformat()


def _date_from_sqlite(val: bytes | None) -> datetime.date | None:
    return None if val is None else datetime.date.fromisoformat(val.decode())


def _datetime_from_sqlite(val: bytes | None) -> datetime.datetime | None:
    return None if val is None else datetime.datetime.fromisoformat(val.decode())


def _bool_from_sqlite(val: bytes) -> bool:
    return int(val) != 0


sqlite3.register_adapter(datetime.date, _to_iso)
sqlite3.register_adapter(datetime.datetime, _to_iso)
sqlite3.register_converter("DATE", _date_from_sqlite)
sqlite3.register_converter("DATETIME", _datetime_from_sqlite)
sqlite3.register_converter("BOOL", _bool_from_sqlite)


def dict_factory(cursor: sqlite3.Cursor, row: Sequence) -> dict[str, Any]:
    """Row factory that builds a plain dict keyed by column name."""
    return dict(zip((column[0] for column in cursor.description), row))


def casefold(val: str | None) -> str | None:
    """Registered as the CASEFOLD Sqlite function. LOWER() only folds ASCII."""
    return None if val is None else val.casefold()


def is_unique_violation(err: sqlite3.IntegrityError) -> bool:
    """True if the error came from a UNIQUE or PRIMARY KEY constraint."""
    return "UNIQUE constraint" in str(err)


def utc_now() -> datetime.datetime:
    """Current UTC time without microseconds."""
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)


def _jsonable(val: Any) -> Any:
    if isinstance(val, (datetime.date, datetime.datetime)):
        return val.isoformat()
    return val


@dataclasses.dataclass
class DbInfo:
    access_time: datetime.datetime
    modification_time: datetime.datetime
    creation_time: datetime.datetime


class DBase:
    """Handle to one attendance database file."""

    db_path: pathlib.Path
    """Location of the Sqlite file."""

    def __init__(self, db_path: pathlib.Path, create_new: bool = False) -> None:
        """Open an existing file, or make a new one when create_new is set."""
        self.db_path = db_path
        exists = db_path.exists()
        if create_new and exists:
            raise DBaseError(f"Cannot create {db_path}, the file already exists.")
        if not create_new and not exists:
            raise DBaseError(f"No database file at {db_path}.")
        if create_new:
            self.create_tables()

    def get_db_connection(self, as_dict=False) -> sqlite3.Connection:
        """Open a connection with foreign keys enforced and CASEFOLD defined.

        Rows are sqlite3.Row objects, or plain dicts when as_dict is True.
        """
        conn = sqlite3.connect(self.db_path, detect_types=sqlite3.PARSE_DECLTYPES)
        conn.row_factory = dict_factory if as_dict else sqlite3.Row
        conn.create_function("CASEFOLD", 1, casefold, deterministic=True)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def create_tables(self):
        """Create every table and index."""
        statements = [
            events.Event.table_def,
            students.Student.table_def,
            students.Student.name_index_def,
            attendance.Attendance.table_def,
            members.Member.table_def,
            members.Member.name_index_def,
            mailing_list.MailingListEntry.table_def,
            ocr_jobs.OcrJob.table_def,
        ]
        with self.get_db_connection() as conn:
            for statement in statements:
                conn.execute(statement)
        conn.close()

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Dump every table for writing to a JSON file.

        Returns:
            {<table_name>: [{<col_name>: <col_value>}]}, with dates and
            datetimes as ISO strings.
        """
        conn = self.get_db_connection(as_dict=True)
        db_data = {
            table: [
                {col: _jsonable(val) for col, val in row.items()}
                for row in conn.execute(f"SELECT * FROM {table};").fetchall()
            ]
            for table in TABLE_ORDER
        }
        conn.close()
        return db_data

    def load_from_dict(self, db_data_dict: dict[str, list[dict[str, Any]]]) -> None:
        """Insert rows written by to_dict.

        Parent tables go first so foreign keys resolve. Tables missing from
        the input are left alone.
        """
        with self.get_db_connection() as conn:
            for table in TABLE_ORDER:
                rows = db_data_dict.get(table) or []
                if not rows:
                    continue
                columns = list(rows[0])
                placeholders = ", ".join(f":{col}" for col in columns)
                conn.executemany(
                    f"INSERT INTO {table} ({', '.join(columns)})"
                    f" VALUES ({placeholders});",
                    rows,
                )
        conn.close()

    def get_database_file_info(self) -> DbInfo:
        """File times for the database, shown in the summary."""
        stat = os.stat(self.db_path)
        # st_birthtime is missing on some platforms.
        created = getattr(stat, "st_birthtime", stat.st_ctime)
        return DbInfo(
            access_time=datetime.datetime.fromtimestamp(stat.st_atime),
            modification_time=datetime.datetime.fromtimestamp(stat.st_mtime),
            creation_time=datetime.datetime.fromtimestamp(created),
        )
