"""Attempts to read a photographed sign-in sheet.

A job moves pending -> processing -> complete or failed, once, in that
order. Finished jobs are never retried. To try again, create a new job for
the same photo.
"""

import dataclasses
import datetime
import enum
import json
import logging
import uuid
from typing import Any, ClassVar, Optional, TYPE_CHECKING

from bridgeattend import errors
from bridgeattend.extraction import normalize

if TYPE_CHECKING:
    from bridgeattend.model import database


logger = logging.getLogger(__name__)


class JobStatus(enum.StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclasses.dataclass
class OcrJob:
    """One extraction attempt for one photo."""

    job_id: str
    event_id: str
    blob_key: str
    """Key of the photo in the photo store. Never changes."""
    status: JobStatus = JobStatus.PENDING
    result_json: Optional[str] = None
    """Canonical extraction result. Only set when complete."""
    error_message: Optional[str] = None
    """Only set when failed."""
    created_at: Optional[datetime.datetime] = None
    processed_at: Optional[datetime.datetime] = None

    table_def: ClassVar[str] = """
        CREATE TABLE IF NOT EXISTS ocr_jobs (
                 job_id TEXT PRIMARY KEY,
               event_id TEXT NOT NULL,
               blob_key TEXT NOT NULL,
                 status TEXT NOT NULL DEFAULT 'pending'
                        CHECK (status IN
                               ('pending', 'processing', 'complete', 'failed')),
            result_json TEXT,
          error_message TEXT,
             created_at DATETIME NOT NULL,
           processed_at DATETIME,
            FOREIGN KEY (event_id) REFERENCES events (event_id) ON DELETE CASCADE
        );
    """

    def __init__(
        self,
        job_id: str,
        event_id: str,
        blob_key: str,
        status: JobStatus | str = JobStatus.PENDING,
        result_json: Optional[str] = None,
        error_message: Optional[str] = None,
        created_at: Optional[datetime.datetime] = None,
        processed_at: Optional[datetime.datetime] = None,
    ) -> None:
        """Convert fields from Sqlite to Python datatypes as needed."""
        self.job_id = job_id
        self.event_id = event_id
        self.blob_key = blob_key
        self.status = JobStatus(status)
        self.result_json = result_json
        self.error_message = error_message
        self.created_at = created_at
        self.processed_at = processed_at

    @property
    def result(self) -> Optional[normalize.ExtractionResult]:
        """The extraction result of a complete job."""
        if self.status != JobStatus.COMPLETE or self.result_json is None:
            return None
        return normalize.ExtractionResult.from_dict(json.loads(self.result_json))

    def to_dict(self) -> dict[str, Any]:
        """Convert job to a dictionary, with the result decoded."""
        job = {**dataclasses.asdict(self), "status": self.status.value}
        del job["result_json"]
        result = self.result
        job["result"] = None if result is None else result.to_dict()
        return job

    @classmethod
    def create(
        cls, dbase: "database.DBase", event_id: str, blob_key: str
    ) -> "OcrJob":
        """Add a pending job for a stored photo."""
        from bridgeattend.model import database

        job = cls(
            job_id=str(uuid.uuid4()),
            event_id=event_id,
            blob_key=blob_key,
            created_at=database.utc_now(),
        )
        query = """
                INSERT INTO ocr_jobs
                            (job_id, event_id, blob_key, status, created_at)
                     VALUES (:job_id, :event_id, :blob_key, :status, :created_at);
        """
        with dbase.get_db_connection() as conn:
            conn.execute(
                query,
                {
                    "job_id": job.job_id,
                    "event_id": job.event_id,
                    "blob_key": job.blob_key,
                    "status": job.status.value,
                    "created_at": job.created_at,
                },
            )
        conn.close()
        logger.debug("Created OCR job %s for %s", job.job_id, blob_key)
        return job

    def _transition(
        self,
        dbase: "database.DBase",
        from_status: JobStatus,
        to_status: JobStatus,
        values: dict[str, Any],
    ) -> None:
        """Move the job to a new status if it is still in from_status."""
        assignments = "".join(f", {col} = :{col}" for col in values)
        query = f"""
                UPDATE ocr_jobs
                   SET status = :to_status{assignments}
                 WHERE job_id = :job_id AND status = :from_status;
        """
        params = {
            **values,
            "job_id": self.job_id,
            "from_status": from_status.value,
            "to_status": to_status.value,
        }
        with dbase.get_db_connection() as conn:
            cursor = conn.execute(query, params)
        rowcount = cursor.rowcount
        conn.close()
        if rowcount != 1:
            raise errors.JobStateError(
                f"OCR job {self.job_id} cannot move from {self.status.value} "
                f"to {to_status.value}"
            )
        self.status = to_status
        for col, val in values.items():
            setattr(self, col, val)

    def mark_processing(self, dbase: "database.DBase") -> None:
        """Record that the vision model is about to be called."""
        self._transition(dbase, JobStatus.PENDING, JobStatus.PROCESSING, {})

    def mark_complete(
        self, dbase: "database.DBase", result: normalize.ExtractionResult
    ) -> None:
        """Store the extraction result."""
        from bridgeattend.model import database

        self._transition(
            dbase,
            JobStatus.PROCESSING,
            JobStatus.COMPLETE,
            {
                "result_json": json.dumps(result.to_dict()),
                "processed_at": database.utc_now(),
            },
        )

    def mark_failed(self, dbase: "database.DBase", message: str) -> None:
        """Store the reason extraction failed."""
        from bridgeattend.model import database

        self._transition(
            dbase,
            JobStatus.PROCESSING,
            JobStatus.FAILED,
            {"error_message": message, "processed_at": database.utc_now()},
        )

    @staticmethod
    def select(dbase: "database.DBase", job_id: str) -> Optional["OcrJob"]:
        """Get a job by ID, or None if it doesn't exist."""
        query = """
                SELECT job_id, event_id, blob_key, status, result_json,
                       error_message, created_at, processed_at
                  FROM ocr_jobs
                 WHERE job_id = :job_id;
        """
        conn = dbase.get_db_connection(as_dict=True)
        result = conn.execute(query, {"job_id": job_id}).fetchone()
        conn.close()
        if result:
            return OcrJob(**result)
        return None

    @classmethod
    def require(
        cls, dbase: "database.DBase", job_id: str, event_id: Optional[str] = None
    ) -> "OcrJob":
        """Get a job, raising NotFound if it is missing or for another event."""
        job = cls.select(dbase, job_id)
        if job is None or (event_id is not None and job.event_id != event_id):
            raise errors.NotFound.for_resource("OCR job", job_id)
        return job

    @staticmethod
    def get_for_event(dbase: "database.DBase", event_id: str) -> list["OcrJob"]:
        """Jobs for an event, newest first."""
        query = """
                SELECT job_id, event_id, blob_key, status, result_json,
                       error_message, created_at, processed_at
                  FROM ocr_jobs
                 WHERE event_id = :event_id
              ORDER BY created_at DESC, rowid DESC;
        """
        conn = dbase.get_db_connection(as_dict=True)
        jobs = [OcrJob(**row) for row in conn.execute(query, {"event_id": event_id})]
        conn.close()
        return jobs

    @staticmethod
    def status_counts(dbase: "database.DBase") -> dict[str, int]:
        """Number of jobs in each status."""
        query = """
                SELECT status, COUNT(*) AS total
                  FROM ocr_jobs
              GROUP BY status;
        """
        conn = dbase.get_db_connection(as_dict=True)
        counts = {status.value: 0 for status in JobStatus}
        for row in conn.execute(query):
            counts[row["status"]] = row["total"]
        conn.close()
        return counts
