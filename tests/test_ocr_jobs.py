"""Test the OCR job state machine."""

import pytest

import rich  # noqa: F401

from bridgeattend import errors, model
from bridgeattend.extraction import normalize


@pytest.fixture
def job(full_dbase: model.DBase) -> model.OcrJob:
    return model.OcrJob.create(full_dbase, "AAAA0002", "AAAA0002/sheet/1.jpg")


def test_create_job(full_dbase: model.DBase, job: model.OcrJob) -> None:
    """New jobs are pending with no result or error."""
    # Act
    selected = model.OcrJob.require(full_dbase, job.job_id, "AAAA0002")
    # Assert
    assert selected.status == model.JobStatus.PENDING
    assert selected.result is None
    assert selected.error_message is None
    assert selected.processed_at is None
    assert selected.blob_key == "AAAA0002/sheet/1.jpg"


def test_complete_job(
    full_dbase: model.DBase, job: model.OcrJob, sheet_reply
) -> None:
    """pending -> processing -> complete stores the result."""
    # Arrange
    result = normalize.normalize(sheet_reply)
    # Act
    job.mark_processing(full_dbase)
    job.mark_complete(full_dbase, result)
    # Assert
    selected = model.OcrJob.require(full_dbase, job.job_id)
    assert selected.status == model.JobStatus.COMPLETE
    assert selected.result == result
    assert selected.processed_at is not None
    assert selected.error_message is None
    assert selected.to_dict()["result"] == result.to_dict()


def test_fail_job(full_dbase: model.DBase, job: model.OcrJob) -> None:
    """pending -> processing -> failed stores the message."""
    # Act
    job.mark_processing(full_dbase)
    job.mark_failed(full_dbase, "Anthropic API error (500): oops")
    # Assert
    selected = model.OcrJob.require(full_dbase, job.job_id)
    assert selected.status == model.JobStatus.FAILED
    assert selected.error_message == "Anthropic API error (500): oops"
    assert selected.result is None
    assert selected.to_dict()["result"] is None


def test_complete_without_processing(full_dbase: model.DBase, job: model.OcrJob):
    """A pending job can't be completed."""
    # Act / Assert
    with pytest.raises(errors.JobStateError):
        job.mark_complete(full_dbase, normalize.normalize({}))
    selected = model.OcrJob.require(full_dbase, job.job_id)
    assert selected.status == model.JobStatus.PENDING


@pytest.mark.parametrize("final_status", ["complete", "failed"])
def test_terminal_states(full_dbase: model.DBase, job: model.OcrJob, final_status):
    """Complete and failed jobs never change again."""
    # Arrange
    job.mark_processing(full_dbase)
    if final_status == "complete":
        job.mark_complete(full_dbase, normalize.normalize({}))
    else:
        job.mark_failed(full_dbase, "bad photo")
    # Act / Assert
    with pytest.raises(errors.JobStateError):
        job.mark_processing(full_dbase)
    with pytest.raises(errors.JobStateError):
        job.mark_failed(full_dbase, "again")
    with pytest.raises(errors.JobStateError):
        job.mark_complete(full_dbase, normalize.normalize({}))
    selected = model.OcrJob.require(full_dbase, job.job_id)
    assert selected.status == final_status


def test_stale_copy_cannot_transition(full_dbase: model.DBase, job: model.OcrJob):
    """A second copy of a job loses the race to start processing."""
    # Arrange
    other_copy = model.OcrJob.require(full_dbase, job.job_id)
    job.mark_processing(full_dbase)
    # Act / Assert
    with pytest.raises(errors.JobStateError):
        other_copy.mark_processing(full_dbase)


def test_require_job_for_other_event(full_dbase: model.DBase, job: model.OcrJob):
    """A job is not found through a different event."""
    # Act / Assert
    with pytest.raises(errors.NotFound):
        model.OcrJob.require(full_dbase, job.job_id, "AAAA0001")
    with pytest.raises(errors.NotFound):
        model.OcrJob.require(full_dbase, "no-such-job")


def test_jobs_for_event(full_dbase: model.DBase, job: model.OcrJob) -> None:
    """Jobs are listed newest first and counted by status."""
    # Arrange
    second = model.OcrJob.create(full_dbase, "AAAA0002", "AAAA0002/sheet/2.jpg")
    second.mark_processing(full_dbase)
    # Act
    jobs = model.OcrJob.get_for_event(full_dbase, "AAAA0002")
    counts = model.OcrJob.status_counts(full_dbase)
    # Assert
    assert [j.job_id for j in jobs] == [second.job_id, job.job_id]
    assert model.OcrJob.get_for_event(full_dbase, "AAAA0001") == []
    assert counts == {"pending": 1, "processing": 1, "complete": 0, "failed": 0}
