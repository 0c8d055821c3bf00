"""Test storing and reading sign-in sheet photos."""

import dataclasses
import pathlib

import pytest

import rich  # noqa: F401

from bridgeattend import config, errors, model
from bridgeattend.extraction import qr
from bridgeattend.features import scan


PHOTO = b"\xff\xd8\xff\xe0 not really a jpeg"


@pytest.fixture
def store(scan_settings: config.Settings) -> scan.PhotoStore:
    return scan.PhotoStore.from_settings(scan_settings)


def test_scan_sheet(
    full_dbase: model.DBase,
    scan_settings: config.Settings,
    store: scan.PhotoStore,
    sheet_vision,
) -> None:
    """A readable sheet gives a complete job with a normalized result."""
    # Act
    outcome = scan.scan_sheet(
        full_dbase,
        scan_settings,
        store,
        sheet_vision,
        "AAAA0002",
        PHOTO,
        "image/jpeg",
    )
    # Assert
    assert sheet_vision.calls == [(PHOTO, "image/jpeg")]
    assert outcome.status == "complete"
    assert outcome.error is None
    assert outcome.result is not None
    assert [line.name for line in outcome.result.attendance] == [
        "Alice Johnson",
        "Frank Black",
    ]
    assert outcome.result.attendance[0].seat == "N"
    assert outcome.result.qr_event_id == "AAAA0002"
    assert outcome.blob_key.startswith("AAAA0002/attendance-sheet/")
    assert outcome.blob_key.endswith(".jpg")
    assert store.get(outcome.blob_key) == PHOTO
    job = model.OcrJob.require(full_dbase, outcome.job.job_id, "AAAA0002")
    assert job.status == model.JobStatus.COMPLETE
    assert job.result == outcome.result
    assert outcome.to_dict()["ocr_job_id"] == job.job_id
    assert "error" not in outcome.to_dict()


@pytest.mark.parametrize(
    "reply",
    [
        errors.ExtractionFailure("Anthropic API error (529): overloaded"),
        "Sorry, I can't read this image.",
        RuntimeError("connection reset"),
    ],
)
def test_scan_failure_keeps_photo(
    full_dbase: model.DBase,
    scan_settings: config.Settings,
    store: scan.PhotoStore,
    make_vision,
    reply,
) -> None:
    """A failed extraction is recorded on the job and the photo is kept."""
    # Act
    outcome = scan.scan_sheet(
        full_dbase,
        scan_settings,
        store,
        make_vision(reply),
        "AAAA0002",
        PHOTO,
        "image/png",
    )
    # Assert
    assert outcome.status == "failed"
    assert outcome.result is None
    assert outcome.error
    assert outcome.to_dict()["error"] == outcome.error
    assert "result" not in outcome.to_dict()
    assert store.get(outcome.blob_key) == PHOTO
    assert outcome.blob_key.endswith(".png")
    job = model.OcrJob.require(full_dbase, outcome.job.job_id)
    assert job.status == model.JobStatus.FAILED
    assert job.error_message == outcome.error


def test_scan_bad_json_message(
    full_dbase: model.DBase,
    scan_settings: config.Settings,
    store: scan.PhotoStore,
    make_vision,
) -> None:
    """The failure message includes the start of the model's reply."""
    # Act
    outcome = scan.scan_sheet(
        full_dbase,
        scan_settings,
        store,
        make_vision("no json here"),
        "AAAA0002",
        PHOTO,
        "image/jpeg",
    )
    # Assert
    assert outcome.error is not None
    assert "Failed to parse OCR result as JSON" in outcome.error
    assert "no json here" in outcome.error


@pytest.mark.parametrize(
    "event_id, photo, media_type, changes, error",
    [
        ("FFFFFFFF", PHOTO, "image/jpeg", {}, errors.NotFound),
        ("AAAA0002", PHOTO, "image/tiff", {}, errors.InvalidInput),
        ("AAAA0002", b"", "image/jpeg", {}, errors.InvalidInput),
        ("AAAA0002", b"x" * 1025, "image/jpeg", {}, errors.InvalidInput),
        (
            "AAAA0002",
            PHOTO,
            "image/jpeg",
            {"anthropic_api_key": None},
            errors.InvalidInput,
        ),
    ],
)
def test_scan_rejected(
    full_dbase: model.DBase,
    scan_settings: config.Settings,
    store: scan.PhotoStore,
    sheet_vision,
    event_id,
    photo,
    media_type,
    changes,
    error,
) -> None:
    """Bad requests are rejected before the photo is stored or a job made."""
    # Arrange
    settings = dataclasses.replace(scan_settings, **changes)
    # Act / Assert
    with pytest.raises(error):
        scan.scan_sheet(
            full_dbase, settings, store, sheet_vision, event_id, photo, media_type
        )
    assert sheet_vision.calls == []
    assert model.OcrJob.status_counts(full_dbase)["pending"] == 0
    assert not store.root.exists() or not any(store.root.rglob("*.*"))


def test_qr_fills_missing_qr_data(
    monkeypatch: pytest.MonkeyPatch, make_vision
) -> None:
    """A QR code read from the photo is used when the model didn't read one."""
    # Arrange
    payload = qr.QrPayload(
        app=qr.APP_NAME,
        event_id="AAAA0002",
        name="Intro to Bridge",
        date="2025-01-14",
        teacher="Rick",
    )
    monkeypatch.setattr(qr, "read_payload", lambda image: payload)
    # Act
    result = scan.extract(make_vision({"attendance": []}), PHOTO, "image/jpeg")
    # Assert
    assert result.qr_data == payload.to_dict()
    assert result.qr_event_id == "AAAA0002"


@pytest.mark.parametrize(
    "file_name, media_type",
    [
        ("sheet.jpg", "image/jpeg"),
        ("sheet.JPEG", "image/jpeg"),
        ("sheet.png", "image/png"),
        ("sheet.webp", "image/webp"),
        ("sheet.gif", "image/gif"),
    ],
)
def test_media_type_for(file_name: str, media_type: str) -> None:
    assert scan.media_type_for(pathlib.Path(file_name)) == media_type


def test_media_type_for_unsupported() -> None:
    with pytest.raises(errors.InvalidInput):
        scan.media_type_for(pathlib.Path("sheet.pdf"))


def test_photo_store_rejects_escaping_keys(store: scan.PhotoStore) -> None:
    """Keys can't point outside the store."""
    # Act / Assert
    with pytest.raises(errors.InvalidInput):
        store.get("../../etc/passwd")
    with pytest.raises(errors.NotFound):
        store.get("AAAA0002/attendance-sheet/missing.jpg")
