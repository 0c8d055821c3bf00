"""Store a photographed sign-in sheet and read it with the vision model.

Storing the photo and reading it are separate steps. If reading fails, the
failure is recorded on the OCR job and the scan still returns normally, so
the photo is never lost.
"""

import dataclasses
import logging
import pathlib
import time
import uuid
from typing import Any, Optional

from bridgeattend import config, errors, model
from bridgeattend.extraction import normalize, qr, vision


logger = logging.getLogger(__name__)

MEDIA_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}
EXTENSION_MEDIA_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def media_type_for(path: pathlib.Path) -> str:
    """Guess a photo's media type from its file extension."""
    media_type = EXTENSION_MEDIA_TYPES.get(path.suffix.lower())
    if media_type is None:
        raise errors.InvalidInput(
            f"Unsupported image file: {path.name}. "
            f"Allowed: {', '.join(EXTENSION_MEDIA_TYPES)}"
        )
    return media_type


class PhotoStore:
    """Keep photos in a folder, one subfolder per event."""

    root: pathlib.Path

    def __init__(self, root: pathlib.Path) -> None:
        self.root = root

    @classmethod
    def from_settings(cls, settings: config.Settings) -> "PhotoStore":
        return cls(settings.photo_folder)

    def put(self, event_id: str, kind: str, photo: bytes, media_type: str) -> str:
        """Save a photo and return its key."""
        ext = MEDIA_TYPE_EXTENSIONS.get(media_type, "jpg")
        key = f"{event_id}/{kind}/{int(time.time())}-{uuid.uuid4().hex[:8]}.{ext}"
        path = self.root / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(photo)
        return key

    def get(self, key: str) -> bytes:
        """Read a stored photo."""
        path = self.path_for(key)
        if not path.exists():
            raise errors.NotFound.for_resource("Photo", key)
        return path.read_bytes()

    def path_for(self, key: str) -> pathlib.Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise errors.InvalidInput(f"Invalid photo key: {key}")
        return path


@dataclasses.dataclass
class ScanOutcome:
    """What happened to an uploaded sheet."""

    job: model.OcrJob
    blob_key: str

    @property
    def status(self) -> str:
        return self.job.status.value

    @property
    def result(self) -> Optional[normalize.ExtractionResult]:
        return self.job.result

    @property
    def error(self) -> Optional[str]:
        return self.job.error_message

    def to_dict(self) -> dict[str, Any]:
        outcome: dict[str, Any] = {
            "ocr_job_id": self.job.job_id,
            "blob_key": self.blob_key,
            "status": self.status,
        }
        if self.result is not None:
            outcome["result"] = self.result.to_dict()
        if self.error is not None:
            outcome["error"] = self.error
        return outcome


def _validate_photo(
    settings: config.Settings, photo: bytes, media_type: str
) -> None:
    if not settings.anthropic_api_key:
        raise errors.InvalidInput("ANTHROPIC_API_KEY is not configured")
    if media_type not in MEDIA_TYPE_EXTENSIONS:
        raise errors.InvalidInput(
            f"Unsupported image type: {media_type}. "
            f"Allowed: {', '.join(MEDIA_TYPE_EXTENSIONS)}"
        )
    if not photo:
        raise errors.InvalidInput("photo file is required")
    if len(photo) > settings.max_photo_bytes:
        raise errors.InvalidInput(
            f"Image too large ({len(photo) / 1024 / 1024:.1f}MB). "
            f"Max: {settings.max_photo_bytes / 1024 / 1024:.0f}MB"
        )


def extract(
    vision_client: vision.VisionClient, photo: bytes, media_type: str
) -> normalize.ExtractionResult:
    """Read a photo with the vision model and normalize its reply.

    If the model couldn't read the QR code, try reading it with OpenCV.
    """
    raw = normalize.parse_model_output(vision_client.extract(photo, media_type))
    result = normalize.normalize(raw)
    if result.qr_data is None:
        payload = qr.read_payload(photo)
        if payload is not None:
            logger.info("QR code read from photo for event %s", payload.event_id)
            result.qr_data = payload.to_dict()
    return result


def scan_sheet(
    dbase: model.DBase,
    settings: config.Settings,
    store: PhotoStore,
    vision_client: vision.VisionClient,
    event_id: str,
    photo: bytes,
    media_type: str,
) -> ScanOutcome:
    """Save a sheet photo, then run one extraction job for it.

    Raises:
        NotFound: The event doesn't exist.
        InvalidInput: Scanning isn't configured or the photo is unusable.
    """
    model.Event.require(dbase, event_id)
    _validate_photo(settings, photo, media_type)

    blob_key = store.put(event_id, "attendance-sheet", photo, media_type)
    job = model.OcrJob.create(dbase, event_id, blob_key)
    job.mark_processing(dbase)
    try:
        result = extract(vision_client, photo, media_type)
    except Exception as err:
        message = str(err) or type(err).__name__
        logger.warning("OCR job %s failed: %s", job.job_id, message)
        job.mark_failed(dbase, message)
        return ScanOutcome(job, blob_key)

    qr_event_id = result.qr_event_id
    if qr_event_id is not None and qr_event_id != event_id:
        logger.warning(
            "Sheet QR code is for event %s but was uploaded to event %s",
            qr_event_id,
            event_id,
        )
    job.mark_complete(dbase, result)
    logger.info(
        "OCR job %s complete: %d attendance, %d mailing list entries",
        job.job_id,
        len(result.attendance),
        len(result.mailing_list),
    )
    return ScanOutcome(job, blob_key)
