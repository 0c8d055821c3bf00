"""Read the QR code printed in the corner of a sign-in sheet."""

import dataclasses
import json
import logging
from typing import Any, Optional

import cv2
import numpy as np


logger = logging.getLogger(__name__)

APP_NAME = "bridge-attendance"
"""Value of the `app` field in QR payloads printed by the sheet generator."""


@dataclasses.dataclass
class QrPayload:
    """Event details encoded on a sign-in sheet."""

    app: str
    event_id: str
    name: str
    date: str
    """YYYY-MM-DD"""
    teacher: str

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_text(cls, text: str) -> Optional["QrPayload"]:
        """Parse QR code text, or return None if it isn't one of our payloads."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict) or data.get("app") != APP_NAME:
            return None
        fields = [field.name for field in dataclasses.fields(cls)]
        if not all(isinstance(data.get(field), str) for field in fields):
            return None
        return cls(**{field: data[field] for field in fields})


def read_qr_text(image: bytes) -> Optional[str]:
    """Decode the first QR code found in an encoded image (JPEG, PNG...)."""
    buffer = np.frombuffer(image, dtype=np.uint8)
    detector = cv2.QRCodeDetector()
    try:
        img = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if img is None:
            logger.debug("Photo could not be decoded as an image.")
            return None
        qr_data, _bbox, _straight_code = detector.detectAndDecode(img)
    except cv2.error as err:
        logger.debug("QR code detection failed: %s", err)
        return None
    return qr_data or None


def read_payload(image: bytes) -> Optional[QrPayload]:
    """Decode and parse the sheet's QR code, if it can be read."""
    text = read_qr_text(image)
    if text is None:
        return None
    return QrPayload.from_text(text)
