"""Ask a Claude vision model to read a photographed sign-in sheet."""

import base64
import logging
from typing import Protocol

import anthropic

from bridgeattend import config, errors


logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """\
You are an OCR system that extracts structured data from photographed bridge \
class attendance sheets. You return ONLY valid JSON, no markdown fencing, no \
commentary.

The attendance sheets come in two formats:

FORMAT 1 - "blank" (table/seat grouping):
- Left column shows "Table 1", "Table 2", etc.
- Under each table label are four rows for seats: North, South, East, West
- Students write their name on the line next to their seat label
- There is NO separate table or seat column. The table number and seat are \
determined by the grouping structure

FORMAT 2 - "roster" (pre-printed names):
- Has column headers: NAME, TABLE, SEAT
- Pre-printed student names with a checkbox (square) to the left
- A checked checkbox means the student is present
- TABLE column: students write in their table number
- SEAT column: shows "N  S  E  W" and students circle one letter
- After the roster names, there may be blank rows where additional students \
wrote their names

BOTH formats may have:
- A QR code in the top-left corner encoding JSON with fields: app, event_id, \
name, date, teacher
- A "JOIN MY MAILING LIST" section at the bottom with Name/Email rows
- A header showing "CLASS ATTENDANCE", the class name, date, instructor, and \
event ID

RULES:
- For blank forms: the table_number comes from the "Table N" label, and the \
seat comes from the row label (North=N, South=S, East=E, West=W)
- For roster forms: is_checked is true if the checkbox has any mark inside it \
(checkmark, X, fill)
- Only include rows where a name is present (skip completely empty rows)
- For seat values, always normalize to single letter: N, S, E, or W
- If handwriting is unclear, provide your best guess and set confidence lower
- Email addresses: read carefully, common domains are gmail.com, yahoo.com, \
hotmail.com, outlook.com
- If the QR code is not readable or not visible, set qr_data to null"""

USER_PROMPT = """\
Analyze this attendance sheet photograph and extract all data. Return a \
single JSON object with this exact structure:

{
  "qr_data": {"app":"...","event_id":"...","name":"...","date":"...",\
"teacher":"..."} or null,
  "form_type": "blank" or "roster",
  "attendance": [
    {"name": "Student Name", "table_number": 1, "seat": "N", \
"is_checked": true, "confidence": 0.95}
  ],
  "mailing_list": [
    {"name": "Person Name", "email": "email@example.com", "confidence": 0.9}
  ],
  "confidence": 0.92,
  "notes": "Any issues, e.g. blurry areas, unclear handwriting"
}

Important:
- For "blank" form type, is_checked should be null for all entries
- For "roster" form type, only include entries where is_checked is true OR \
where a name was handwritten in a blank row
- Set confidence between 0 and 1 for each entry and overall
- Omit entries with no name written
- Return ONLY the JSON object, nothing else"""


class VisionClient(Protocol):
    """Anything that can turn a sheet photo into the model's raw reply."""

    def extract(self, image: bytes, media_type: str) -> str: ...


class ClaudeVision:
    """Read sign-in sheets with the Anthropic Messages API."""

    settings: config.Settings
    client: anthropic.Anthropic

    def __init__(
        self, settings: config.Settings, client: anthropic.Anthropic | None = None
    ) -> None:
        """Create an API client from the settings unless one is supplied."""
        if client is None and not settings.anthropic_api_key:
            raise errors.InvalidInput("ANTHROPIC_API_KEY is not configured")
        self.settings = settings
        self.client = client or anthropic.Anthropic(api_key=settings.anthropic_api_key)

    def extract(self, image: bytes, media_type: str) -> str:
        """Send the photo to the model and return the text of its reply.

        Raises:
            ExtractionFailure: The API call failed or the reply had no text.
        """
        logger.info(
            "Sending %d byte %s photo to %s",
            len(image),
            media_type,
            self.settings.vision_model,
        )
        try:
            response = self.client.messages.create(
                model=self.settings.vision_model,
                max_tokens=self.settings.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": media_type,
                                    "data": base64.b64encode(image).decode("ascii"),
                                },
                            },
                            {"type": "text", "text": USER_PROMPT},
                        ],
                    }
                ],
            )
        except anthropic.APIStatusError as err:
            raise errors.ExtractionFailure(
                f"Anthropic API error ({err.status_code}): {err.message}"
            )
        except anthropic.APIError as err:
            raise errors.ExtractionFailure(f"Anthropic API error: {err}")
        for block in response.content:
            if block.type == "text" and block.text:
                return block.text
        raise errors.ExtractionFailure("No text content in Anthropic API response")
