"""Test the vision model client with a fake Anthropic client."""

import base64
import types

import anthropic
import httpx
import pytest

import rich  # noqa: F401

from bridgeattend import config, errors
from bridgeattend.extraction import vision


class FakeMessages:
    """Records calls to messages.create and returns a canned response."""

    def __init__(self, response=None, error=None) -> None:
        self.response = response
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _client(messages: FakeMessages) -> anthropic.Anthropic:
    return types.SimpleNamespace(messages=messages)  # type: ignore[return-value]


def _response(*blocks) -> types.SimpleNamespace:
    return types.SimpleNamespace(
        content=[types.SimpleNamespace(type=btype, text=text) for btype, text in blocks]
    )


@pytest.fixture
def settings() -> config.Settings:
    return config.Settings(anthropic_api_key="test-key", vision_model="test-model")


def test_extract_sends_photo(settings: config.Settings) -> None:
    """The photo is sent base64 encoded and the reply text is returned."""
    # Arrange
    messages = FakeMessages(_response(("text", '{"confidence": 0.9}')))
    client = vision.ClaudeVision(settings, client=_client(messages))
    # Act
    text = client.extract(b"photo", "image/png")
    # Assert
    assert text == '{"confidence": 0.9}'
    call = messages.calls[0]
    assert call["model"] == "test-model"
    assert call["max_tokens"] == 4096
    assert call["system"] == vision.SYSTEM_PROMPT
    image_block, text_block = call["messages"][0]["content"]
    assert image_block["source"]["media_type"] == "image/png"
    assert base64.b64decode(image_block["source"]["data"]) == b"photo"
    assert text_block["text"] == vision.USER_PROMPT


def test_extract_skips_non_text_blocks(settings: config.Settings) -> None:
    # Arrange
    messages = FakeMessages(_response(("thinking", ""), ("text", "{}")))
    client = vision.ClaudeVision(settings, client=_client(messages))
    # Act / Assert
    assert client.extract(b"photo", "image/jpeg") == "{}"


def test_extract_no_text(settings: config.Settings) -> None:
    """A reply with no text is an extraction failure."""
    # Arrange
    messages = FakeMessages(_response())
    client = vision.ClaudeVision(settings, client=_client(messages))
    # Act / Assert
    with pytest.raises(errors.ExtractionFailure, match="No text content"):
        client.extract(b"photo", "image/jpeg")


def test_extract_api_error(settings: config.Settings) -> None:
    """API errors become extraction failures."""
    # Arrange
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    messages = FakeMessages(error=anthropic.APIConnectionError(request=request))
    client = vision.ClaudeVision(settings, client=_client(messages))
    # Act / Assert
    with pytest.raises(errors.ExtractionFailure, match="Anthropic API error"):
        client.extract(b"photo", "image/jpeg")


def test_extract_api_status_error(settings: config.Settings) -> None:
    """Status errors include the HTTP status code."""
    # Arrange
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(529, request=request)
    error = anthropic.APIStatusError("Overloaded", response=response, body=None)
    messages = FakeMessages(error=error)
    client = vision.ClaudeVision(settings, client=_client(messages))
    # Act / Assert
    with pytest.raises(errors.ExtractionFailure, match="529"):
        client.extract(b"photo", "image/jpeg")


def test_missing_api_key() -> None:
    """A client can't be made without an API key."""
    with pytest.raises(errors.InvalidInput):
        vision.ClaudeVision(config.Settings(anthropic_api_key=None))
