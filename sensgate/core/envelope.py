"""Chat-completion envelope decoding, only as deep as text extraction needs."""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sensgate.core.errors import EnvelopeDecodeError

_NON_TEXT_PART_HINTS = ("image", "audio", "video", "file")
_SSE_DONE = "[DONE]"


def _is_non_text_part(part: dict) -> bool:
    ptype = str(part.get("type", "")).lower()
    if any(hint in ptype for hint in _NON_TEXT_PART_HINTS):
        return True
    return any(key in part for key in ("image_url", "input_image", "input_audio", "file"))


def flatten_content(content: Any) -> str:
    """Plain-text form of a message content; non-text parts contribute nothing."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(flatten_content(part) for part in content)
    if isinstance(content, dict):
        if _is_non_text_part(content):
            return ""
        text = content.get("text")
        if isinstance(text, str):
            return text
        return flatten_content(content.get("content"))
    return ""


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: Any = None
    content: Any = None

    def text(self) -> str:
        return flatten_content(self.content)


class ChatRequestEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    model: Any = ""
    # 只有 JSON true 视为流式，1、"true" 等按非流式处理
    stream: Any = False
    messages: list[ChatMessage] = Field(default_factory=list)
    # /v1/completions 的 prompt：字符串或字符串列表
    prompt: Any = None

    @property
    def model_name(self) -> str:
        return self.model if isinstance(self.model, str) else ""

    @property
    def is_stream(self) -> bool:
        return self.stream is True

    def texts(self) -> Iterator[str]:
        for message in self.messages:
            yield message.text()
        if isinstance(self.prompt, str):
            yield self.prompt
        elif isinstance(self.prompt, list):
            for item in self.prompt:
                if isinstance(item, str):
                    yield item


class ChoiceMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: Any = None


class ChatChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: Any = 0
    message: ChoiceMessage | None = None
    delta: ChoiceMessage | None = None
    text: Any = None

    def output_text(self) -> str:
        for part in (self.message, self.delta):
            if part is not None:
                content = flatten_content(part.content)
                if content:
                    return content
        return self.text if isinstance(self.text, str) else ""


class ChatResponseEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    choices: list[ChatChoice] = Field(default_factory=list)

    def texts(self) -> Iterator[str]:
        for choice in self.choices:
            yield choice.output_text()


def _load_object(raw: bytes | str, what: str) -> dict:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise EnvelopeDecodeError(f"{what} is not valid json: {exc}") from exc
    if not isinstance(data, dict):
        raise EnvelopeDecodeError(f"{what} is not a json object")
    return data


def decode_request(raw: bytes) -> ChatRequestEnvelope:
    data = _load_object(raw, "request body")
    try:
        return ChatRequestEnvelope.model_validate(data)
    except ValidationError as exc:
        raise EnvelopeDecodeError(f"unexpected request shape: {exc.error_count()} error(s)") from exc


def request_is_stream(raw: bytes) -> bool:
    """Streaming decision shared by the filter and the relay; undecodable bodies are not streams."""
    try:
        return decode_request(raw).is_stream
    except EnvelopeDecodeError:
        return False


def decode_response(raw: bytes) -> ChatResponseEnvelope:
    data = _load_object(raw, "response body")
    try:
        return ChatResponseEnvelope.model_validate(data)
    except ValidationError as exc:
        raise EnvelopeDecodeError(f"unexpected response shape: {exc.error_count()} error(s)") from exc


def extract_sse_data_payload(line: bytes) -> str | None:
    if not line:
        return None
    stripped = line.strip()
    if not stripped.startswith(b"data:"):
        return None
    return stripped[5:].strip().decode("utf-8", errors="replace")


def looks_like_sse(body: bytes, content_type: str = "") -> bool:
    if "text/event-stream" in content_type.lower():
        return True
    return body.lstrip().startswith(b"data:")


def sse_choice_texts(body: bytes) -> dict[int, str]:
    """Concatenate streamed delta text per choice index from a buffered SSE body.

    Events that do not decode are skipped.
    """
    merged: dict[int, list[str]] = {}
    for line in body.splitlines():
        payload = extract_sse_data_payload(line)
        if not payload or payload == _SSE_DONE:
            continue
        try:
            event = decode_response(payload.encode("utf-8"))
        except EnvelopeDecodeError:
            continue
        for position, choice in enumerate(event.choices):
            index = choice.index if isinstance(choice.index, int) else position
            text = choice.output_text()
            if text:
                merged.setdefault(index, []).append(text)
    return {index: "".join(parts) for index, parts in merged.items()}
