"""
Decoder for the worker stdout protocol.

A worker may interleave progress markers with its result:

    !+            one sub-step started
    !-            one sub-step finished
    {...}         anything else is part of the JSON result payload

Markers are only recognised as complete lines. Output arrives in chunks that
need not align with line boundaries, so an unterminated tail is held back until
the next chunk (or the end of the stream) decides what it is.
"""

import json
import logging
from enum import Enum

from pydantic import ValidationError

from .models import ParsedPayload, WorkerResult

logger = logging.getLogger(__name__)


class Marker(str, Enum):
    STEP_STARTED = "!+"
    STEP_FINISHED = "!-"


_MARKERS = {m.value.encode(): m for m in Marker}


class StreamProtocolParser:
    def __init__(self) -> None:
        self._pending = bytearray()
        self._payload = bytearray()
        self._closed: ParsedPayload | None = None

    def feed(self, chunk: bytes) -> list[Marker]:
        if self._closed is not None:
            raise RuntimeError("parser already closed")
        self._pending.extend(chunk)
        events: list[Marker] = []
        while True:
            nl = self._pending.find(b"\n")
            if nl < 0:
                break
            line = bytes(self._pending[:nl])
            del self._pending[: nl + 1]
            marker = _MARKERS.get(line)
            if marker is not None:
                events.append(marker)
            else:
                self._payload.extend(line)
                self._payload.extend(b"\n")
        return events

    @property
    def payload_text(self) -> str:
        return (bytes(self._payload) + bytes(self._pending)).decode("utf-8", errors="replace")

    def close(self) -> ParsedPayload:
        if self._closed is not None:
            return self._closed
        self._payload.extend(self._pending)
        self._pending.clear()
        raw = bytes(self._payload).decode("utf-8", errors="replace")
        self._closed = parse_payload(raw)
        return self._closed


def parse_payload(raw: str) -> ParsedPayload:
    if not raw.strip():
        return ParsedPayload(result=None, raw=raw, error="no content returned from test script")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.debug(f"Payload is not valid JSON: {e}")
        return ParsedPayload(result=None, raw=raw, error=f"invalid JSON: {e}")
    if not isinstance(data, dict):
        return ParsedPayload(
            result=None, raw=raw, error=f"expected a JSON object, got {type(data).__name__}"
        )
    try:
        result = WorkerResult.model_validate(data)
    except ValidationError as e:
        return ParsedPayload(result=None, raw=raw, error=f"unexpected payload shape: {e}")
    return ParsedPayload(result=result, raw=raw)
