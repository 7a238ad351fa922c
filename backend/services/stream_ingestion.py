"""
Stream Ingestion Loop - Drive an answer byte stream into a single ChatTurn

Reads one chunk at a time, decodes UTF-8 incrementally, detects
event-stream vs. plain framing from the content-type, and appends every
increment to the bound turn. Every failure ends in the turn being marked
failed; nothing is raised to the caller except cancellation.
"""

from __future__ import annotations

import asyncio
import codecs
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncContextManager, Callable, Mapping, NamedTuple, Optional, Protocol

from models.chat import ChatTurn, TurnStatus
from services.errors import DecodeError, InvalidTransition, StreamStalled, StreamUnsupported, TransportError
from services.turn_state import append_answer, is_active, mark_complete, mark_failed

EVENT_STREAM_TYPE = "text/event-stream"
CANCELLED_MESSAGE = "Request cancelled"

_LINE_BREAK = re.compile(r"\r?\n")


class FramingMode(str, Enum):
    """Line structure imposed on the byte stream"""

    EVENT_STREAM = "event-stream"
    PLAIN = "plain"


class StreamChunk(NamedTuple):
    """Result of one read: the bytes received and whether the stream ended"""

    value: bytes
    done: bool


class ByteStreamReader(Protocol):
    async def read(self) -> StreamChunk: ...


@dataclass
class StreamResponse:
    """Transport-neutral view of an answer response"""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    reader: Optional[ByteStreamReader] = None


def header_value(headers: Mapping[str, str], name: str) -> str:
    """Case-insensitive header lookup that also works on plain dicts"""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return ""


def detect_framing(content_type: str) -> FramingMode:
    """Pick the framing mode; anything that is not an event stream is plain text"""
    content_type = (content_type or "").lower()
    if EVENT_STREAM_TYPE in content_type:
        return FramingMode.EVENT_STREAM
    if not content_type.startswith("text/"):
        print(f"[StreamIngestion] Unrecognized content-type '{content_type}', treating stream as plain text")
    return FramingMode.PLAIN


def strip_data_prefix(line: str) -> str:
    """Drop a leading 'data:' field name and one following space"""
    if line.startswith("data:"):
        line = line[5:]
        if line.startswith(" "):
            line = line[1:]
    return line


class EventStreamFramer:
    """Carry-over buffer that turns event-stream text into complete line payloads"""

    def __init__(self):
        self._carry = ""

    def feed(self, text: str) -> list[str]:
        lines = _LINE_BREAK.split(self._carry + text)
        self._carry = lines.pop()
        return [strip_data_prefix(line) for line in lines if line]

    def flush(self) -> list[str]:
        """Release a final line that arrived without a trailing newline"""
        line, self._carry = self._carry.rstrip("\r"), ""
        return [strip_data_prefix(line)] if line else []


class StreamIngestionLoop:
    """Consume one answer stream on behalf of exactly one pending turn"""

    def __init__(
        self,
        turn: ChatTurn,
        on_increment: Callable[[ChatTurn], None] | None = None,
        idle_timeout: float | None = None,
    ):
        if turn.status != TurnStatus.PENDING:
            raise InvalidTransition(f"Turn {turn.id} is {turn.status.value}, expected pending")
        self.turn = turn
        self.on_increment = on_increment
        self.idle_timeout = idle_timeout or None

    async def run(self, opener: AsyncContextManager[StreamResponse]) -> ChatTurn:
        """Open the response, drain it and leave the turn in a terminal state"""
        try:
            async with opener as response:
                await self.consume(response)
        except asyncio.CancelledError:
            self._fail(CANCELLED_MESSAGE)
            raise
        except Exception as e:
            self._fail(str(e) or type(e).__name__)
        else:
            mark_complete(self.turn)
            print(f"[StreamIngestion] Turn {self.turn.id} complete (length: {len(self.turn.answer_text)} chars)")
            self._notify()
        return self.turn

    async def consume(self, response: StreamResponse) -> None:
        """Read the response to exhaustion, raising IngestionError on any fault"""
        if not 200 <= response.status < 300:
            raise TransportError(f"Request failed with status {response.status}")
        if response.reader is None:
            raise StreamUnsupported("Streaming not supported for this response")

        framing = detect_framing(header_value(response.headers, "content-type"))
        framer = EventStreamFramer() if framing == FramingMode.EVENT_STREAM else None
        decoder = codecs.getincrementaldecoder("utf-8")()
        print(f"[StreamIngestion] Turn {self.turn.id} streaming ({framing.value} framing)")

        while True:
            chunk = await self._read(response.reader)
            try:
                text = decoder.decode(chunk.value or b"", final=chunk.done)
            except UnicodeDecodeError as e:
                raise DecodeError(f"Malformed UTF-8 in response body: {e.reason}") from e

            if text:
                if framer is None:
                    self._append(text)
                else:
                    for payload in framer.feed(text):
                        self._append(payload)
            if chunk.done:
                break

        if framer is not None:
            for payload in framer.flush():
                self._append(payload)

    async def _read(self, reader: ByteStreamReader) -> StreamChunk:
        if self.idle_timeout is None:
            return await reader.read()
        try:
            return await asyncio.wait_for(reader.read(), self.idle_timeout)
        except asyncio.TimeoutError:
            raise StreamStalled(f"Stream stalled: no data received for {self.idle_timeout:g} seconds") from None

    def _append(self, text: str) -> None:
        if not text:
            return
        append_answer(self.turn, text)
        self._notify()

    def _fail(self, reason: str) -> None:
        if not is_active(self.turn):
            return
        print(f"[StreamIngestion] Turn {self.turn.id} failed: {reason}")
        mark_failed(self.turn, f"Error: {reason}")
        self._notify()

    def _notify(self) -> None:
        if self.on_increment is not None:
            self.on_increment(self.turn)
