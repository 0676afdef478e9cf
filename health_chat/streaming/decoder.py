"""Line decoding for the chat event stream.

Text arrives in arbitrary chunks. Lines are only parsed once their newline
has arrived, so a record split across chunks is decoded exactly once.
"""

import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass

from pydantic import ValidationError

from health_chat.models.schemas import (
    CompleteEvent,
    DeltaEvent,
    FailedEvent,
    StreamEvent,
    StreamRecord,
)

logger = logging.getLogger(__name__)

EVENT_PREFIX = "data: "


@dataclass
class DecodeStats:
    """Counters for lines seen while decoding one stream.

    Attributes:
        lines: Complete lines processed.
        records: Lines that produced an event.
        ignored: Lines without the event prefix, including keep-alives.
        malformed: Prefixed lines whose payload was not a known record.
    """

    lines: int = 0
    records: int = 0
    ignored: int = 0
    malformed: int = 0


class LineBuffer:
    """Accumulates text and releases only newline-terminated lines."""

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, text: str) -> list[str]:
        *lines, self._pending = (self._pending + text).split("\n")
        return lines

    def clear(self) -> str:
        remainder, self._pending = self._pending, ""
        return remainder


def parse_record(payload: str) -> StreamEvent | None:
    """Convert a record payload into an event.

    Args:
        payload: Text following the event prefix.

    Returns:
        The decoded event, or None if the payload is not a recognized record.
    """
    try:
        record = StreamRecord.model_validate_json(payload)
    except ValidationError as e:
        logger.debug(f"Unparseable stream record {payload!r}: {e.error_count()} errors")
        return None

    if record.error:
        return FailedEvent(message=record.error)
    if record.done is True:
        return CompleteEvent()
    if record.chunk is not None:
        return DeltaEvent(text=record.chunk)

    logger.debug(f"Unrecognized stream record: {payload!r}")
    return None


class StreamDecoder:
    """Turns raw text chunks into stream events."""

    def __init__(self) -> None:
        self.stats = DecodeStats()
        self._buffer = LineBuffer()

    def feed(self, text: str) -> list[StreamEvent]:
        """Decode every line completed by this chunk."""
        events: list[StreamEvent] = []
        for line in self._buffer.feed(text):
            event = self._decode_line(line)
            if event is not None:
                events.append(event)
        return events

    def finish(self) -> None:
        """Discard any unterminated line left at end of stream."""
        remainder = self._buffer.clear()
        if remainder:
            logger.debug(f"Discarding unterminated line at end of stream: {remainder!r}")

    def _decode_line(self, line: str) -> StreamEvent | None:
        self.stats.lines += 1
        if not line.startswith(EVENT_PREFIX):
            self.stats.ignored += 1
            return None

        event = parse_record(line[len(EVENT_PREFIX):])
        if event is None:
            self.stats.malformed += 1
            logger.debug(f"Skipped malformed line ({self.stats.malformed} so far)")
            return None

        self.stats.records += 1
        return event


async def iter_events(
    chunks: AsyncIterable[str],
    decoder: StreamDecoder | None = None,
) -> AsyncIterator[StreamEvent]:
    """Pull decoded events from a stream of text chunks.

    Args:
        chunks: Text as delivered by the transport.
        decoder: Optional decoder whose stats the caller wants to observe.

    Yields:
        Events in the order their lines appear in the stream.
    """
    decoder = decoder or StreamDecoder()
    async for text in chunks:
        for event in decoder.feed(text):
            yield event
    decoder.finish()
