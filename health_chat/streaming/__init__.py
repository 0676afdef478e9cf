"""Streaming response consumption for assistant turns.

Decodes the line-framed event stream and applies it to the transcript.

Responsibilities:
    - Line buffering across arbitrary chunk boundaries
    - ``data:`` record framing and validation
    - Request lifecycle from opening to completion or failure
    - Cancellation without further transcript mutation
"""

from health_chat.streaming.decoder import (
    EVENT_PREFIX,
    DecodeStats,
    LineBuffer,
    StreamDecoder,
    iter_events,
    parse_record,
)
from health_chat.streaming.ingestor import StreamIngestor

__all__ = [
    "EVENT_PREFIX",
    "DecodeStats",
    "LineBuffer",
    "StreamDecoder",
    "StreamIngestor",
    "iter_events",
    "parse_record",
]
