"""Pydantic models for the chat wire format and transcript.

Provides validation for outgoing requests and incoming stream records, and
immutable views of the transcript for presentation layers.

Models:
    - Role, IngestState: enumerations for turns and request lifecycle
    - TurnSnapshot: frozen copy of one conversation turn
    - HistoryMessage, StreamRequest: outgoing request payload
    - StreamRecord: JSON record carried by one stream line
    - DeltaEvent, CompleteEvent, FailedEvent: decoded stream events
    - AnalysisResult: document analysis response
"""

from health_chat.models.schemas import (
    AnalysisResult,
    CompleteEvent,
    DeltaEvent,
    FailedEvent,
    HistoryMessage,
    IngestState,
    Role,
    StreamEvent,
    StreamRecord,
    StreamRequest,
    TurnSnapshot,
)

__all__ = [
    "AnalysisResult",
    "CompleteEvent",
    "DeltaEvent",
    "FailedEvent",
    "HistoryMessage",
    "IngestState",
    "Role",
    "StreamEvent",
    "StreamRecord",
    "StreamRequest",
    "TurnSnapshot",
]
