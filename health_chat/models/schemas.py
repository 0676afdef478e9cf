from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Speaker of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


class IngestState(str, Enum):
    """Lifecycle of a single streamed request."""

    IDLE = "idle"
    OPENING = "opening"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (IngestState.COMPLETED, IngestState.FAILED, IngestState.CANCELLED)


class TurnSnapshot(BaseModel):
    """Immutable copy of one turn.

    Attributes:
        role: Who produced the turn.
        content: Text accumulated so far.
        created_at: When the turn was created.
        is_open: Whether the turn is still receiving streamed text.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    created_at: datetime
    is_open: bool = False


class HistoryMessage(BaseModel):
    """A role/content pair sent as conversation context."""

    role: Role
    content: str


class StreamRequest(BaseModel):
    """Request payload for the streaming chat endpoint.

    Attributes:
        message: The new user message.
        history: Prior turns in conversation order.
    """

    message: str = Field(..., min_length=1)
    history: list[HistoryMessage] = Field(default_factory=list)

    @field_validator("message", mode="before")
    @classmethod
    def strip_message(cls, v: str) -> str:
        """Strip whitespace from message before validation."""
        if isinstance(v, str):
            return v.strip()
        return v


class StreamRecord(BaseModel):
    """JSON payload carried by one ``data:`` line.

    Attributes:
        chunk: Text to append to the open turn.
        done: True once the server has finished the response.
        error: Server-reported failure reason.
    """

    chunk: str | None = None
    done: bool | None = None
    error: str | None = None


class DeltaEvent(BaseModel):
    """Additional text for the open turn."""

    model_config = ConfigDict(frozen=True)

    text: str


class CompleteEvent(BaseModel):
    """Normal end of stream."""

    model_config = ConfigDict(frozen=True)


class FailedEvent(BaseModel):
    """Server-reported error."""

    model_config = ConfigDict(frozen=True)

    message: str


StreamEvent = DeltaEvent | CompleteEvent | FailedEvent


class AnalysisResult(BaseModel):
    """Response from the document analysis endpoint.

    Attributes:
        analysis: Narrative analysis of the document.
        conditions: Conditions identified in the document.
        recommendations: Suggested next steps.
    """

    analysis: str
    conditions: list[str] = Field(default_factory=list)
    recommendations: str
