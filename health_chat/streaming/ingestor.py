"""Stream ingestion for one assistant turn.

Drives a single POST to the streaming chat endpoint, decodes the response
into events and applies them to the transcript's open turn.

Failure handling:

1. **Transport errors** - connection refused, reset, timeouts and non-success
   statuses. The open turn is closed with the apology message.

2. **Protocol errors** - a record carrying an ``error`` field. Same outcome as
   a transport error; only the log line differs.

3. **Framing noise** - lines that do not decode to a known record. Counted in
   ``stats`` and skipped.

End of transport without a ``done`` record counts as normal completion.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing, asynccontextmanager

import httpx
from pydantic import ValidationError

from health_chat.config import ClientConfig, get_client_config
from health_chat.models.schemas import (
    CompleteEvent,
    DeltaEvent,
    FailedEvent,
    HistoryMessage,
    IngestState,
    StreamEvent,
    StreamRequest,
)
from health_chat.streaming.decoder import DecodeStats, StreamDecoder, iter_events
from health_chat.transcript.store import TranscriptStore, TurnHandle, TurnStateError

logger = logging.getLogger(__name__)


class StreamIngestor:
    """Consumes one streamed response into an open transcript turn.

    An ingestor runs at most one request. Create a new one per turn.
    """

    def __init__(
        self,
        store: TranscriptStore,
        config: ClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the ingestor.

        Args:
            store: Transcript holding the open turn.
            config: Optional client configuration.
                    Loads from environment if not provided.
            client: Optional shared HTTP client. A short-lived client is
                    created per request when omitted.
        """
        self._store = store
        self._config = config or get_client_config()
        self._client = client
        self._decoder = StreamDecoder()
        self._handle: TurnHandle | None = None
        self._state = IngestState.IDLE

    @property
    def state(self) -> IngestState:
        return self._state

    @property
    def stats(self) -> DecodeStats:
        return self._decoder.stats

    async def run(
        self,
        handle: TurnHandle,
        message: str,
        history: Sequence[HistoryMessage] = (),
    ) -> IngestState:
        """Stream the assistant reply for ``message`` into the turn at ``handle``.

        Args:
            handle: Handle of the open assistant turn.
            message: The new user message.
            history: Prior turns sent as context.

        Returns:
            The terminal state reached.

        Raises:
            TurnStateError: If this ingestor has already run.
        """
        if self._state is not IngestState.IDLE:
            raise TurnStateError(f"Ingestor already used (state: {self._state.value})")

        try:
            request = StreamRequest(message=message, history=list(history))
        except ValidationError as e:
            logger.error(f"Invalid stream request: {e.error_count()} errors")
            if self._store.is_open(handle):
                self._store.close_turn(handle, self._config.apology_message)
            self._state = IngestState.FAILED
            return self._state

        self._handle = handle
        self._state = IngestState.OPENING

        try:
            async with self._client_scope() as client, client.stream(
                "POST",
                self._config.stream_url,
                json=request.model_dump(mode="json"),
                headers={"Accept": "text/event-stream"},
            ) as response:
                response.raise_for_status()
                events = iter_events(self._read_text(response), self._decoder)
                async with aclosing(events):
                    async for event in events:
                        if not self._is_current():
                            break
                        self._apply(handle, event)
                        if self._state.is_terminal:
                            break

            if not self._state.is_terminal:
                if self._is_current():
                    logger.info("Stream closed by peer, treating as completion")
                    self._store.close_turn(handle)
                    self._state = IngestState.COMPLETED
                else:
                    logger.info("Turn no longer open, abandoning stream")
                    self._state = IngestState.CANCELLED

        except httpx.HTTPStatusError as e:
            self._fail(f"HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            self._fail(f"Connection failed: {e}")
        except asyncio.CancelledError:
            self._state = IngestState.CANCELLED
            raise
        finally:
            self._handle = None

        if self.stats.malformed:
            logger.warning(f"Skipped {self.stats.malformed} malformed stream records")
        return self._state

    def cancel(self) -> None:
        """Stop applying events. The open turn is left untouched."""
        if self._state.is_terminal:
            return
        logger.info(f"Cancelling stream in state {self._state.value}")
        self._state = IngestState.CANCELLED

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._config.timeout) as client:
            yield client

    async def _read_text(self, response: httpx.Response) -> AsyncIterator[str]:
        async for text in response.aiter_text():
            if self._state is IngestState.OPENING:
                self._state = IngestState.STREAMING
                logger.debug("First bytes received, streaming")
            yield text

    def _is_current(self) -> bool:
        return (
            self._handle is not None
            and not self._state.is_terminal
            and self._store.is_open(self._handle)
        )

    def _apply(self, handle: TurnHandle, event: StreamEvent) -> None:
        if isinstance(event, DeltaEvent):
            self._store.append_delta(handle, event.text)
        elif isinstance(event, CompleteEvent):
            self._store.close_turn(handle)
            self._state = IngestState.COMPLETED
            logger.info("Stream completed")
        elif isinstance(event, FailedEvent):
            logger.warning(f"Server reported stream error: {event.message}")
            self._store.close_turn(handle, self._config.apology_message)
            self._state = IngestState.FAILED

    def _fail(self, reason: str) -> None:
        logger.error(f"Stream transport error in state {self._state.value}: {reason}")
        if self._state.is_terminal:
            return
        if self._is_current():
            self._store.close_turn(self._handle, self._config.apology_message)
        self._state = IngestState.FAILED
