"""Chat session: the submission path for one conversation.

Owns a transcript and runs at most one streaming request at a time. Each
submission appends the user turn and an open assistant placeholder together,
then hands the placeholder's handle to a fresh ``StreamIngestor``.
"""

import asyncio
import logging
import uuid
from types import TracebackType

import httpx

from health_chat.config import ClientConfig, get_client_config
from health_chat.models.schemas import IngestState
from health_chat.streaming.ingestor import StreamIngestor
from health_chat.transcript.store import SnapshotListener, TranscriptStore, TurnStateError

logger = logging.getLogger(__name__)


class ChatSession:
    """Manages chat state for a user session."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        store: TranscriptStore | None = None,
        client: httpx.AsyncClient | None = None,
        on_change: SnapshotListener | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            config: Optional client configuration.
                    Loads from environment if not provided.
            store: Transcript to append to. A new one is created when omitted.
            client: Optional shared HTTP client passed to every ingestor.
            on_change: Callback fired with a snapshot after each transcript change.
        """
        self._config = config or get_client_config()
        self._client = client
        self.store = store or TranscriptStore()
        self.session_id: str = str(uuid.uuid4())
        self.last_state: IngestState | None = None
        self._ingestor: StreamIngestor | None = None
        self._task: asyncio.Task[IngestState] | None = None
        self._closed = False
        if on_change is not None:
            self.store.subscribe(on_change)

    @property
    def is_streaming(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def ingestor(self) -> StreamIngestor | None:
        """Ingestor of the current or most recent request."""
        return self._ingestor

    async def send_message(self, text: str) -> IngestState | None:
        """Send a message and stream the reply into the transcript.

        Args:
            text: The user's message. Blank input is ignored.

        Returns:
            Terminal state of the request, or None if nothing was sent.

        Raises:
            TurnStateError: If a reply is still streaming or the session is closed.
            asyncio.CancelledError: If the caller is cancelled. The open turn is
                closed with the apology message before re-raising.
        """
        if self._closed:
            raise TurnStateError("Session is closed")
        if self.is_streaming:
            raise TurnStateError("A reply is still streaming")

        text = text.strip()
        if not text:
            logger.debug("Ignoring blank message")
            return None

        history = self.store.history()
        handle = self.store.begin_exchange(text)
        self._ingestor = StreamIngestor(self.store, self._config, self._client)
        self._task = asyncio.create_task(self._ingestor.run(handle, text, history))
        logger.info(f"Session {self.session_id[:8]}: sent message with {len(history)} prior turns")

        try:
            self.last_state = await self._task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            self.last_state = IngestState.CANCELLED
            if self._closed and not (current and current.cancelling()):
                return self.last_state
            if not self._closed and self.store.is_open(handle):
                # Caller gave up; release the turn so the next message can open one
                logger.warning(f"Session {self.session_id[:8]}: request cancelled by caller")
                self._ingestor.cancel()
                self.store.close_turn(handle, self._config.apology_message)
            raise
        return self.last_state

    def new_chat(self) -> None:
        """Clear the transcript and start a new session id.

        Raises:
            TurnStateError: If a reply is still streaming.
        """
        if self.is_streaming:
            raise TurnStateError("Cannot start a new chat while a reply is streaming")
        self.store.clear()
        self.session_id = str(uuid.uuid4())
        self.last_state = None

    async def aclose(self) -> None:
        """Tear down the session, aborting any in-flight stream."""
        if self._closed:
            return
        self._closed = True
        if self._ingestor is not None:
            self._ingestor.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        logger.info(f"Session {self.session_id[:8]} closed")

    async def __aenter__(self) -> "ChatSession":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
