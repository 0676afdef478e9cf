"""Ordered conversation transcript with a single open turn.

The store is the only owner of turns. Streamed text reaches the open assistant
turn through a ``TurnHandle`` issued when the turn is created.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from health_chat.models.schemas import HistoryMessage, Role, TurnSnapshot

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[tuple[TurnSnapshot, ...]], None]


class TurnStateError(RuntimeError):
    """Raised when a caller breaks the transcript's turn lifecycle."""

    pass


@dataclass(frozen=True)
class TurnHandle:
    """Token designating one open assistant turn.

    Attributes:
        position: Index of the turn in the transcript.
        token: Unique id matched against the turn on every mutation.
    """

    position: int
    token: str = field(default_factory=lambda: uuid.uuid4().hex)


class _Turn:
    def __init__(self, role: Role, content: str = "", token: str | None = None) -> None:
        self.role = role
        self.created_at = datetime.now(UTC)
        self.token = token
        self.is_open = token is not None
        self._parts = [content] if content else []

    @property
    def content(self) -> str:
        return "".join(self._parts)

    def snapshot(self) -> TurnSnapshot:
        return TurnSnapshot(
            role=self.role,
            content=self.content,
            created_at=self.created_at,
            is_open=self.is_open,
        )


class TranscriptStore:
    """Holds conversation turns in order.

    At most one turn is open at any time. Listeners receive a fresh snapshot
    after every mutation.
    """

    def __init__(self) -> None:
        self._turns: list[_Turn] = []
        self._listeners: list[SnapshotListener] = []

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def has_open_turn(self) -> bool:
        return any(turn.is_open for turn in self._turns)

    def subscribe(self, listener: SnapshotListener) -> None:
        """Register a callback fired with a snapshot after each mutation."""
        self._listeners.append(listener)

    def append_user_turn(self, text: str) -> int:
        """Append a closed user turn.

        Args:
            text: The user's message.

        Returns:
            Position of the new turn.
        """
        self._turns.append(_Turn(Role.USER, text))
        self._notify()
        return len(self._turns) - 1

    def append_open_assistant_turn(self) -> TurnHandle:
        """Append an empty assistant turn that will receive streamed text.

        Returns:
            Handle for the new open turn.

        Raises:
            TurnStateError: If another turn is already open.
        """
        self._require_no_open_turn()
        handle = TurnHandle(position=len(self._turns))
        self._turns.append(_Turn(Role.ASSISTANT, token=handle.token))
        self._notify()
        return handle

    def begin_exchange(self, text: str) -> TurnHandle:
        """Append a user turn and its open assistant reply together.

        Args:
            text: The user's message.

        Returns:
            Handle for the open assistant turn.

        Raises:
            TurnStateError: If another turn is already open. Nothing is appended.
        """
        self._require_no_open_turn()
        self._turns.append(_Turn(Role.USER, text))
        handle = TurnHandle(position=len(self._turns))
        self._turns.append(_Turn(Role.ASSISTANT, token=handle.token))
        self._notify()
        return handle

    def is_open(self, handle: TurnHandle) -> bool:
        """Return whether the handle still designates the open turn."""
        turn = self._lookup(handle)
        return turn is not None and turn.is_open

    def append_delta(self, handle: TurnHandle, text: str) -> None:
        """Concatenate streamed text onto the open turn.

        Raises:
            TurnStateError: If the handle is stale or the turn is closed.
        """
        turn = self._open_turn(handle)
        if not text:
            return
        turn._parts.append(text)
        self._notify()

    def close_turn(self, handle: TurnHandle, final_text: str | None = None) -> None:
        """Close the open turn.

        Args:
            handle: Handle of the open turn.
            final_text: Replacement content, used to substitute an error
                message for partial output. Accumulated content is kept
                when omitted.

        Raises:
            TurnStateError: If the handle is stale or the turn is closed.
        """
        turn = self._open_turn(handle)
        if final_text is not None:
            turn._parts = [final_text]
        turn.is_open = False
        self._notify()

    def snapshot(self) -> tuple[TurnSnapshot, ...]:
        """Return an immutable ordered copy of all turns."""
        return tuple(turn.snapshot() for turn in self._turns)

    def history(self) -> list[HistoryMessage]:
        """Return the transcript as role/content pairs for request context."""
        return [
            HistoryMessage(role=turn.role, content=turn.content) for turn in self._turns
        ]

    def clear(self) -> None:
        """Drop every turn.

        Raises:
            TurnStateError: If a turn is still open.
        """
        self._require_no_open_turn()
        self._turns.clear()
        self._notify()

    def _lookup(self, handle: TurnHandle) -> _Turn | None:
        if not 0 <= handle.position < len(self._turns):
            return None
        turn = self._turns[handle.position]
        if turn.token != handle.token:
            return None
        return turn

    def _open_turn(self, handle: TurnHandle) -> _Turn:
        turn = self._lookup(handle)
        if turn is None:
            raise TurnStateError(f"No turn matches handle at position {handle.position}")
        if not turn.is_open:
            raise TurnStateError(f"Turn at position {handle.position} is already closed")
        return turn

    def _require_no_open_turn(self) -> None:
        if self.has_open_turn:
            raise TurnStateError("Another turn is still open")

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in self._listeners:
            listener(snapshot)
