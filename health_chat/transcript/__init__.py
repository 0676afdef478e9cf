"""Conversation transcript storage.

Owns every turn of a conversation and enforces the single-open-turn rule.

Responsibilities:
    - Ordered user/assistant turns with creation timestamps
    - Append-only streaming into the open assistant turn
    - Immutable snapshots for rendering and request history
    - Change notification after every mutation
"""

from health_chat.transcript.store import TranscriptStore, TurnHandle, TurnStateError

__all__ = ["TranscriptStore", "TurnHandle", "TurnStateError"]
