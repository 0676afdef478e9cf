"""Chat session management.

Ties a transcript to the streaming ingestor for one conversation.

Responsibilities:
    - Atomic user/assistant turn creation per submission
    - One in-flight request at a time
    - Session identity and new-chat resets
    - Teardown that aborts any running stream
"""

from health_chat.chat.session import ChatSession

__all__ = ["ChatSession"]
