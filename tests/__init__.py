"""Test package for Health Chat.

Structure:
    - unit/: store, decoder, ingestor, session, config and analysis in isolation
    - integration/: full round trips against an in-process FastAPI backend

Leverages pytest with pytest-asyncio and pytest-check for soft assertions.
"""
