"""Health Chat - streaming client for a remote health assistant.

Combines HTTPX for streamed HTTP transport and Pydantic for wire-format
validation.

Components:
    - transcript: ordered conversation turns with a single open turn
    - streaming: line decoding and ingestion of the event stream
    - chat: session lifecycle, configuration and submission path
    - analysis: document upload for report analysis
    - models: request, record and response schemas
"""

__version__ = "0.1.0"
