"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - client_config: ClientConfig pointing at the in-process backend
    - chunked_transport: factory for MockTransports with fixed chunk boundaries
    - fake_backend: FastAPI app speaking the chat stream protocol
    - async_client: HTTPX client bound to the fake backend
"""

import asyncio
import json
from collections.abc import AsyncGenerator, AsyncIterator, Callable

import httpx
import pytest
from fastapi import FastAPI, UploadFile
from fastapi.responses import StreamingResponse
from httpx import ASGITransport, AsyncClient

from health_chat.config import ClientConfig
from health_chat.models.schemas import StreamRequest

TEST_BASE_URL = "http://test"


def sse(payload: dict) -> str:
    """Format one record as a stream line."""
    return f"data: {json.dumps(payload)}\n\n"


# Scripted replies keyed by the user message
SCRIPTS: dict[str, list[str]] = {
    "trigger error": [sse({"chunk": "Partial"}), sse({"error": "model overloaded"})],
    "no done": [sse({"chunk": "Cut "}), sse({"chunk": "short"})],
    "noisy": [
        ": keep-alive\n\n",
        "data: not json\n\n",
        sse({"unexpected": 1}),
        sse({"chunk": "clean"}),
        sse({"done": True}),
    ],
}


def create_fake_backend() -> FastAPI:
    """Build an app that answers like the assistant API."""
    app = FastAPI()
    app.state.requests = []

    @app.post("/api/chat/stream")
    async def chat_stream(request: StreamRequest) -> StreamingResponse:
        app.state.requests.append(request)
        lines = SCRIPTS.get(
            request.message,
            [sse({"chunk": "You said: "}), sse({"chunk": request.message}), sse({"done": True})],
        )

        async def generate() -> AsyncGenerator[str]:
            for line in lines:
                yield line

        return StreamingResponse(generate(), media_type="text/event-stream")

    @app.post("/api/analyze-image")
    async def analyze_image(file: UploadFile) -> dict:
        content = await file.read()
        return {
            "analysis": f"Reviewed {file.filename} ({len(content)} bytes)",
            "conditions": ["Mild anemia", "Vitamin D deficiency"],
            "recommendations": "Follow up with your physician.",
        }

    return app


@pytest.fixture
def client_config() -> ClientConfig:
    """Return configuration pointing at the test backend."""
    return ClientConfig(api_base_url=TEST_BASE_URL, timeout=5.0)


@pytest.fixture
def chunked_transport() -> Callable[..., httpx.MockTransport]:
    """Return a factory for transports that deliver a body in fixed chunks.

    The factory accepts the chunks (bytes or str), an optional status code,
    an optional exception raised after the chunks, and an optional event the
    body waits on before finishing. Requests are recorded on ``transport.requests``.
    """

    def factory(
        chunks: list[bytes | str],
        status_code: int = 200,
        raise_after: Exception | None = None,
        hold: asyncio.Event | None = None,
    ) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        async def body() -> AsyncIterator[bytes]:
            for chunk in chunks:
                yield chunk.encode() if isinstance(chunk, str) else chunk
            if hold is not None:
                await hold.wait()
            if raise_after is not None:
                raise raise_after

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                status_code,
                headers={"content-type": "text/event-stream; charset=utf-8"},
                content=body(),
            )

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport

    return factory


@pytest.fixture
def fake_backend() -> FastAPI:
    """Return a fresh fake assistant backend."""
    return create_fake_backend()


@pytest.fixture
async def async_client(fake_backend: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client bound to the fake backend.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=fake_backend)
    async with AsyncClient(transport=transport, base_url=TEST_BASE_URL) as client:
        yield client
