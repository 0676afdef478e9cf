"""Integration tests for streaming chat against an in-process backend.

Tests real HTTP round trips with httpx AsyncClient and ASGITransport.
The backend is a FastAPI app speaking the chat stream protocol.
"""

from fastapi import FastAPI
from httpx import AsyncClient

from health_chat.chat.session import ChatSession
from health_chat.config import ClientConfig
from health_chat.models.schemas import IngestState, Role


class TestStreamingEndpoint:
    """Integration tests for POST /api/chat/stream consumption."""

    async def test_reply_streams_into_transcript(
        self, async_client: AsyncClient, client_config: ClientConfig
    ) -> None:
        """A normal reply is accumulated and closed."""
        async with ChatSession(config=client_config, client=async_client) as session:
            state = await session.send_message("What is dengue?")

        snapshot = session.store.snapshot()
        assert state is IngestState.COMPLETED
        assert snapshot[-1].role == Role.ASSISTANT
        assert snapshot[-1].content == "You said: What is dengue?"
        assert snapshot[-1].is_open is False

    async def test_backend_receives_history(
        self,
        async_client: AsyncClient,
        client_config: ClientConfig,
        fake_backend: FastAPI,
    ) -> None:
        """Each request carries the conversation so far."""
        async with ChatSession(config=client_config, client=async_client) as session:
            await session.send_message("first")
            await session.send_message("second")

        first, second = fake_backend.state.requests
        assert first.history == []
        assert [(m.role, m.content) for m in second.history] == [
            (Role.USER, "first"),
            (Role.ASSISTANT, "You said: first"),
        ]

    async def test_server_error_substitutes_apology(
        self, async_client: AsyncClient, client_config: ClientConfig
    ) -> None:
        """A server-reported error replaces partial output."""
        async with ChatSession(config=client_config, client=async_client) as session:
            state = await session.send_message("trigger error")

        assert state is IngestState.FAILED
        assert session.store.snapshot()[-1].content == client_config.apology_message

    async def test_missing_done_completes(
        self, async_client: AsyncClient, client_config: ClientConfig
    ) -> None:
        """Stream close without a done record is a normal completion."""
        async with ChatSession(config=client_config, client=async_client) as session:
            state = await session.send_message("no done")

        assert state is IngestState.COMPLETED
        assert session.store.snapshot()[-1].content == "Cut short"

    async def test_noise_is_counted_and_skipped(
        self, async_client: AsyncClient, client_config: ClientConfig
    ) -> None:
        """Keep-alives and malformed records do not disturb the reply."""
        async with ChatSession(config=client_config, client=async_client) as session:
            await session.send_message("noisy")

        stats = session.ingestor.stats
        assert session.store.snapshot()[-1].content == "clean"
        assert stats.malformed == 2
        assert stats.records == 2

    async def test_unknown_route_fails_turn(self, async_client: AsyncClient) -> None:
        """A 404 from a misconfigured path fails the turn without raising."""
        config = ClientConfig(api_base_url="http://test", stream_path="/missing")

        async with ChatSession(config=config, client=async_client) as session:
            state = await session.send_message("Hello")

        assert state is IngestState.FAILED
        assert session.store.snapshot()[-1].content == config.apology_message
