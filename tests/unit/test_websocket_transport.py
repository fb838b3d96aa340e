"""Tests for the WebSocket push transport against a local server."""

from collections.abc import AsyncIterator

import pytest
from websockets.asyncio.server import ServerConnection, serve

from messenger_sync.adapters.transport.websocket import WebSocketTransport
from messenger_sync.utils.async_helpers import TransportClosed, TransportError


async def echo_once(ws: ServerConnection) -> None:
    """Echo a single message back, then close cleanly."""
    message = await ws.recv()
    await ws.send(f"echo:{message}")


@pytest.fixture
async def server_url() -> AsyncIterator[str]:
    """Run a local WebSocket server on a free port."""
    async with serve(echo_once, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        yield f"ws://127.0.0.1:{port}"


class TestWebSocketTransport:
    """Test WebSocketTransport."""

    async def test_send_and_receive(self, server_url: str) -> None:
        """Test a round trip through an open connection."""
        transport = WebSocketTransport(server_url, open_timeout=5.0)
        connection = await transport.connect()
        try:
            await connection.send('{"token": "tok"}')
            assert await connection.recv() == 'echo:{"token": "tok"}'
        finally:
            await connection.close()

    async def test_server_close_raises_transport_closed(self, server_url: str) -> None:
        """Test that a clean close from the server surfaces as TransportClosed."""
        connection = await WebSocketTransport(server_url).connect()
        await connection.send("hello")
        await connection.recv()

        with pytest.raises(TransportClosed):
            await connection.recv()
        await connection.close()

    async def test_close_twice(self, server_url: str) -> None:
        """Test that closing an already closed connection is harmless."""
        connection = await WebSocketTransport(server_url).connect()
        await connection.close()
        await connection.close()

    async def test_send_after_close_raises(self, server_url: str) -> None:
        """Test that writes on a closed connection raise TransportError."""
        connection = await WebSocketTransport(server_url).connect()
        await connection.close()

        with pytest.raises(TransportError):
            await connection.send("late")

    async def test_connection_refused(self) -> None:
        """Test that an unreachable endpoint raises TransportError."""
        transport = WebSocketTransport("ws://127.0.0.1:1", open_timeout=2.0)
        with pytest.raises(TransportError, match="Failed to connect"):
            await transport.connect()

    async def test_invalid_uri(self) -> None:
        """Test that a malformed endpoint raises TransportError."""
        with pytest.raises(TransportError):
            await WebSocketTransport("not a uri").connect()

    def test_url_property(self) -> None:
        """Test that the endpoint is exposed."""
        assert WebSocketTransport("ws://chat.example").url == "ws://chat.example"
