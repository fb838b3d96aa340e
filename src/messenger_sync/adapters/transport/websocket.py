"""WebSocket push transport using the websockets library.

This module implements the PushTransport protocol on top of the asyncio
client from ``websockets``. It owns the physical socket only: no decoding,
no retries, no authentication. The reconnection engine drives it.
"""

from __future__ import annotations

import structlog
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedOK,
    InvalidHandshake,
    InvalidURI,
)

from ...utils.async_helpers import TransportClosed, TransportError

log = structlog.get_logger()


class WebSocketConnection:
    """One open WebSocket, exposed through the PushConnection protocol."""

    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    async def recv(self) -> str | bytes:
        """Return the next complete message, reassembling fragments."""
        try:
            return await self._ws.recv()
        except ConnectionClosedOK as e:
            raise TransportClosed(f"Connection closed by server: {e}") from e
        except ConnectionClosed as e:
            raise TransportError(f"Connection lost: {e}") from e

    async def send(self, text: str) -> None:
        try:
            await self._ws.send(text)
        except ConnectionClosed as e:
            raise TransportError(f"Send on closed connection: {e}") from e

    async def close(self) -> None:
        try:
            await self._ws.close()
        except ConnectionClosed:
            pass


class WebSocketTransport:
    """PushTransport that opens WebSocket connections to one endpoint.

    Example:
        transport = WebSocketTransport("ws://monkemessenger.lapis.codes")
        connection = await transport.connect()
        frame = await connection.recv()
        await connection.close()
    """

    def __init__(self, url: str, open_timeout: float = 10.0) -> None:
        """Initialize the transport.

        Args:
            url: ws:// or wss:// endpoint.
            open_timeout: Seconds allowed for the opening handshake.
        """
        self._url = url
        self._open_timeout = open_timeout

    @property
    def url(self) -> str:
        return self._url

    async def connect(self) -> WebSocketConnection:
        """Open a new connection.

        Raises:
            TransportError: If the connection could not be established.
        """
        try:
            # Keepalive pings from websockets detect half-open sockets
            ws = await connect(self._url, open_timeout=self._open_timeout)
        except (OSError, TimeoutError, InvalidHandshake, InvalidURI) as e:
            raise TransportError(f"Failed to connect to {self._url}: {e}") from e

        log.debug("websocket_opened", url=self._url)
        return WebSocketConnection(ws)
