"""Abstract interface for the push socket transport."""

from typing import Protocol


class PushConnection(Protocol):
    """One open push connection. Carries no business logic."""

    async def recv(self) -> str | bytes:
        """
        Wait for the next complete inbound message.

        Fragmented frames are reassembled before returning.

        Raises:
            TransportClosed: If the remote end closed the connection cleanly
            TransportError: If the read failed
        """
        ...

    async def send(self, text: str) -> None:
        """
        Send one text frame.

        Raises:
            TransportError: If the write failed
        """
        ...

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        ...


class PushTransport(Protocol):
    """Factory for push connections to a single server endpoint."""

    async def connect(self) -> PushConnection:
        """
        Open a new connection.

        Raises:
            TransportError: If the connection could not be established
        """
        ...
