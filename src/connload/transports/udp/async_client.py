"""Asynchronous UDP client implementation."""

import asyncio
from typing import Optional


class AsyncUDPClient:
    """
    Asynchronous UDP client using asyncio.

    "Connecting" binds an ephemeral local port and fixes the remote address,
    the datagram equivalent of a dial. No timeouts are applied.
    """

    def __init__(self, host: str, port: int):
        """
        Initialize async UDP client.

        Args:
            host: Target hostname or IP
            port: Target port
        """
        self.host = host
        self.port = port
        self.transport: Optional[asyncio.DatagramTransport] = None

    async def connect(self) -> None:
        """Dial the target."""
        loop = asyncio.get_running_loop()
        self.transport, _ = await loop.create_datagram_endpoint(
            asyncio.DatagramProtocol, remote_addr=(self.host, self.port)
        )

    async def send(self, data: bytes) -> None:
        """
        Send one datagram to the target.

        Args:
            data: Bytes to send

        Raises:
            ConnectionError: If not connected
        """
        if not self.transport:
            raise ConnectionError("Not connected")
        self.transport.sendto(data)

    async def close(self) -> None:
        """Close socket."""
        if self.transport:
            self.transport.close()
            self.transport = None

    async def push(self, data: bytes) -> None:
        """
        Dial, send ``data`` as one datagram and close.

        The socket is closed whether or not the send succeeded; errors
        propagate to the caller.
        """
        await self.connect()
        try:
            await self.send(data)
        finally:
            await self.close()

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
