"""Asynchronous TCP client implementation."""

import asyncio
from typing import Any, Optional


class AsyncTCPClient:
    """
    One short-lived TCP connection to the target.

    Nothing is ever read back, so only the writing half of the stream is
    kept. No timeouts are applied to the dial or the write.
    """

    def __init__(self, host: str, port: int):
        """
        Initialize async TCP client.

        Args:
            host: Target hostname or IP
            port: Target port
        """
        self.host = host
        self.port = port
        self.writer: Optional[asyncio.StreamWriter] = None

    @property
    def local_address(self) -> Optional[Any]:
        """Local (host, port) of the open connection, None when closed."""
        if not self.writer:
            return None
        return self.writer.get_extra_info("sockname")

    async def connect(self) -> None:
        """Dial the target."""
        _, self.writer = await asyncio.open_connection(self.host, self.port)

    async def send(self, data: bytes) -> None:
        """
        Write data and wait for it to be flushed to the socket.

        Raises:
            ConnectionError: If not connected
        """
        if not self.writer:
            raise ConnectionError("Not connected")
        self.writer.write(data)
        await self.writer.drain()

    async def close(self) -> None:
        """Close connection."""
        writer, self.writer = self.writer, None
        if writer:
            writer.close()
            await writer.wait_closed()

    async def push(self, data: bytes) -> None:
        """
        Dial, write ``data`` and close.

        The connection is closed whether or not the write succeeded; dial
        and write errors propagate to the caller.
        """
        await self.connect()
        try:
            await self.send(data)
        finally:
            await self.close()
