"""Asynchronous UDP server implementation."""

import asyncio
import logging
import socket
from typing import Any, Callable, Optional

from connload.config.settings import UDP_BUFFER_SIZE

logger = logging.getLogger(__name__)


class AsyncUDPServer:
    """
    Asynchronous UDP listener using asyncio.

    Datagrams are read one at a time into a single reusable buffer. A read
    error is logged and the loop carries on with the next datagram.
    """

    def __init__(
        self,
        host: str,
        port: int,
        handler: Callable[[bytes, Any], None],
        buffer_size: int = UDP_BUFFER_SIZE,
    ):
        """
        Initialize async UDP server.

        Args:
            host: Bind hostname or IP
            port: Bind port (0 for automatic assignment)
            handler: Callback invoked with each datagram and its sender
            buffer_size: Receive buffer size; longer datagrams are truncated
        """
        self.host = host
        self.port = port
        self.handler = handler
        self.buffer = bytearray(buffer_size)
        self.socket: Optional[socket.socket] = None
        self.running = False
        self._receive: Optional[asyncio.Future] = None

    def bind(self) -> None:
        """Resolve the address and bind the server socket."""
        family, type_, proto, _, sockaddr = socket.getaddrinfo(
            self.host, self.port, type=socket.SOCK_DGRAM, flags=socket.AI_PASSIVE
        )[0]
        sock = socket.socket(family, type_, proto)
        try:
            sock.bind(sockaddr)
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise
        self.socket = sock
        # Update port if it was auto-assigned
        if self.port == 0:
            self.port = sock.getsockname()[1]
        logger.info("UDP server listening on %s:%s", self.host, self.port)

    async def serve(self) -> None:
        """
        Receive datagrams until stopped.

        Raises:
            ConnectionError: If the socket is not bound
        """
        if not self.socket:
            raise ConnectionError("Socket not bound")
        loop = asyncio.get_running_loop()
        self.running = True
        try:
            while self.running and self.socket:
                self._receive = asyncio.ensure_future(
                    loop.sock_recvfrom_into(self.socket, self.buffer)
                )
                try:
                    nbytes, address = await self._receive
                except asyncio.CancelledError:
                    if not self.running:
                        break
                    raise
                except OSError as e:
                    if not self.running:
                        break
                    if self.socket is None or self.socket.fileno() == -1:
                        logger.error("UDP socket closed, err: %s", e)
                        raise
                    logger.warning("could not read from UDP buffer, err: %s", e)
                    continue
                finally:
                    self._receive = None
                self.handler(bytes(self.buffer[:nbytes]), address)
        finally:
            self.running = False

    async def start(self) -> None:
        """Bind and serve."""
        self.bind()
        await self.serve()

    async def stop(self) -> None:
        """Stop receiving and close the socket."""
        self.running = False
        if self._receive:
            self._receive.cancel()
        if self.socket:
            self.socket.close()
            self.socket = None
