"""Asynchronous TCP server implementation."""

import asyncio
import logging
import socket
from typing import Any, Callable, Optional, Set

logger = logging.getLogger(__name__)


class AsyncTCPServer:
    """
    Asynchronous TCP listener using asyncio.

    Every accepted connection is handled in its own task; the accept loop
    never waits for handlers and puts no bound on how many run at once.
    A failed accept is fatal and ends ``serve()`` with the error.
    """

    def __init__(self, host: str, port: int, handler: Callable[[bytes, Any], None]):
        """
        Initialize async TCP server.

        Args:
            host: Bind hostname or IP
            port: Bind port (0 for automatic assignment)
            handler: Callback invoked with the bytes read from each
                    connection and the remote address. Its return value
                    is ignored; nothing is written back.
        """
        self.host = host
        self.port = port
        self.handler = handler
        self.socket: Optional[socket.socket] = None
        self.running = False
        self._accept: Optional[asyncio.Future] = None
        self._tasks: Set[asyncio.Task] = set()

    def bind(self) -> None:
        """Create, bind and listen on the server socket."""
        family, type_, proto, _, sockaddr = socket.getaddrinfo(
            self.host, self.port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
        )[0]
        sock = socket.socket(family, type_, proto)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(sockaddr)
            sock.listen(socket.SOMAXCONN)
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise
        self.socket = sock
        # Update port if it was auto-assigned
        if self.port == 0:
            self.port = sock.getsockname()[1]
        logger.info("TCP server listening on %s:%s", self.host, self.port)

    async def serve(self) -> None:
        """
        Accept connections until stopped.

        Raises:
            ConnectionError: If the socket is not bound
            OSError: If accepting a connection fails
        """
        if not self.socket:
            raise ConnectionError("Socket not bound")
        loop = asyncio.get_running_loop()
        self.running = True
        try:
            while True:
                self._accept = asyncio.ensure_future(loop.sock_accept(self.socket))
                try:
                    conn, address = await self._accept
                except asyncio.CancelledError:
                    if not self.running:
                        break
                    raise
                except OSError as e:
                    if not self.running:
                        break
                    logger.error("could not accept connection, err: %s", e)
                    raise
                finally:
                    self._accept = None
                task = asyncio.create_task(self._handle_client(conn, address))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        finally:
            self.running = False

    async def start(self) -> None:
        """Bind and serve."""
        self.bind()
        await self.serve()

    async def _handle_client(self, conn: socket.socket, address: Any) -> None:
        """
        Read one line (or everything up to EOF) from a connection.

        Args:
            conn: Accepted client socket
            address: Client address
        """
        try:
            reader, writer = await asyncio.open_connection(sock=conn)
        except OSError as e:
            logger.warning("error reading from connection, err: %s", e)
            conn.close()
            return

        try:
            data = b""
            try:
                # Returns the partial line when EOF comes first.
                data = await reader.readline()
            except (OSError, ValueError) as e:
                logger.warning("error reading from connection, err: %s", e)
            self.handler(data, address)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug("error closing connection from %s: %s", address, e)

    async def stop(self) -> None:
        """Stop accepting and close the listening socket."""
        self.running = False
        if self._accept:
            self._accept.cancel()
        if self.socket:
            self.socket.close()
            self.socket = None
