"""Server implementation: TCP or UDP listener selected by configuration."""

import asyncio
import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional, Union

from connload.config.settings import LoadConfig, TCP
from connload.handlers.base import LoggingHandler
from connload.transports.tcp.async_server import AsyncTCPServer
from connload.transports.udp.async_server import AsyncUDPServer

logger = logging.getLogger(__name__)


class ServerStatus(Enum):
    """Server status."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


class Server:
    """
    Listens on the configured protocol and hands every message read to a handler.

    TCP connections are each read for one line (or up to EOF) in their own
    task; UDP datagrams are read one at a time. Nothing is written back.
    Bind and accept failures are fatal and propagate out of run().
    """

    def __init__(
        self,
        config: LoadConfig,
        handler: Optional[Callable[[bytes, Any], None]] = None,
    ):
        """
        Initialize the server.

        Args:
            config: Validated run configuration
            handler: Optional callback receiving (data, address) for every
                    message. Defaults to a LoggingHandler honouring
                    ``config.debug``.
        """
        self.config = config
        self.handler = handler if handler is not None else LoggingHandler(config.debug)
        self._transport = self._create_transport()
        self._status = ServerStatus.STOPPED
        self._server_thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._started = threading.Event()
        self._error: Optional[Exception] = None

    def _create_transport(self) -> Union[AsyncTCPServer, AsyncUDPServer]:
        if self.config.protocol == TCP:
            return AsyncTCPServer(*self.config.address, self.handler)
        return AsyncUDPServer(*self.config.address, self.handler)

    @property
    def port(self) -> int:
        """Bound port; differs from config.port when 0 was requested."""
        return self._transport.port

    async def _serve(self) -> None:
        self._status = ServerStatus.STARTING
        self._transport.bind()
        self._status = ServerStatus.RUNNING
        self._started.set()
        await self._transport.serve()

    def run(self) -> None:
        """
        Run the server in the calling thread until it fails.

        Raises:
            OSError: If the socket cannot be bound or a TCP accept fails
            UnicodeError: If the host name cannot be encoded for the resolver
        """
        try:
            asyncio.run(self._serve())
        except Exception:
            self._status = ServerStatus.ERROR
            raise
        self._status = ServerStatus.STOPPED

    def _run_async_server(self) -> None:
        """Run the server in a separate thread."""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._serve())
        except asyncio.CancelledError:
            pass
        except Exception as e:
            self._status = ServerStatus.ERROR
            self._error = e
            logger.error("server error: %s", e)
        finally:
            self._started.set()
            # Cancel connection handlers still waiting on their peers
            pending = asyncio.all_tasks(self._loop)
            for task in pending:
                task.cancel()
            self._loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )
            self._loop.close()
            if self._status != ServerStatus.ERROR:
                self._status = ServerStatus.STOPPED

    def start(self) -> None:
        """Start the server in a background thread."""
        self._started.clear()
        self._server_thread = threading.Thread(
            target=self._run_async_server, daemon=True
        )
        self._server_thread.start()

    def wait_until_running(self, timeout: Optional[float] = 5.0) -> bool:
        """
        Wait until a server started with start() is listening.

        Returns:
            True if the server is running, False if it failed or timed out
        """
        self._started.wait(timeout=timeout)
        return self._status == ServerStatus.RUNNING

    def stop(self) -> None:
        """Stop a server started with start()."""
        if self._status == ServerStatus.RUNNING:
            self._status = ServerStatus.STOPPING
        if self._loop and not self._loop.is_closed():
            future = asyncio.run_coroutine_threadsafe(
                self._transport.stop(), self._loop
            )
            future.result(timeout=5.0)
        if self._server_thread:
            self._server_thread.join(timeout=5.0)

    def get_status(self) -> ServerStatus:
        """
        Get the current server status.

        Returns:
            Current ServerStatus
        """
        return self._status

    def get_error(self) -> Optional[Exception]:
        """
        Get the last error if status is ERROR.

        Returns:
            Last exception or None
        """
        return self._error
