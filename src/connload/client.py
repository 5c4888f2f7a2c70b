"""Client implementation: the rate-controlled connection dispatcher."""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from queue import Queue
from typing import Optional, Set

from connload.config.settings import LoadConfig, PAYLOAD, TCP, UDP
from connload.transports.tcp.async_client import AsyncTCPClient
from connload.transports.udp.async_client import AsyncUDPClient

logger = logging.getLogger(__name__)

TRANSPORTS = {TCP: AsyncTCPClient, UDP: AsyncUDPClient}


class ClientStatus(Enum):
    """Dispatcher status."""

    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


@dataclass
class AttemptResult:
    """Outcome of one connection attempt, reported only when asked for."""

    started_at: float
    finished_at: float
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Client:
    """
    Fires connection attempts at the target on a fixed schedule.

    Every ``config.interval`` seconds one attempt (dial, write the payload,
    close) is spawned as its own task. The schedule never waits for
    attempts to finish and nothing limits how many are in flight. Failed
    attempts are logged and dropped.
    """

    def __init__(self, config: LoadConfig, results: Optional[Queue] = None):
        """
        Initialize the dispatcher.

        Args:
            config: Validated run configuration
            results: Optional queue that receives an AttemptResult per attempt
        """
        self.config = config
        self.results = results
        self._attempts: Set[asyncio.Task] = set()
        self._status = ClientStatus.STOPPED
        self._client_thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task] = None
        self._ready = threading.Event()
        self._error: Optional[Exception] = None

    def _create_transport(self):
        return TRANSPORTS[self.config.protocol](*self.config.address)

    async def _attempt(self) -> None:
        """Dial the target, write the payload and close."""
        started_at = time.monotonic()
        error = None
        transport = self._create_transport()
        # An unencodable host name fails in the resolver with UnicodeError.
        try:
            await transport.push(PAYLOAD)
        except (OSError, UnicodeError) as e:
            error = e
            logger.warning("got error on connection attempt, err: %s", e)
        if self.results is not None:
            self.results.put(AttemptResult(started_at, time.monotonic(), error))

    async def dispatch(self, count: Optional[int] = None) -> None:
        """
        Spawn attempts at the configured rate.

        Args:
            count: Number of attempts to spawn (None = forever)
        """
        interval = self.config.interval
        spawned = 0
        while count is None or spawned < count:
            await asyncio.sleep(interval)
            task = asyncio.create_task(self._attempt())
            self._attempts.add(task)
            task.add_done_callback(self._attempts.discard)
            spawned += 1

    async def _main(self, count: Optional[int]) -> None:
        logger.info(
            "sending %s connections per second to %s:%s over %s",
            self.config.rate,
            self.config.host,
            self.config.port,
            self.config.protocol,
        )
        await self.dispatch(count)
        # Only reached with a bounded count.
        if self._attempts:
            await asyncio.gather(*self._attempts, return_exceptions=True)

    def run(self, count: Optional[int] = None) -> None:
        """
        Run the dispatcher in the calling thread.

        Blocks forever unless ``count`` is given, in which case it returns
        once that many attempts have been spawned and have finished.
        """
        self._status = ClientStatus.RUNNING
        try:
            asyncio.run(self._main(count))
        finally:
            self._status = ClientStatus.STOPPED

    def _run_async_client(self, count: Optional[int]) -> None:
        """Run the dispatcher in a separate thread."""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            self._task = self._loop.create_task(self._main(count))
            self._status = ClientStatus.RUNNING
            self._ready.set()
            self._loop.run_until_complete(self._task)
        except asyncio.CancelledError:
            pass
        except Exception as e:
            self._status = ClientStatus.ERROR
            self._error = e
            logger.error("dispatcher error: %s", e)
        finally:
            self._ready.set()
            pending = asyncio.all_tasks(self._loop)
            for task in pending:
                task.cancel()
            self._loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )
            self._loop.close()
            if self._status != ClientStatus.ERROR:
                self._status = ClientStatus.STOPPED

    def start(self, count: Optional[int] = None) -> None:
        """Start the dispatcher in a background thread."""
        self._ready.clear()
        self._client_thread = threading.Thread(
            target=self._run_async_client, args=(count,), daemon=True
        )
        self._client_thread.start()
        self._ready.wait(timeout=5.0)

    def stop(self) -> None:
        """Stop a dispatcher started with start(). In-flight attempts are cancelled."""
        if self._status == ClientStatus.RUNNING:
            self._status = ClientStatus.STOPPING
        if self._loop and self._task:
            try:
                self._loop.call_soon_threadsafe(self._task.cancel)
            except RuntimeError:
                # Loop already closed: the dispatcher finished on its own.
                pass
        if self._client_thread:
            self._client_thread.join(timeout=5.0)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for a bounded dispatcher started with start() to finish.

        Returns:
            True if the background thread has exited
        """
        if self._client_thread:
            self._client_thread.join(timeout=timeout)
            return not self._client_thread.is_alive()
        return True

    def get_status(self) -> ClientStatus:
        """
        Get the current dispatcher status.

        Returns:
            Current ClientStatus
        """
        return self._status

    def get_error(self) -> Optional[Exception]:
        """
        Get the last error if status is ERROR.

        Returns:
            Last exception or None
        """
        return self._error

    @property
    def in_flight(self) -> int:
        """Number of attempts spawned but not yet finished."""
        return len(self._attempts)
